# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import warnings
from numbers import Real
import numpy as np
import swarmopt.common.typing as tp
from swarmopt.common import errors


class DelayedJob:
    """Future-like object which delays computation"""

    def __init__(self, func: tp.Callable[..., tp.Any], *args: tp.Any, **kwargs: tp.Any) -> None:
        self.func = func
        self.args = args
        self.kwargs = kwargs
        self._result: tp.Optional[tp.Any] = None
        self._computed = False

    def done(self) -> bool:
        return True

    def result(self) -> tp.Any:
        if not self._computed:
            self._result = self.func(*self.args, **self.kwargs)
            self._computed = True
        return self._result


class SequentialExecutor:
    """Executor which run sequentially and locally
    (just calls the function and returns a DelayedJob)
    """

    def submit(self, fn: tp.Callable[..., tp.Any], *args: tp.Any, **kwargs: tp.Any) -> DelayedJob:
        return DelayedJob(fn, *args, **kwargs)


class FitnessEvaluator:
    """Wraps an objective function so that it is always called on a copy
    of the position and always returns a float.

    Parameters
    ----------
    objective: callable
        function mapping a position (1d array) to a scalar fitness

    Note
    ----
    Non-finite outputs are returned as is, with a BadFitnessWarning.
    Exceptions raised by the objective are propagated.
    """

    def __init__(self, objective: tp.ObjectiveFunction) -> None:
        if not callable(objective):
            raise errors.InvalidConfiguration(f"Objective function must be callable, got {objective!r}")
        self.objective = objective

    def __call__(self, position: np.ndarray) -> float:
        value = self.objective(np.array(position, dtype=float))
        if isinstance(value, np.ndarray) and value.size == 1:
            value = value.ravel()[0]
        if not isinstance(value, (Real, float)) or isinstance(value, (bool, np.bool_)):
            # using "float" along "Real" because mypy does not understand "Real" for now
            raise errors.SwarmTypeError(
                f"Objective function must return a real number but returned: {value!r} (type: {type(value)})."
            )
        fitness = float(value)
        if not np.isfinite(fitness):
            warnings.warn(
                f"Objective returned {fitness}, it is handled as worse than any finite value",
                errors.BadFitnessWarning,
            )
        return fitness
