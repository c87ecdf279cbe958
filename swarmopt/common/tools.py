# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import inspect
import typing as tp
import numpy as np


def is_non_increasing(values: tp.Iterable[float]) -> bool:
    """Checks that a sequence of fitness values never goes up"""
    values = list(values)
    return all(new <= old for old, new in zip(values, values[1:]))


def sanitize_fitness(value: float) -> float:
    """Maps non-finite values (nan, +inf, -inf) to +inf so that they compare
    as worse than any finite fitness during minimization
    """
    return value if np.isfinite(value) else float("inf")


def non_default_arguments(func: tp.Callable[..., tp.Any], values: tp.Dict[str, tp.Any]) -> tp.Dict[str, tp.Any]:
    """Returns the values which differ from the defaults of the keyword arguments of func.
    This is convenient for short repr of configuration objects.

    Raises
    ------
    RuntimeError
        if the keys of values do not match the arguments of func
    """
    defaults = {
        name: param.default for name, param in inspect.signature(func).parameters.items() if name != "self"
    }
    if set(defaults) != set(values):
        mismatch = sorted(set(defaults).symmetric_difference(values))
        raise RuntimeError(f"Mismatch between values and arguments of {func.__qualname__}: {mismatch}")
    return {name: value for name, value in values.items() if value != defaults[name]}
