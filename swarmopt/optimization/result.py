# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import swarmopt.common.typing as tp
from . import convergence


class OptimisationResult(tp.NamedTuple):
    """Report of an optimization run

    - best_position: best position found during the whole run
    - best_fitness: fitness at best_position
    - iterations: number of completed iterations
    - function_evaluations: total number of calls to the objective function,
      including the initial evaluation of the swarm
    - fitness_history: global best fitness after each iteration
    - converged: whether the threshold or stagnation criterion fired
    - convergence_reason: "threshold", "stagnation", "max_iterations" or "cancelled"
    - elapsed_time: duration of the run in seconds
    """

    best_position: np.ndarray
    best_fitness: float
    iterations: int
    function_evaluations: int
    fitness_history: tp.Tuple[float, ...]
    converged: bool
    convergence_reason: str
    elapsed_time: float = 0.0

    @property
    def cancelled(self) -> bool:
        return self.convergence_reason == convergence.CANCELLED

    def as_dict(self) -> tp.Dict[str, tp.Any]:
        """Plain python representation (lists and floats), convenient for json dumps"""
        data = self._asdict()
        data["best_position"] = [float(x) for x in self.best_position]
        data["fitness_history"] = list(self.fitness_history)
        return data

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(best_fitness={self.best_fitness}, iterations={self.iterations}, "
            f"function_evaluations={self.function_evaluations}, converged={self.converged}, "
            f"convergence_reason={self.convergence_reason!r})"
        )
