# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import swarmopt.common.typing as tp
from .parameters import PSOParameters

# convergence reasons
THRESHOLD = "threshold"
STAGNATION = "stagnation"
MAX_ITERATIONS = "max_iterations"
CANCELLED = "cancelled"
CONVERGED_REASONS = (THRESHOLD, STAGNATION)


class ConvergenceMonitor:
    """Checks the stopping criteria after each completed iteration,
    in the following priority order:

    1. global best fitness at or below the fitness threshold ("threshold")
    2. no improvement larger than the stagnation tolerance during
       stagnation_iterations consecutive iterations ("stagnation")
    3. maximum number of iterations reached ("max_iterations")

    Only the first two are considered as a convergence.

    Parameters
    ----------
    parameters: PSOParameters
        configuration holding the criteria
    """

    def __init__(self, parameters: PSOParameters) -> None:
        self.fitness_threshold = parameters.fitness_threshold
        self.stagnation_iterations = parameters.stagnation_iterations
        self.stagnation_tolerance = parameters.stagnation_tolerance
        self.max_iterations = parameters.max_iterations
        self.stagnation_count = 0
        self._reference: tp.Optional[float] = None

    def reset(self, initial_best_fitness: tp.Optional[float] = None) -> None:
        """Resets the stagnation count, with the best fitness of the initial swarm as reference"""
        self.stagnation_count = 0
        self._reference = initial_best_fitness

    def update(self, best_fitness: float, iteration: int) -> tp.Optional[str]:
        """Registers the global best fitness after a completed iteration

        Parameters
        ----------
        best_fitness: float
            global best fitness after the iteration
        iteration: int
            number of completed iterations

        Returns
        -------
        str or None
            the reason for stopping, or None if the run must go on
        """
        # the reference only moves on improvements larger than the tolerance
        # (inf - inf is nan, which counts as no improvement)
        if self._reference is None or self._reference - best_fitness > self.stagnation_tolerance:
            self._reference = best_fitness
            self.stagnation_count = 0
        else:
            self.stagnation_count += 1
        if self.fitness_threshold is not None and best_fitness <= self.fitness_threshold:
            return THRESHOLD
        if self.stagnation_iterations is not None and self.stagnation_count >= self.stagnation_iterations:
            return STAGNATION
        if iteration >= self.max_iterations:
            return MAX_ITERATIONS
        return None
