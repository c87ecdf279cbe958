# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Callbacks to register on an :code:`Optimizer` as :code:`optimizer.register_callback("iteration", callback)`.
They are called as :code:`callback(optimizer, swarm, iteration)` after each completed iteration.
"""

import json
import time
import datetime
import logging
import warnings
from pathlib import Path
import numpy as np
import swarmopt.common.typing as tp
from .optimizer import Optimizer
from .swarm import Swarm

global_logger = logging.getLogger(__name__)


class _IntervalTrigger:
    """Fires when a given number of iterations or seconds has elapsed since it last fired"""

    def __init__(self, interval_iterations: int, interval_seconds: float) -> None:
        if interval_iterations <= 0 or interval_seconds <= 0:
            raise ValueError("Intervals must be strictly positive")
        self._interval_iterations = int(interval_iterations)
        self._interval_seconds = interval_seconds
        self._next_iteration = self._interval_iterations
        self._next_time = time.time() + interval_seconds

    def __call__(self, iteration: int) -> bool:
        now = time.time()
        if now < self._next_time and iteration < self._next_iteration:
            return False
        self._next_time = now + self._interval_seconds
        self._next_iteration = iteration + self._interval_iterations
        return True


class OptimizationPrinter:
    """Prints the best fitness and position of the swarm regularly.

    Parameters
    ----------
    print_interval_iterations: int
        max number of iterations between two prints
    print_interval_seconds: float
        max number of seconds between two prints
    """

    def __init__(self, print_interval_iterations: int = 1, print_interval_seconds: float = 60.0) -> None:
        self._trigger = _IntervalTrigger(print_interval_iterations, print_interval_seconds)

    def __call__(self, optimizer: Optimizer, swarm: Swarm, iteration: int) -> None:
        if self._trigger(iteration):
            print(
                f"After {iteration} iterations, best fitness is {swarm.global_best_fitness} "
                f"at {swarm.global_best_position.tolist()}"
            )


class OptimizationLogger:
    """Logs the best fitness and position of the swarm regularly.

    Parameters
    ----------
    logger: logging.Logger
        the logger to write to (defaults to this module's logger)
    log_level: int
        level of the records
    log_interval_iterations: int
        max number of iterations between two records
    log_interval_seconds: float
        max number of seconds between two records
    """

    def __init__(
        self,
        *,
        logger: logging.Logger = global_logger,
        log_level: int = logging.INFO,
        log_interval_iterations: int = 1,
        log_interval_seconds: float = 60.0,
    ) -> None:
        self._logger = logger
        self._log_level = log_level
        self._trigger = _IntervalTrigger(log_interval_iterations, log_interval_seconds)

    def __call__(self, optimizer: Optimizer, swarm: Swarm, iteration: int) -> None:
        if self._trigger(iteration):
            self._logger.log(
                self._log_level,
                "After %s iterations (%s evaluations), best fitness is %s at %s",
                iteration,
                swarm.num_evaluations,
                swarm.global_best_fitness,
                swarm.global_best_position.tolist(),
            )


class HistoryLogger:
    """Appends a summary of the swarm to a file after each iteration, as one json object per line:
    session timestamp, iteration, number of evaluations, best and mean fitness, and best position.

    Parameters
    ----------
    filepath: str or Path
        the file to write to (parent directories are created if need be)
    append: bool
        if False, a previously existing file is erased

    Example
    -------
    >>> history = HistoryLogger("history.json")
    >>> optimizer.register_callback("iteration", history)
    >>> optimizer.run(parameters, bounds, objective)
    >>> records = history.load()
    """

    def __init__(self, filepath: tp.PathLike, append: bool = True) -> None:
        self._session = datetime.datetime.now().strftime("%y-%m-%d %H:%M:%S")
        self._filepath = Path(filepath)
        if self._filepath.exists() and not append:
            self._filepath.unlink()
        self._filepath.parent.mkdir(exist_ok=True, parents=True)

    def __call__(self, optimizer: Optimizer, swarm: Swarm, iteration: int) -> None:
        fitnesses = np.array([p.current_fitness for p in swarm.particles])
        finite = fitnesses[np.isfinite(fitnesses)]
        record = {
            "#session": self._session,
            "#iteration": iteration,
            "#num-evaluations": swarm.num_evaluations,
            "#best-fitness": swarm.global_best_fitness,
            "#mean-fitness": float(np.mean(finite)) if finite.size else None,
            "best_position": swarm.global_best_position.tolist(),
        }
        try:  # logging must not break the optimization
            with self._filepath.open("a") as f:
                f.write(json.dumps(record) + "\n")
        except OSError as e:
            warnings.warn(f"Failed to write history to {self._filepath}: {e}")

    def load(self) -> tp.List[tp.Dict[str, tp.Any]]:
        """Reads all the records of the file"""
        if not self._filepath.exists():
            return []
        with self._filepath.open("r") as f:
            return [json.loads(line) for line in f if line.strip()]


class ProgressBar:
    """Displays a progress bar over the iterations of the run (requires :code:`tqdm`)"""

    def __init__(self) -> None:
        self._progress_bar: tp.Any = None
        self._current = 0

    def __call__(self, optimizer: Optimizer, swarm: Swarm, iteration: int) -> None:
        if self._progress_bar is None:
            # pylint: disable=import-outside-toplevel
            try:
                from tqdm import tqdm  # tqdm is an optional dependency
            except ImportError as e:
                raise ImportError(
                    f"{self.__class__.__name__} requires tqdm which is not installed by default "
                    "(pip install tqdm)"
                ) from e
            total = None if optimizer.parameters is None else optimizer.parameters.max_iterations
            self._progress_bar = tqdm(total=total, initial=self._current)
        self._progress_bar.update(1)
        self._progress_bar.set_postfix(best=swarm.global_best_fitness)
        self._current += 1

    def __getstate__(self) -> tp.Dict[str, tp.Any]:
        """tqdm instances cannot be pickled"""
        state = dict(self.__dict__)
        state["_progress_bar"] = None
        return state


class EarlyStopping:
    """Cancels the run as soon as a criterion is met.
    The run then stops before its next iteration, with a "cancelled" result.

    Parameters
    ----------
    stopping_criterion: callable
        :code:`criterion(optimizer, swarm, iteration) -> bool`, returning True when the run must stop

    Example
    -------
    Stop after the 4th iteration:

    >>> optimizer.register_callback("iteration", EarlyStopping(lambda opt, swarm, iteration: iteration >= 4))
    """

    def __init__(self, stopping_criterion: tp.Callable[[Optimizer, Swarm, int], bool]) -> None:
        self.stopping_criterion = stopping_criterion

    def __call__(self, optimizer: Optimizer, swarm: Swarm, iteration: int) -> None:
        if self.stopping_criterion(optimizer, swarm, iteration):
            optimizer.cancel()

    @classmethod
    def timer(cls, max_duration: float) -> "EarlyStopping":
        """Stops the run once max_duration seconds have elapsed since the end of its first iteration"""
        return cls(_DurationCriterion(max_duration))


class _DurationCriterion:
    def __init__(self, max_duration: float) -> None:
        self._max_duration = max_duration
        self._start: tp.Optional[float] = None

    def __call__(self, optimizer: Optimizer, swarm: Swarm, iteration: int) -> bool:
        if self._start is None:
            self._start = time.time()
        return time.time() > self._start + self._max_duration
