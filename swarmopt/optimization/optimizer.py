# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import time
import logging
import threading
import numpy as np
import swarmopt.common.typing as tp
from swarmopt.common import errors
from . import boundaries
from . import convergence
from . import utils
from .parameters import PSOParameters
from .parameters import Bounds
from .randomsource import RandomSource
from .result import OptimisationResult
from .swarm import Swarm


logger = logging.getLogger(__name__)
BoundsLike = tp.Union[Bounds, tp.Tuple[tp.BoundLike, tp.BoundLike]]
_IterationCallBack = tp.Callable[["Optimizer", Swarm, int], None]


class Optimizer:
    """Particle swarm optimizer (minimization), driving the iteration loop:

    - initialization of the swarm (uniform positions and velocities, one evaluation per particle)
    - at each iteration, for each particle: velocity update, velocity clamping,
      position update, boundary policy, evaluation, personal/global best update
    - convergence check after each iteration

    Parameters
    ----------
    executor: Executor or None
        An executor object, with method :code:`submit(callable, *args, **kwargs)` and returning a Future-like object
        with methods :code:`done() -> bool` and :code:`result() -> float`, used to evaluate the particles of an iteration
        in parallel. Eg: :code:`concurrent.futures.ThreadPoolExecutor`. This is only allowed with synchronous updates
        (:code:`PSOParameters(update="synchronous")`), since with sequential updates each particle may depend on a global
        best found earlier in the same iteration.

    Note
    ----
    - All random draws and position updates are performed in the calling thread, in particle order. Only evaluations are
      dispatched to the executor, so results only depend on the seed, not on the executor.
    - The run can be stopped between two iterations through :code:`cancel()`, from a callback or another thread.
    """

    def __init__(self, executor: tp.Optional[tp.ExecutorLike] = None) -> None:
        self.executor = executor
        self.parameters: tp.Optional[PSOParameters] = None
        self.swarm: tp.Optional[Swarm] = None
        self._callbacks: tp.Dict[str, tp.List[tp.Any]] = {}
        self._cancel_event = threading.Event()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(parameters={self.parameters}, executor={self.executor})"

    def register_callback(self, name: str, callback: _IterationCallBack) -> None:
        """Add a callback method called at the end of each iteration, as :code:`callback(optimizer, swarm, iteration)`,
        after the update of the fitness history and before the convergence check.
        This can be useful for custom logging, or for cancelling the run.

        Parameters
        ----------
        name: str
            name of the event to register the callback for (only :code:`iteration` for now)
        callback: callable
            a callable taking the optimizer, the swarm and the number of completed iterations
        """
        if name != "iteration":
            raise errors.SwarmRuntimeError(f'Only "iteration" can have callbacks (not {name})')
        self._callbacks.setdefault(name, []).append(callback)

    def remove_all_callbacks(self) -> None:
        """Removes all registered callables"""
        self._callbacks = {}

    def cancel(self) -> None:
        """Requests the cancellation of the run, which stops before starting its next iteration.
        This is thread-safe.
        """
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        """bool: whether a cancellation was requested and not consumed by a run yet"""
        return self._cancel_event.is_set()

    def run(
        self,
        parameters: PSOParameters,
        bounds: BoundsLike,
        objective: tp.ObjectiveFunction,
        random: tp.Optional[RandomSource] = None,
    ) -> OptimisationResult:
        """Minimizes the objective function over the bounds

        Parameters
        ----------
        parameters: PSOParameters
            configuration of the run
        bounds: Bounds or (lower, upper)
            box boundaries of the search space
        objective: callable
            function mapping a position (1d array) to a fitness value (float)
        random: RandomSource or None
            source of randomness. If None, a non-reproducible source is created.

        Returns
        -------
        OptimisationResult
            the best solution found, with convergence information

        Raises
        ------
        InvalidConfiguration
            if the parameters or the bounds are malformed (before any evaluation)
        """
        try:
            return self._run(parameters, bounds, objective, random)
        finally:
            self._cancel_event.clear()

    def _run(
        self,
        parameters: PSOParameters,
        bounds: BoundsLike,
        objective: tp.ObjectiveFunction,
        random: tp.Optional[RandomSource],
    ) -> OptimisationResult:
        start = time.time()
        if not isinstance(parameters, PSOParameters):
            raise errors.InvalidConfiguration(f"parameters must be a PSOParameters instance, got {parameters!r}")
        bounds = Bounds.from_pair(bounds)
        if self.executor is not None and parameters.update != "synchronous":
            raise errors.InvalidConfiguration(
                'Parallel evaluation through an executor requires synchronous updates (update="synchronous")'
            )
        evaluator = utils.FitnessEvaluator(objective)
        random = RandomSource() if random is None else random
        self.parameters = parameters
        policy = boundaries.registry[parameters.boundary]
        # go
        swarm = Swarm.initialize(parameters, bounds, random, evaluate=lambda x: self._evaluate_batch(evaluator, x))
        self.swarm = swarm
        logger.debug(
            "Initialized a swarm of %s particles in dimension %s, best initial fitness is %s",
            swarm.size,
            bounds.dimension,
            swarm.global_best_fitness,
        )
        monitor = convergence.ConvergenceMonitor(parameters)
        monitor.reset(swarm.global_best_fitness)
        history: tp.List[float] = []
        reason: tp.Optional[str] = None
        iteration = 0
        while reason is None:
            if self._cancel_event.is_set():
                reason = convergence.CANCELLED
                break
            if parameters.update == "sequential":
                self._sequential_iteration(swarm, parameters, bounds, policy, evaluator, random)
            else:
                self._synchronous_iteration(swarm, parameters, bounds, policy, evaluator, random)
            iteration += 1
            history.append(swarm.global_best_fitness)
            for callback in self._callbacks.get("iteration", []):
                callback(self, swarm, iteration)
            reason = monitor.update(swarm.global_best_fitness, iteration)
        logger.info(
            "Stopped after %s iterations (%s evaluations) with reason %r, best fitness is %s",
            iteration,
            swarm.num_evaluations,
            reason,
            swarm.global_best_fitness,
        )
        return OptimisationResult(
            best_position=swarm.global_best_position.copy(),
            best_fitness=swarm.global_best_fitness,
            iterations=iteration,
            function_evaluations=swarm.num_evaluations,
            fitness_history=tuple(history),
            converged=reason in convergence.CONVERGED_REASONS,
            convergence_reason=reason,
            elapsed_time=time.time() - start,
        )

    def _draw_and_move(
        self,
        swarm: Swarm,
        index: int,
        global_best_position: np.ndarray,
        parameters: PSOParameters,
        bounds: Bounds,
        policy: boundaries.BoundaryPolicy,
        random: RandomSource,
    ) -> None:
        particle = swarm.particles[index]
        r1 = random.uniform(0.0, 1.0, size=bounds.dimension)
        r2 = random.uniform(0.0, 1.0, size=bounds.dimension)
        particle.update_velocity(
            global_best_position, parameters, r1, r2, bounds.velocity_limit(parameters.velocity_clamp_factor)
        )
        particle.move(bounds, policy)

    def _sequential_iteration(
        self,
        swarm: Swarm,
        parameters: PSOParameters,
        bounds: Bounds,
        policy: boundaries.BoundaryPolicy,
        evaluator: utils.FitnessEvaluator,
        random: RandomSource,
    ) -> None:
        for index, particle in enumerate(swarm.particles):
            # the global best may have been updated by a previous particle of this sweep
            self._draw_and_move(swarm, index, swarm.global_best_position, parameters, bounds, policy, random)
            swarm.tell(index, evaluator(particle.position))

    def _synchronous_iteration(
        self,
        swarm: Swarm,
        parameters: PSOParameters,
        bounds: Bounds,
        policy: boundaries.BoundaryPolicy,
        evaluator: utils.FitnessEvaluator,
        random: RandomSource,
    ) -> None:
        global_best_position = swarm.global_best_position.copy()
        for index in range(swarm.size):
            self._draw_and_move(swarm, index, global_best_position, parameters, bounds, policy, random)
        fitnesses = self._evaluate_batch(evaluator, [p.position for p in swarm.particles])
        for index, fitness in enumerate(fitnesses):
            swarm.tell(index, fitness, update_global_best=False)
        swarm.merge_global_best()

    def _evaluate_batch(self, evaluator: utils.FitnessEvaluator, positions: tp.List[np.ndarray]) -> tp.List[float]:
        """Evaluates the positions through the executor (if any) and waits for all of them, in order"""
        executor: tp.ExecutorLike = utils.SequentialExecutor() if self.executor is None else self.executor
        jobs = [executor.submit(evaluator, x.copy()) for x in positions]
        return [job.result() for job in jobs]


def run(
    parameters: PSOParameters,
    bounds: BoundsLike,
    objective: tp.ObjectiveFunction,
    random: tp.Optional[RandomSource] = None,
) -> OptimisationResult:
    """Minimizes the objective function over the bounds with a default (sequential) optimizer.
    See :code:`Optimizer.run` for details.
    """
    return Optimizer().run(parameters, bounds, objective, random)
