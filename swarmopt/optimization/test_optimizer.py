# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import typing as tp
from concurrent import futures
import numpy as np
import pytest
from swarmopt.common import errors
from swarmopt.common import testing
from swarmopt.common import tools
from swarmopt.functions import corefuncs
from . import boundaries
from . import optimizer as optlib
from . import utils
from .parameters import PSOParameters
from .parameters import Bounds
from .randomsource import RandomSource
from .swarm import Particle
from .swarm import Swarm


class CounterFunction:
    def __init__(self, func: tp.Callable[[np.ndarray], float] = corefuncs.sphere) -> None:
        self.count = 0
        self.func = func

    def __call__(self, x: np.ndarray) -> float:
        self.count += 1
        return self.func(x)


class _HalfSource(RandomSource):
    """Draws 0.5 for every random coefficient"""

    def uniform(self, min_value: tp.Any, max_value: tp.Any, size: tp.Optional[int] = None) -> tp.Any:
        return np.full(size, 0.5)


def _shifted_sphere(x: np.ndarray) -> float:
    # minimum outside of the test boxes, so that particles often hit the upper bounds
    return float(np.sum((x - 20.0) ** 2))


@testing.parametrized(
    constriction=(1.49618,),
    defaults=(2.0,),
)
def test_threshold_convergence_on_sphere(coeff: float) -> None:
    params = PSOParameters(
        swarm_size=20,
        max_iterations=200,
        cognitive_coeff=coeff,
        social_coeff=coeff,
        stagnation_iterations=None,
    )
    func = CounterFunction()
    result = optlib.run(params, ([-10.0, -10.0], [10.0, 10.0]), func, RandomSource(12))
    assert result.convergence_reason == "threshold"
    assert result.converged
    assert not result.cancelled
    assert result.best_fitness < 1e-6
    assert result.iterations < 200
    assert func.count == result.function_evaluations == 20 * (result.iterations + 1)
    np.testing.assert_array_almost_equal(result.best_position, [0.0, 0.0], decimal=2)
    assert result.best_fitness == corefuncs.sphere(result.best_position)


def test_stagnation_on_constant_function() -> None:
    params = PSOParameters(swarm_size=10, max_iterations=1000, stagnation_iterations=10)
    result = optlib.run(params, Bounds(-1.0, 1.0, dimension=3), lambda x: 5.0, RandomSource(0))
    assert result.convergence_reason == "stagnation"
    assert result.converged
    assert result.iterations == 10
    assert result.function_evaluations == 110
    assert result.best_fitness == 5.0
    assert result.fitness_history == (5.0,) * 10


def test_max_iterations() -> None:
    params = PSOParameters(swarm_size=5, max_iterations=7, fitness_threshold=None, stagnation_iterations=None)
    result = optlib.run(params, Bounds(-5.0, 5.0, dimension=2), corefuncs.rastrigin, RandomSource(1))
    assert result.convergence_reason == "max_iterations"
    assert not result.converged
    assert result.iterations == 7
    assert len(result.fitness_history) == 7
    assert result.function_evaluations == 40


def test_degenerate_bounds_are_rejected_before_evaluation() -> None:
    func = CounterFunction()
    with pytest.raises(errors.InvalidConfiguration):
        optlib.run(PSOParameters(), ([0.0, -1.0], [0.0, 1.0]), func, RandomSource(0))
    assert not func.count
    with pytest.raises(errors.InvalidConfiguration):
        optlib.run(PSOParameters(swarm_size=4), ([-1e308], [1e308]), func, RandomSource(0))
    assert not func.count


def test_cancel_from_callback() -> None:
    params = PSOParameters(swarm_size=10, fitness_threshold=None, stagnation_iterations=None)
    opt = optlib.Optimizer()
    iterations: tp.List[int] = []

    def callback(optimizer: optlib.Optimizer, swarm: Swarm, iteration: int) -> None:
        iterations.append(iteration)
        if iteration == 3:
            optimizer.cancel()

    opt.register_callback("iteration", callback)
    result = opt.run(params, Bounds(-5.0, 5.0, dimension=2), corefuncs.sphere, RandomSource(3))
    assert iterations == [1, 2, 3]
    assert result.iterations == 3
    assert result.convergence_reason == "cancelled"
    assert result.cancelled
    assert not result.converged
    assert len(result.fitness_history) == 3
    assert result.function_evaluations == 40
    assert not opt.cancelled
    # the cancellation is consumed, next run goes on
    opt.remove_all_callbacks()
    result = opt.run(params.copy(max_iterations=5), Bounds(-5.0, 5.0, dimension=2), corefuncs.sphere, RandomSource(3))
    assert result.iterations == 5


def test_cancel_before_run() -> None:
    params = PSOParameters(swarm_size=8)
    opt = optlib.Optimizer()
    opt.cancel()
    assert opt.cancelled
    func = CounterFunction()
    result = opt.run(params, Bounds(-5.0, 5.0, dimension=2), func, RandomSource(3))
    assert result.iterations == 0
    assert result.cancelled
    assert result.fitness_history == ()
    assert result.function_evaluations == func.count == 8
    assert np.isfinite(result.best_fitness)
    assert not opt.cancelled


def test_register_callback_errors() -> None:
    opt = optlib.Optimizer()
    with pytest.raises(errors.SwarmRuntimeError):
        opt.register_callback("tell", lambda *args: None)


def test_deterministic_runs() -> None:
    params = PSOParameters(swarm_size=12, max_iterations=30, fitness_threshold=None)
    bounds = Bounds(-5.0, 5.0, dimension=4)
    results = [optlib.run(params, bounds, corefuncs.rastrigin, RandomSource(2024)) for _ in range(2)]
    np.testing.assert_array_equal(results[0].best_position, results[1].best_position)
    assert results[0].best_fitness == results[1].best_fitness
    assert results[0].fitness_history == results[1].fitness_history
    other = optlib.run(params, bounds, corefuncs.rastrigin, RandomSource(2025))
    assert other.fitness_history != results[0].fitness_history


@testing.parametrized(
    clamp_sequential=("clamp", "sequential"),
    clamp_synchronous=("clamp", "synchronous"),
    reflect_sequential=("reflect", "sequential"),
    wrap_synchronous=("wrap", "synchronous"),
)
def test_swarm_invariants(boundary: str, update: str) -> None:
    params = PSOParameters(
        swarm_size=15,
        max_iterations=40,
        fitness_threshold=None,
        stagnation_iterations=None,
        velocity_clamp_factor=0.5,
        boundary=boundary,
        update=update,
    )
    bounds = Bounds([-5.0, 0.0, 1.0], [5.0, 2.0, 10.0])
    limit = bounds.velocity_limit(params.velocity_clamp_factor)
    previous: tp.Dict[str, tp.Any] = {}

    def check(optimizer: optlib.Optimizer, swarm: Swarm, iteration: int) -> None:
        testing.assert_within_bounds(swarm.positions(), bounds.lower, bounds.upper, err_msg=f"Iteration {iteration}")
        testing.assert_within_bounds(swarm.velocities(), -limit, limit, err_msg=f"Iteration {iteration}")
        pbests = [p.personal_best_fitness for p in swarm.particles]
        for particle in swarm.particles:
            assert particle.personal_best_fitness == _shifted_sphere(particle.personal_best_position)
        assert swarm.global_best_fitness == min(pbests)
        if previous:
            assert all(new <= old for new, old in zip(pbests, previous["pbests"]))
            assert swarm.global_best_fitness <= previous["gbest"]
        previous.update(pbests=pbests, gbest=swarm.global_best_fitness)

    opt = optlib.Optimizer()
    opt.register_callback("iteration", check)
    result = opt.run(params, bounds, _shifted_sphere, RandomSource(5))
    assert result.iterations == 40
    assert tools.is_non_increasing(result.fitness_history)
    assert result.fitness_history[-1] == result.best_fitness
    assert bounds.contains(result.best_position)


def test_sequential_updates_use_fresh_global_best() -> None:
    params = PSOParameters(inertia_weight=0.0, cognitive_coeff=0.0, social_coeff=1.0, velocity_clamp_factor=1.0)
    bounds = Bounds(-10.0, 10.0, dimension=1)
    evaluator = utils.FitnessEvaluator(corefuncs.sphere)
    opt = optlib.Optimizer()
    expected = {"sequential": 1.75, "synchronous": 4.0}
    for mode, position in expected.items():
        swarm = Swarm([Particle([-5.0], [0.0], 25.0), Particle([4.0], [0.0], 16.0)])
        method = getattr(opt, f"_{mode}_iteration")
        method(swarm, params, bounds, boundaries.clamp, evaluator, _HalfSource(0))
        np.testing.assert_array_almost_equal(swarm.particles[0].position, [-0.5])
        np.testing.assert_array_almost_equal(swarm.particles[1].position, [position], err_msg=f"Wrong for {mode}")
        assert swarm.global_best_fitness == 0.25
        assert swarm.num_evaluations == 4


def test_parallel_evaluation_is_deterministic() -> None:
    params = PSOParameters(swarm_size=16, max_iterations=25, update="synchronous", fitness_threshold=None)
    bounds = Bounds(-5.0, 5.0, dimension=3)
    reference = optlib.Optimizer().run(params, bounds, corefuncs.ackley, RandomSource(7))
    with futures.ThreadPoolExecutor(max_workers=4) as executor:
        result = optlib.Optimizer(executor=executor).run(params, bounds, corefuncs.ackley, RandomSource(7))
    np.testing.assert_array_equal(result.best_position, reference.best_position)
    assert result.fitness_history == reference.fitness_history
    assert result.function_evaluations == reference.function_evaluations


def test_executor_requires_synchronous_updates() -> None:
    func = CounterFunction()
    opt = optlib.Optimizer(executor=utils.SequentialExecutor())
    with pytest.raises(errors.InvalidConfiguration):
        opt.run(PSOParameters(), Bounds(-1.0, 1.0, dimension=2), func)
    assert not func.count


def _nan_on_positive(x: np.ndarray) -> float:
    return float("nan") if x[0] > 0 else corefuncs.sphere(x)


def test_non_finite_fitness_is_never_best() -> None:
    params = PSOParameters(swarm_size=10, max_iterations=20, fitness_threshold=None)
    with pytest.warns(errors.BadFitnessWarning):
        result = optlib.run(params, Bounds(-5.0, 5.0, dimension=2), _nan_on_positive, RandomSource(12))
    assert np.isfinite(result.best_fitness)
    assert result.best_position[0] <= 0
    assert all(np.isfinite(result.fitness_history))


@testing.parametrized(
    nan=(float("nan"),),
    inf=(float("inf"),),
    minus_inf=(float("-inf"),),
)
def test_only_non_finite_fitness(value: float) -> None:
    params = PSOParameters(swarm_size=4, stagnation_iterations=5)
    bounds = Bounds(-1.0, 1.0, dimension=2)
    with pytest.warns(errors.BadFitnessWarning):
        result = optlib.run(params, bounds, lambda x: value, RandomSource(12))
    assert result.best_fitness == float("inf")
    assert result.convergence_reason == "stagnation"
    assert result.iterations == 5
    assert bounds.contains(result.best_position)


def test_objective_errors_propagate() -> None:
    def failing(x: np.ndarray) -> float:
        if x[0] > 0.5:
            raise ValueError("Boom")
        return 0.0

    opt = optlib.Optimizer()
    with pytest.raises(ValueError, match="Boom"):
        opt.run(PSOParameters(fitness_threshold=None), Bounds(0.0, 1.0, dimension=2), failing, RandomSource(1))
    assert not opt.cancelled


@testing.parametrized(
    string=(lambda x: "12",),
    none=(lambda x: None,),
    vector=(lambda x: np.array([1.0, 2.0]),),
    boolean=(lambda x: True,),
    numpy_boolean=(lambda x: np.array([True]),),
)
def test_objective_must_return_a_number(objective: tp.Callable[[np.ndarray], tp.Any]) -> None:
    with pytest.raises(errors.SwarmTypeError):
        optlib.run(PSOParameters(), Bounds(0.0, 1.0, dimension=2), objective, RandomSource(1))


def test_objective_gets_a_copy() -> None:
    def modifying(x: np.ndarray) -> np.ndarray:
        value = corefuncs.sphere(x)
        x[:] = 1000.0
        return np.array([value])  # size-1 arrays are accepted

    params = PSOParameters(swarm_size=5, max_iterations=5)
    bounds = Bounds(-1.0, 1.0, dimension=2)
    result = optlib.run(params, bounds, modifying, RandomSource(1))
    assert bounds.contains(result.best_position)


@testing.parametrized(
    parameters=({"swarm_size": 3}, Bounds(0, 1, dimension=1), corefuncs.sphere),
    bounds=(PSOParameters(), ([0.0], [1.0], [2.0]), corefuncs.sphere),
    objective=(PSOParameters(), Bounds(0, 1, dimension=1), "sphere"),
)
def test_invalid_run_arguments(parameters: tp.Any, bounds: tp.Any, objective: tp.Any) -> None:
    with pytest.raises(errors.InvalidConfiguration):
        optlib.Optimizer().run(parameters, bounds, objective)


def test_unseeded_run() -> None:
    params = PSOParameters(swarm_size=5, max_iterations=3, fitness_threshold=None)
    opt = optlib.Optimizer()
    result = opt.run(params, ([-1.0, -1.0], [1.0, 1.0]), corefuncs.sphere)
    assert result.iterations == 3
    assert opt.parameters == params
    assert opt.swarm is not None and opt.swarm.size == 5
    assert result.elapsed_time >= 0
    data = result.as_dict()
    assert isinstance(data["best_position"], list)
    assert data["iterations"] == 3
    assert "convergence_reason='max_iterations'" in repr(result)


class _FailingSource(RandomSource):
    """Rejects every draw after the first num_draws ones"""

    def __init__(self, num_draws: int) -> None:
        super().__init__(0)
        self.num_draws = num_draws

    def uniform(self, min_value: tp.Any, max_value: tp.Any, size: tp.Optional[int] = None) -> tp.Any:
        if self.num_draws <= 0:
            raise errors.InvalidRange("Cannot draw")
        self.num_draws -= 1
        return super().uniform(min_value, max_value, size)


@testing.parametrized(
    initialization=(0,),
    iteration=(8,),  # 4 particles draw a position and a velocity each at initialization
)
def test_random_source_errors_propagate(num_draws: int) -> None:
    params = PSOParameters(swarm_size=4, fitness_threshold=None)
    opt = optlib.Optimizer()
    with pytest.raises(errors.InvalidRange, match="Cannot draw"):
        opt.run(params, Bounds(-1.0, 1.0, dimension=2), corefuncs.sphere, _FailingSource(num_draws))
    assert not opt.cancelled
