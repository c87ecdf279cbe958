# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import numpy as np
import swarmopt.common.typing as tp
from swarmopt.common import errors
from swarmopt.common.tools import sanitize_fitness
from .parameters import PSOParameters
from .parameters import Bounds
from .randomsource import RandomSource
from . import boundaries


BatchEvaluator = tp.Callable[[tp.List[np.ndarray]], tp.List[float]]


class Particle:
    """One candidate solution, with its velocity and the memory of its best position.

    Parameters
    ----------
    position: array
        initial position
    velocity: array
        initial velocity
    fitness: float
        fitness of the initial position

    Note
    ----
    Non-finite fitness values are stored as is in :code:`current_fitness` but are
    handled as :code:`inf` for the personal best, so that they never become a best.
    """

    def __init__(self, position: tp.ArrayLike, velocity: tp.ArrayLike, fitness: float) -> None:
        self.position = np.array(position, dtype=float)
        self.velocity = np.array(velocity, dtype=float)
        if self.position.shape != self.velocity.shape or self.position.ndim != 1:
            raise errors.SwarmValueError(
                f"Position and velocity must be 1d arrays of same shape "
                f"(got {self.position.shape} and {self.velocity.shape})"
            )
        self.current_fitness = float(fitness)
        self.personal_best_position = self.position.copy()
        self.personal_best_fitness = sanitize_fitness(self.current_fitness)

    @property
    def dimension(self) -> int:
        return self.position.size

    def update_velocity(
        self,
        global_best_position: np.ndarray,
        parameters: PSOParameters,
        r1: np.ndarray,
        r2: np.ndarray,
        velocity_limit: np.ndarray,
    ) -> None:
        """Inertia + cognitive + social update, then clamping to [-velocity_limit, velocity_limit]"""
        velocity = (
            parameters.inertia_weight * self.velocity
            + parameters.cognitive_coeff * r1 * (self.personal_best_position - self.position)
            + parameters.social_coeff * r2 * (global_best_position - self.position)
        )
        self.velocity = np.clip(velocity, -velocity_limit, velocity_limit)

    def move(self, bounds: Bounds, policy: boundaries.BoundaryPolicy) -> None:
        """Applies the velocity to the position, then the boundary policy"""
        self.position, self.velocity = policy(self.position + self.velocity, self.velocity, bounds.lower, bounds.upper)

    def tell(self, fitness: float) -> bool:
        """Registers the fitness of the current position and returns whether
        the personal best strictly improved
        """
        self.current_fitness = float(fitness)
        loss = sanitize_fitness(self.current_fitness)
        if loss < self.personal_best_fitness:
            self.personal_best_fitness = loss
            self.personal_best_position = self.position.copy()
            return True
        return False

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(position={self.position.tolist()}, "
            f"personal_best_fitness={self.personal_best_fitness})"
        )


class Swarm:
    """Ordered collection of particles, along with the best position found by any of them.

    Parameters
    ----------
    particles: list of Particle
        the particles (evaluated at least once)
    """

    def __init__(self, particles: tp.Sequence[Particle]) -> None:
        if not particles:
            raise errors.InvalidConfiguration("A swarm requires at least one particle")
        self.particles = list(particles)
        self.num_evaluations = len(self.particles)
        self.global_best_fitness = float("inf")
        self.global_best_position = self.particles[0].personal_best_position.copy()
        self.merge_global_best()

    @classmethod
    def initialize(
        cls,
        parameters: PSOParameters,
        bounds: Bounds,
        random: RandomSource,
        evaluate: BatchEvaluator,
    ) -> "Swarm":
        """Draws particles uniformly in the bounds, with velocities uniformly
        drawn in [-v_max, v_max], and evaluates them all (one call per particle).

        Parameters
        ----------
        parameters: PSOParameters
            configuration of the run (swarm size and velocity clamp factor are used)
        bounds: Bounds
            search space
        random: RandomSource
            source of the draws (position then velocity for each particle, in order)
        evaluate: callable
            function mapping the list of initial positions to their fitness values
        """
        velocity_limit = bounds.velocity_limit(parameters.velocity_clamp_factor)
        positions: tp.List[np.ndarray] = []
        velocities: tp.List[np.ndarray] = []
        for _ in range(parameters.swarm_size):
            positions.append(random.uniform(bounds.lower, bounds.upper))
            velocities.append(random.uniform(-velocity_limit, velocity_limit))
        fitnesses = evaluate([x.copy() for x in positions])
        return cls([Particle(x, v, f) for x, v, f in zip(positions, velocities, fitnesses)])

    @property
    def size(self) -> int:
        return len(self.particles)

    def tell(self, index: int, fitness: float, update_global_best: bool = True) -> None:
        """Registers the fitness of the current position of a particle

        Parameters
        ----------
        index: int
            index of the particle in the swarm
        fitness: float
            fitness of its current position
        update_global_best: bool
            if True, the global best is updated right away (sequential updates), otherwise
            it must be updated through :code:`merge_global_best` at the end of the sweep
        """
        particle = self.particles[index]
        self.num_evaluations += 1
        if particle.tell(fitness) and update_global_best:
            self._offer(particle)

    def merge_global_best(self) -> None:
        """Updates the global best with the personal bests of all particles (in order)"""
        for particle in self.particles:
            self._offer(particle)

    def _offer(self, particle: Particle) -> None:
        if particle.personal_best_fitness < self.global_best_fitness:
            self.global_best_fitness = particle.personal_best_fitness
            self.global_best_position = particle.personal_best_position.copy()

    def positions(self) -> np.ndarray:
        return np.array([p.position for p in self.particles])

    def velocities(self) -> np.ndarray:
        return np.array([p.velocity for p in self.particles])

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(size={self.size}, global_best_fitness={self.global_best_fitness})"
