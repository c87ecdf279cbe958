# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from numbers import Real
import numpy as np
import swarmopt.common.typing as tp
from swarmopt.common import errors
from swarmopt.common import tools as sotools
from . import boundaries


UPDATE_MODES = ("sequential", "synchronous")


def _is_int(value: tp.Any) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_))


def _is_real(value: tp.Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, (bool, np.bool_))


class PSOParameters:
    """Immutable configuration of a particle swarm optimization run.

    Parameters
    ----------
    swarm_size: int
        number of particles (> 0)
    max_iterations: int
        maximum number of iterations (> 0)
    inertia_weight: float
        fraction of the previous velocity retained at each step
    cognitive_coeff: float
        weight of the attraction toward the particle's own best position
    social_coeff: float
        weight of the attraction toward the swarm's best position
    velocity_clamp_factor: float
        fraction in (0, 1] of the search width of each dimension used as maximum absolute velocity
    fitness_threshold: float or None
        the run is considered converged as soon as the global best fitness is at or below this value
        (None deactivates this criterion)
    stagnation_iterations: int or None
        number of consecutive iterations without global best improvement which stops the run
        (None deactivates this criterion)
    stagnation_tolerance: float
        improvements smaller or equal to this value are considered as noise (not an improvement)
    boundary: str
        name of the boundary policy, among "clamp" (default: clamp to the bound and zero the velocity),
        "reflect" and "wrap"
    update: str
        "sequential" (default): the global best is updated as soon as a particle improves it,
        and the following particles of the same iteration see the new value.
        "synchronous": the global best is frozen during an iteration and merged once at its end,
        this allows evaluating the particles in parallel.

    Note
    ----
    Defaults for the hyper-parameters are the classical values (inertia 0.7298, coefficients 2.0).
    For faster convergence on smooth functions, the constriction values :code:`cognitive_coeff=1.49618`
    and :code:`social_coeff=1.49618` are commonly used.
    """

    # pylint: disable=too-many-arguments,unused-argument
    def __init__(
        self,
        swarm_size: int = 30,
        max_iterations: int = 1000,
        inertia_weight: float = 0.7298,
        cognitive_coeff: float = 2.0,
        social_coeff: float = 2.0,
        velocity_clamp_factor: float = 0.2,
        fitness_threshold: tp.Optional[float] = 1e-6,
        stagnation_iterations: tp.Optional[int] = 100,
        stagnation_tolerance: float = 1e-12,
        boundary: str = "clamp",
        update: str = "sequential",
    ) -> None:
        config = dict(locals())
        config.pop("self")
        config.pop("__class__", None)
        self._check(config)
        for name, value in config.items():
            object.__setattr__(self, name, value)
        object.__setattr__(self, "_config", config)

    # declarations for type checkers
    swarm_size: int
    max_iterations: int
    inertia_weight: float
    cognitive_coeff: float
    social_coeff: float
    velocity_clamp_factor: float
    fitness_threshold: tp.Optional[float]
    stagnation_iterations: tp.Optional[int]
    stagnation_tolerance: float
    boundary: str
    update: str

    @staticmethod
    def _check(config: tp.Dict[str, tp.Any]) -> None:
        for name in ["swarm_size", "max_iterations"]:
            if not _is_int(config[name]) or config[name] <= 0:
                raise errors.InvalidConfiguration(f"{name} must be a strictly positive integer (got {config[name]!r})")
        for name in ["inertia_weight", "cognitive_coeff", "social_coeff", "stagnation_tolerance"]:
            if not _is_real(config[name]) or not np.isfinite(config[name]):
                raise errors.InvalidConfiguration(f"{name} must be a finite real number (got {config[name]!r})")
        factor = config["velocity_clamp_factor"]
        if not _is_real(factor) or not 0 < factor <= 1:
            raise errors.InvalidConfiguration(f"velocity_clamp_factor must be in (0, 1] (got {factor!r})")
        threshold = config["fitness_threshold"]
        if threshold is not None and (not _is_real(threshold) or np.isnan(threshold)):
            raise errors.InvalidConfiguration(f"fitness_threshold must be a real number or None (got {threshold!r})")
        stagnation = config["stagnation_iterations"]
        if stagnation is not None and (not _is_int(stagnation) or stagnation <= 0):
            raise errors.InvalidConfiguration(
                f"stagnation_iterations must be a strictly positive integer or None (got {stagnation!r})"
            )
        if config["stagnation_tolerance"] < 0:
            raise errors.InvalidConfiguration("stagnation_tolerance must be non-negative")
        if config["boundary"] not in boundaries.registry:
            raise errors.InvalidConfiguration(
                f"Unknown boundary policy {config['boundary']!r}, choose among {sorted(boundaries.registry)}"
            )
        if config["update"] not in UPDATE_MODES:
            raise errors.InvalidConfiguration(f"Unknown update mode {config['update']!r}, choose among {UPDATE_MODES}")

    def __setattr__(self, name: str, value: tp.Any) -> None:
        raise errors.SwarmRuntimeError(
            f"Cannot modify {self.__class__.__name__} (it is immutable), use copy({name}=...) instead"
        )

    def config(self) -> tp.Dict[str, tp.Any]:
        return dict(self._config)

    def copy(self, **overrides: tp.Any) -> "PSOParameters":
        """Returns a new instance with some values replaced"""
        unknown = set(overrides) - set(self._config)
        if unknown:
            raise errors.InvalidConfiguration(f"Unknown parameter(s) {sorted(unknown)}")
        config = self.config()
        config.update(overrides)
        return self.__class__(**config)

    def __repr__(self) -> str:
        diff = sotools.non_default_arguments(self.__class__.__init__, self._config)
        params = ", ".join(f"{x}={y!r}" for x, y in sorted(diff.items()))
        return f"{self.__class__.__name__}({params})"

    def __eq__(self, other: tp.Any) -> tp.Any:
        if self.__class__ == other.__class__:
            return self._config == other._config
        return False

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._config.items())))


class Bounds:
    """Box boundaries of the search space.

    Parameters
    ----------
    lower: float or sequence of float
        lower bound of each dimension
    upper: float or sequence of float
        upper bound of each dimension
    dimension: int or None
        dimension of the search space. Required if both bounds are scalars,
        checked against the length of the bounds otherwise.

    Raises
    ------
    InvalidConfiguration
        if the dimension is 0, the lengths mismatch, a bound is not finite
        or lower[i] >= upper[i] for any i.
    """

    def __init__(self, lower: tp.BoundLike, upper: tp.BoundLike, dimension: tp.Optional[int] = None) -> None:
        try:
            low = np.array(lower, dtype=float)
            up = np.array(upper, dtype=float)
        except (TypeError, ValueError) as e:
            raise errors.InvalidConfiguration(f"Bounds must be real numbers: {e}") from e
        if low.ndim > 1 or up.ndim > 1:
            raise errors.InvalidConfiguration("Bounds must be scalars or 1-dimensional sequences")
        if dimension is not None and (not _is_int(dimension) or dimension < 0):
            raise errors.InvalidConfiguration(f"dimension must be a non-negative integer (got {dimension!r})")
        if not low.ndim and not up.ndim:
            if dimension is None:
                raise errors.InvalidConfiguration("dimension must be provided when both bounds are scalars")
        if dimension is None:
            dimension = max(low.size if low.ndim else 0, up.size if up.ndim else 0)
        for name, arr in [("lower", low), ("upper", up)]:
            if arr.ndim and arr.size != dimension:
                raise errors.InvalidConfiguration(
                    f"{name} bound has length {arr.size} while the dimension is {dimension}"
                )
        if not dimension:
            raise errors.InvalidConfiguration("No variable to optimize (dimension is 0)")
        low = np.broadcast_to(low, (dimension,)).copy()
        up = np.broadcast_to(up, (dimension,)).copy()
        if not (np.all(np.isfinite(low)) and np.all(np.isfinite(up))):
            raise errors.InvalidConfiguration("Bounds must be finite")
        with np.errstate(over="ignore"):
            width = up - low
        if not np.all(np.isfinite(width)):
            raise errors.InvalidConfiguration("Bounds width overflows (upper - lower must be a finite float)")
        wrong = np.where(low >= up)[0]
        if wrong.size:
            raise errors.InvalidConfiguration(
                f"Lower bounds must be strictly smaller than upper bounds (failing dimensions: {wrong.tolist()})"
            )
        low.setflags(write=False)
        up.setflags(write=False)
        self.lower = low
        self.upper = up

    @classmethod
    def from_pair(cls, bounds: tp.Union["Bounds", tp.Tuple[tp.BoundLike, tp.BoundLike]]) -> "Bounds":
        """Converts a (lower, upper) pair into Bounds (Bounds instances are returned as is)"""
        if isinstance(bounds, cls):
            return bounds
        try:
            lower, upper = bounds  # type: ignore
        except (TypeError, ValueError) as e:
            raise errors.InvalidConfiguration(f"Bounds must be provided as a (lower, upper) pair, got {bounds!r}") from e
        return cls(lower, upper)

    @property
    def dimension(self) -> int:
        return self.lower.size

    @property
    def width(self) -> np.ndarray:
        return self.upper - self.lower  # type: ignore

    def velocity_limit(self, velocity_clamp_factor: float) -> np.ndarray:
        """Maximum absolute velocity of each dimension"""
        return velocity_clamp_factor * self.width  # type: ignore

    def contains(self, position: tp.ArrayLike) -> bool:
        x = np.asarray(position)
        return bool(np.all(x >= self.lower) and np.all(x <= self.upper))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(lower={self.lower.tolist()}, upper={self.upper.tolist()})"
