# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import time
import numpy as np
import swarmopt.common.typing as tp
from swarmopt.common import errors


def _entropy_seed_sequence() -> np.random.SeedSequence:
    """Seed sequence mixing operating system entropy and the current time (not reproducible)"""
    os_entropy = np.random.SeedSequence().entropy
    return np.random.SeedSequence([os_entropy, time.time_ns()])


class RandomSource:
    """Source of uniform random draws used for swarm initialization and updates.

    Parameters
    ----------
    seed: int or None
        seed of the stream. If None, the stream is seeded from operating system
        entropy mixed with the current time, and is therefore not reproducible.

    Note
    ----
    - Two instances seeded identically and driven with the same sequence of calls
      provide bit-identical outputs.
    - Instances are not meant to be shared between threads. Use :code:`spawn` to
      create independent streams for workers.
    """

    def __init__(self, seed: tp.Optional[int] = None) -> None:
        self._seed: tp.Optional[int] = None
        self._seed_sequence = _entropy_seed_sequence()
        self._state = np.random.RandomState(self._seed_sequence.generate_state(4))
        if seed is not None:
            self.set_seed(seed)

    @classmethod
    def _from_seed_sequence(cls, seed_sequence: np.random.SeedSequence) -> "RandomSource":
        source = cls.__new__(cls)
        source._seed = None
        source._seed_sequence = seed_sequence
        source._state = np.random.RandomState(seed_sequence.generate_state(4))
        return source

    @property
    def seed(self) -> tp.Optional[int]:
        """int or None: last seed explicitly provided to this instance"""
        return self._seed

    @property
    def random_state(self) -> np.random.RandomState:
        """np.random.RandomState: underlying numpy stream"""
        return self._state

    def set_seed(self, seed: int) -> None:
        """Reinitializes the stream deterministically"""
        if isinstance(seed, (bool, np.bool_)) or not isinstance(seed, (int, np.integer)):
            raise errors.SwarmTypeError(f"Seed must be an integer, got {seed!r} (type: {type(seed)})")
        if seed < 0:
            raise errors.SwarmValueError(f"Seed must be non-negative, got {seed}")
        self._seed = int(seed)
        self._seed_sequence = np.random.SeedSequence(self._seed)
        self._state = np.random.RandomState(self._seed_sequence.generate_state(4))

    def uniform(
        self, min_value: tp.BoundLike, max_value: tp.BoundLike, size: tp.Optional[int] = None
    ) -> tp.Any:
        """Draws uniformly in [min_value, max_value]

        Parameters
        ----------
        min_value: float or array
            lower end of the interval (broadcasted with max_value)
        max_value: float or array
            upper end of the interval
        size: int or None
            number of draws. If None, the output has the broadcasted shape of the bounds

        Returns
        -------
        float or np.ndarray
            a float if both bounds are scalars and size is None, an array otherwise

        Raises
        ------
        InvalidRange
            if min_value > max_value or a bound is not finite (for any element)
        """
        low = np.asarray(min_value, dtype=float)
        high = np.asarray(max_value, dtype=float)
        if not (np.all(np.isfinite(low)) and np.all(np.isfinite(high))):
            raise errors.InvalidRange(
                f"Cannot draw uniformly with non-finite bounds (min={min_value}, max={max_value})"
            )
        if np.any(low > high):
            raise errors.InvalidRange(f"Cannot draw uniformly with min > max (min={min_value}, max={max_value})")
        shape = np.broadcast(low, high).shape if size is None else size
        unit = self._state.random_sample() if shape == () else self._state.random_sample(shape)
        with np.errstate(over="ignore", invalid="ignore"):
            width = high - low
            # the second form does not overflow for ranges wider than the largest float
            values = np.where(np.isfinite(width), low + unit * width, low + unit * high - unit * low)
        values = np.clip(values, low, high)
        if size is None and not values.ndim:
            return float(values)
        return values

    def spawn(self, num: int) -> tp.List["RandomSource"]:
        """Creates independent child sources, deterministically derived from this
        instance's seed sequence (one per worker for instance).
        Successive calls provide different children.
        """
        if num < 0:
            raise errors.SwarmValueError(f"Number of children must be non-negative, got {num}")
        return [self._from_seed_sequence(child) for child in self._seed_sequence.spawn(num)]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(seed={self._seed})"
