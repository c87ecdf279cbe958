# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Boundary policies, applied to a particle right after its position update.
Each policy takes (position, velocity, lower, upper) and returns new
(position, velocity) arrays, with the position inside [lower, upper].
"""

import numpy as np
import swarmopt.common.typing as tp
from swarmopt.common.decorators import Registry


BoundaryPolicy = tp.Callable[
    [np.ndarray, np.ndarray, np.ndarray, np.ndarray], tp.Tuple[np.ndarray, np.ndarray]
]
registry: Registry[BoundaryPolicy] = Registry("boundary policy")


@registry.register
def clamp(
    position: np.ndarray, velocity: np.ndarray, lower: np.ndarray, upper: np.ndarray
) -> tp.Tuple[np.ndarray, np.ndarray]:
    """Default policy: out-of-bounds coordinates are clamped to the nearest bound
    and the corresponding velocity components are set to 0, so that the particle
    does not keep pushing against the wall.
    """
    outside = np.logical_or(position < lower, position > upper)
    return np.clip(position, lower, upper), np.where(outside, 0.0, velocity)


@registry.register
def reflect(
    position: np.ndarray, velocity: np.ndarray, lower: np.ndarray, upper: np.ndarray
) -> tp.Tuple[np.ndarray, np.ndarray]:
    """Out-of-bounds coordinates are mirrored back inside the box and the
    corresponding velocity components change sign.
    """
    x = np.array(position, dtype=float)
    below = x < lower
    above = x > upper
    x[below] = 2 * lower[below] - x[below]
    x[above] = 2 * upper[above] - x[above]
    v = np.where(np.logical_or(below, above), -velocity, velocity)
    # a reflection can only overshoot the opposite bound if the speed is larger than the width
    return np.clip(x, lower, upper), v


@registry.register
def wrap(
    position: np.ndarray, velocity: np.ndarray, lower: np.ndarray, upper: np.ndarray
) -> tp.Tuple[np.ndarray, np.ndarray]:
    """Periodic boundaries: out-of-bounds coordinates re-enter from the opposite side.
    The velocity is kept unchanged.
    """
    outside = np.logical_or(position < lower, position > upper)
    wrapped = lower + np.mod(position - lower, upper - lower)
    x = np.where(outside, wrapped, position)
    return np.clip(x, lower, upper), np.array(velocity, dtype=float)
