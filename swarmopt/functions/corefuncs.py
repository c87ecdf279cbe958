# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Classical continuous test functions, all with a minimum value of 0.
Each of them is registered with its conventional search box ("bounds" info) and the
coordinate of its minimum on every axis ("argmin" info).
"""

from math import exp, sqrt
import numpy as np
import swarmopt.common.typing as tp
from swarmopt.common.decorators import Registry


registry: Registry[tp.Callable[[np.ndarray], float]] = Registry("test function")


@registry.register_with_info(bounds=(-5.12, 5.12), argmin=0.0)
def sphere(x: np.ndarray) -> float:
    """The most classical continuous optimization testbed.

    If you do not solve that one then you have a bug."""
    x = np.asarray(x, dtype=float)
    assert x.ndim == 1
    return float(x.dot(x))


@registry.register_with_info(bounds=(-5.12, 5.12), argmin=0.0)
def rastrigin(x: np.ndarray) -> float:
    """Classical multimodal function."""
    x = np.asarray(x, dtype=float)
    cosi = float(np.sum(np.cos(2 * np.pi * x)))
    return float(10 * (len(x) - cosi) + sphere(x))


@registry.register_with_info(bounds=(-5.0, 10.0), argmin=1.0)
def rosenbrock(x: np.ndarray) -> float:
    x = np.asarray(x, dtype=float)
    x_m_1 = x[:-1] - 1
    x_diff = x[:-1] ** 2 - x[1:]
    return float(100 * x_diff.dot(x_diff) + x_m_1.dot(x_m_1))


@registry.register_with_info(bounds=(-32.768, 32.768), argmin=0.0)
def ackley(x: np.ndarray) -> float:
    x = np.asarray(x, dtype=float)
    dim = x.size
    sum_cos = np.sum(np.cos(2 * np.pi * x))
    # max guards against tiny negative values from roundoff
    return float(-20.0 * exp(-0.2 * sqrt(max(sphere(x) / dim, 0.0))) - exp(sum_cos / dim) + 20 + exp(1))


@registry.register_with_info(bounds=(-65.536, 65.536), argmin=0.0)
def schwefel_1_2(x: np.ndarray) -> float:
    cx = np.cumsum(np.asarray(x, dtype=float))
    return sphere(cx)


@registry.register_with_info(bounds=(-600.0, 600.0), argmin=0.0)
def griewank(x: np.ndarray) -> float:
    """Multimodal function, with many regularly distributed local minima."""
    x = np.asarray(x, dtype=float)
    part1 = sphere(x)
    part2 = np.prod(np.cos(x / np.sqrt(1 + np.arange(len(x)))))
    return 1 + (float(part1) / 4000.0) - float(part2)


def optimum_position(name: str, dimension: int) -> np.ndarray:
    """Position of the global minimum of a registered function"""
    return np.full(dimension, registry.get_info(name)["argmin"], dtype=float)
