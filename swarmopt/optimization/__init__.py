# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from .optimizer import Optimizer as Optimizer
from .optimizer import run as run
from .parameters import PSOParameters as PSOParameters
from .parameters import Bounds as Bounds
from .randomsource import RandomSource as RandomSource
from .result import OptimisationResult as OptimisationResult
from .swarm import Particle as Particle
from .swarm import Swarm as Swarm
from .convergence import ConvergenceMonitor as ConvergenceMonitor
