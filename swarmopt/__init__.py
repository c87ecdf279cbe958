# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

from .common import typing as typing
from .common import errors as errors
from .optimization import Optimizer as Optimizer
from .optimization import PSOParameters as PSOParameters
from .optimization import Bounds as Bounds
from .optimization import RandomSource as RandomSource
from .optimization import OptimisationResult as OptimisationResult
from .optimization import run as run
from .optimization import callbacks as callbacks
from .functions import corefuncs as functions


__all__ = [
    "Optimizer",
    "PSOParameters",
    "Bounds",
    "RandomSource",
    "OptimisationResult",
    "run",
    "callbacks",
    "functions",
    "errors",
    "typing",
]


__version__ = "0.1.0"
