# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.


# base classes


class SwarmError(Exception):
    """Base class for error raised by swarmopt"""


class SwarmWarning(Warning):
    pass


# errors
# pylint: disable=too-many-ancestors


class SwarmRuntimeError(RuntimeError, SwarmError):
    """Runtime error raised by swarmopt"""


class SwarmTypeError(TypeError, SwarmError):
    """Type error raised by swarmopt"""


class SwarmValueError(ValueError, SwarmError):
    """Value error raised by swarmopt"""


class InvalidConfiguration(SwarmValueError):
    """Malformed parameters or bounds, raised before any evaluation of the objective function"""


class InvalidRange(SwarmValueError):
    """A uniform draw was requested with min > max"""


# warnings


class SwarmRuntimeWarning(RuntimeWarning, SwarmWarning):
    """Runtime warning raised by swarmopt"""


class BadFitnessWarning(SwarmRuntimeWarning):
    """Provided fitness is not finite and is handled as worse than any finite value"""
