# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Types used throughout swarmopt, to be imported as :code:`import swarmopt.common.typing as tp`
"""
# pylint: disable=unused-import
from typing import Any as Any
from typing import Callable as Callable
from typing import Dict as Dict
from typing import Iterable as Iterable
from typing import List as List
from typing import NamedTuple as NamedTuple
from typing import Optional as Optional
from typing import Sequence as Sequence
from typing import Tuple as Tuple
from typing import TypeVar as TypeVar
from typing import Union as Union
from pathlib import Path as Path
from typing_extensions import Protocol
import numpy as _np


ArrayLike = Union[Tuple[float, ...], List[float], _np.ndarray]
BoundLike = Union[float, int, ArrayLike]
PathLike = Union[str, Path]


# %% Protocols for objective functions and executors

X = TypeVar("X", covariant=True)


class ObjectiveFunction(Protocol):
    """Any callable mapping a position to a fitness value (to be minimized)"""

    # pylint: disable=pointless-statement, unused-argument
    def __call__(self, position: _np.ndarray) -> float:
        ...


class JobLike(Protocol[X]):
    """Future-like object, such as :code:`concurrent.futures.Future`"""

    # pylint: disable=pointless-statement
    def done(self) -> bool:
        ...

    def result(self) -> X:
        ...


class ExecutorLike(Protocol):
    """Executor-like object, such as :code:`concurrent.futures.ThreadPoolExecutor`"""

    # pylint: disable=pointless-statement, unused-argument
    def submit(self, fn: Callable[..., X], *args: Any, **kwargs: Any) -> JobLike[X]:
        ...
