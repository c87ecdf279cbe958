# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

"""Helpers for the tests of swarmopt (they require pytest)"""

import inspect
import typing as tp

try:
    import pytest
except ImportError:
    pass  # assert_within_bounds stays usable without pytest
import numpy as np


def assert_within_bounds(
    values: np.ndarray, lower: np.ndarray, upper: np.ndarray, err_msg: str = ""
) -> None:
    """Asserts that all values lie in [lower, upper] (broadcasting on the last axis),
    with a message listing the offending indices.
    """
    values = np.asarray(values)
    outside = np.logical_or(values < lower, values > upper)
    if np.any(outside):
        indices = [tuple(int(i) for i in idx) for idx in np.argwhere(outside)]
        raise AssertionError(f"{err_msg}\nValues out of bounds at indices {indices}:\n{values}".strip())


class parametrized:
    """Named parametrization of a test function, as a thin layer over
    :code:`pytest.mark.parametrize`: each keyword is the id of a case, and
    its tuple holds one value per argument of the test (in definition order).

    Example
    -------
    >>> @parametrized(small=(1, 2), large=(100, 101))
    ... def test_increment(value: int, expected: int) -> None:
    ...     assert value + 1 == expected
    """

    def __init__(self, **cases: tp.Tuple[tp.Any, ...]) -> None:
        if not cases:
            raise ValueError("At least one case must be provided")
        self.ids = sorted(cases)
        self.cases = [tuple(cases[name]) for name in self.ids]
        self.num_args = len(self.cases[0])
        wrong = [name for name, case in zip(self.ids, self.cases) if len(case) != self.num_args]
        if wrong:
            raise ValueError(f"Cases {wrong} do not provide {self.num_args} values")

    def __call__(self, func: tp.Callable[..., None]) -> tp.Any:
        names = list(inspect.signature(func).parameters)
        if len(names) != self.num_args:
            raise ValueError(f"Expected {self.num_args} arguments but {func.__name__} has {names}")
        values = self.cases if self.num_args > 1 else [case[0] for case in self.cases]
        return pytest.mark.parametrize(",".join(names), values, ids=self.ids)(func)
