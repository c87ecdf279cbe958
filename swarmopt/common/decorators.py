# Copyright (c) Meta Platforms, Inc. and affiliates.
#
# This source code is licensed under the MIT license found in the
# LICENSE file in the root directory of this source tree.

import typing as tp


X = tp.TypeVar("X")


class Registry(tp.Mapping[str, X]):
    """Named collection of functions (boundary policies, test functions...),
    filled through decorators, with optional information attached to each entry.

    Parameters
    ----------
    kind: str
        what the registry holds, used in error messages

    Example
    -------
    >>> policies: Registry[Callable[..., Any]] = Registry("boundary policy")
    >>> @policies.register
    ... def clamp(position, velocity, lower, upper):
    ...     ...
    """

    def __init__(self, kind: str = "object") -> None:
        self.kind = kind
        self._objects: tp.Dict[str, X] = {}
        self._info: tp.Dict[str, tp.Dict[str, tp.Any]] = {}

    def register(self, obj: X) -> X:
        """Decorator registering a function or class under its own name"""
        self._add(obj, {})
        return obj

    def register_with_info(self, **info: tp.Any) -> tp.Callable[[X], X]:
        """Decorator registering a function or class along with information about it"""

        def decorator(obj: X) -> X:
            self._add(obj, info)
            return obj

        return decorator

    def _add(self, obj: X, info: tp.Dict[str, tp.Any]) -> None:
        name: str = getattr(obj, "__name__", obj.__class__.__name__)
        if name in self._objects:
            raise RuntimeError(f'A {self.kind} named "{name}" is already registered')
        self._objects[name] = obj
        self._info[name] = dict(info)

    def get_info(self, name: str) -> tp.Dict[str, tp.Any]:
        """Returns a copy of the information registered along with an entry"""
        self[name]  # pylint: disable=pointless-statement
        return dict(self._info[name])

    def __getitem__(self, name: str) -> X:
        try:
            return self._objects[name]
        except KeyError:
            raise KeyError(f'Unknown {self.kind} "{name}", choose among {sorted(self._objects)}') from None

    def __iter__(self) -> tp.Iterator[str]:
        return iter(self._objects)

    def __len__(self) -> int:
        return len(self._objects)
