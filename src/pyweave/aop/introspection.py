# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Class introspection for proxying — method keys and interface detection.

A :class:`Method` is the identity every pointcut and cache works with: the
attribute name plus the class that declares it.  It is hashable and cheap to
compare, so it doubles as the chain-cache key.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterator
from typing import Any, Generic, Protocol

# Modules whose ABCs/protocols describe language plumbing, not a bean's contract.
_INTERNAL_INTERFACE_MODULES = frozenset(
    {
        "abc",
        "builtins",
        "typing",
        "typing_extensions",
        "collections.abc",
        "_collections_abc",
        "contextlib",
        "numbers",
        "io",
    }
)


class Method:
    """An opaque, hashable reference to a method declared on a class.

    Equality and hashing use (declaring_class, name) only, so two lookups
    of the same method compare equal regardless of how they were obtained.
    """

    __slots__ = ("name", "declaring_class", "function", "_hash")

    def __init__(self, name: str, declaring_class: type, function: Any) -> None:
        self.name = name
        self.declaring_class = declaring_class
        self.function = function
        self._hash = hash((declaring_class, name))

    @classmethod
    def for_name(cls, owner: type, name: str) -> Method:
        """Resolve *name* along the MRO of *owner* to its declaring class.

        Raises:
            AttributeError: If no class in the MRO declares *name*.
        """
        for klass in owner.__mro__:
            if name in klass.__dict__:
                return cls(name, klass, klass.__dict__[name])
        raise AttributeError(f"{owner.__qualname__} has no method '{name}'")

    @property
    def qualified_name(self) -> str:
        return f"{self.declaring_class.__module__}.{self.declaring_class.__qualname__}.{self.name}"

    @property
    def is_coroutine(self) -> bool:
        return inspect.iscoroutinefunction(self.function)

    @property
    def is_abstract(self) -> bool:
        return bool(getattr(self.function, "__isabstractmethod__", False))

    def get_marker(self, key: str, default: Any = None) -> Any:
        """Read a decorator-set attribute from the underlying function."""
        return getattr(self.function, key, default)

    def invoke(self, target: Any, args: tuple, kwargs: dict[str, Any]) -> Any:
        """Call this method on *target*.

        Attribute lookup goes through *target*, so instance-level overrides and
        nested proxies are honored.
        """
        return getattr(target, self.name)(*args, **kwargs)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Method):
            return NotImplemented
        return self.declaring_class is other.declaring_class and self.name == other.name

    def __hash__(self) -> int:
        return self._hash

    def __repr__(self) -> str:
        return f"Method({self.qualified_name})"

    def __str__(self) -> str:
        return self.qualified_name


def iter_public_methods(cls: type) -> Iterator[Method]:
    """Yield the public instance methods visible on *cls*, most specific first.

    Static methods, class methods, properties and names starting with an
    underscore are not interceptable and are skipped.
    """
    seen: set[str] = set()
    for klass in cls.__mro__:
        if klass is object:
            continue
        for name, raw in klass.__dict__.items():
            if name in seen:
                continue
            seen.add(name)
            if name.startswith("_") or not inspect.isfunction(raw):
                continue
            yield Method(name, klass, raw)


def get_most_specific_method(method: Method, target_class: type | None) -> Method:
    """Return the implementation of *method* that *target_class* would run.

    Used so that a method obtained from an interface is matched against the
    concrete implementation (and its markers) on the target class.
    """
    if target_class is None or method.declaring_class is target_class:
        return method
    try:
        specific = Method.for_name(target_class, method.name)
    except AttributeError:
        return method
    return specific if inspect.isfunction(specific.function) else method


def is_interface(cls: type) -> bool:
    """Whether *cls* is a usable proxy contract.

    Contracts are typing.Protocol classes and abstract base classes that
    declare at least one abstract method, excluding standard-library plumbing,
    pyweave's own callback protocols and classes marked with
    ``__pyweave_callback_interface__ = True``.
    """
    if not isinstance(cls, type) or cls in (object, Protocol, Generic):
        return False
    module = cls.__module__
    if module in _INTERNAL_INTERFACE_MODULES or module.partition(".")[0] == "pyweave":
        return False
    if cls.__dict__.get("__pyweave_callback_interface__", False):
        return False
    if cls.__dict__.get("_is_protocol", False):
        return True
    return bool(getattr(cls, "__abstractmethods__", None))


def declared_interfaces(cls: type) -> list[type]:
    """All usable interfaces in the MRO of *cls* (excluding *cls* itself).

    Interfaces that are bases of an already collected interface are dropped,
    so the result can be used directly as a list of bases.
    """
    result: list[type] = []
    for base in cls.__mro__[1:]:
        if is_interface(base) and not any(issubclass(found, base) for found in result):
            result.append(base)
    return result


def prune_interfaces(interfaces: list[type]) -> list[type]:
    """Drop duplicates and interfaces already implied by a more specific one."""
    result: list[type] = []
    for iface in interfaces:
        if iface in result:
            continue
        if any(issubclass(other, iface) for other in interfaces if other is not iface):
            continue
        result.append(iface)
    return result
