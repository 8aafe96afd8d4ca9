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
"""Ordering — @order decorator, precedence constants and stable sorting."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any, Protocol, TypeVar, runtime_checkable

T = TypeVar("T", bound=type)
E = TypeVar("E")

HIGHEST_PRECEDENCE: int = -(2**31)
LOWEST_PRECEDENCE: int = 2**31 - 1


@runtime_checkable
class Ordered(Protocol):
    """Objects that report their own precedence (lower value = outer)."""

    def get_order(self) -> int: ...


def order(value: int) -> Callable[[T], T]:
    """Set the precedence of an aspect, advice or advisor class.

    Lower value = higher precedence (runs further outside in the chain).
    """

    def decorator(cls: T) -> T:
        cls.__pyweave_order__ = value  # type: ignore[attr-defined]
        return cls

    return decorator


def get_order(obj: Any, default: int = LOWEST_PRECEDENCE) -> int:
    """Resolve the order of *obj*.

    An Ordered instance wins, then an @order marker on the object or
    its class, then *default*.
    """
    if not isinstance(obj, type) and isinstance(obj, Ordered):
        return obj.get_order()
    cls = obj if isinstance(obj, type) else type(obj)
    return getattr(cls, "__pyweave_order__", default)


def sort_by_order(items: Iterable[E], default: int = LOWEST_PRECEDENCE) -> list[E]:
    """Stable sort by order; equal orders keep their registration order."""
    return sorted(items, key=lambda item: get_order(item, default))
