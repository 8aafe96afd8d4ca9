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
"""Pointcut contracts — class filters, method matchers, and the glob matcher.

A pointcut is a pair of pure predicates.  The class filter answers "could
this advisor apply to instances of this type at all?"; the method matcher
answers "does it apply to this method of that type?".  Both are evaluated
against the *target* class, never against a generated proxy class.
"""

from __future__ import annotations

import functools
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar

if TYPE_CHECKING:
    from pyweave.aop.introspection import Method


# ---------------------------------------------------------------------------
# Contracts
# ---------------------------------------------------------------------------


class ClassFilter(ABC):
    """Restricts a pointcut to a set of target classes."""

    TRUE: ClassVar[ClassFilter]
    FALSE: ClassVar[ClassFilter]

    @abstractmethod
    def matches(self, cls: type) -> bool: ...


class MethodMatcher(ABC):
    """Decides whether a method is advised.

    Static matchers answer from the method and target class alone and are
    evaluated once per join point.  Matchers with ``is_runtime`` set are
    additionally asked ``matches_runtime`` on every call, after a positive
    static answer, with the actual arguments.
    """

    TRUE: ClassVar[MethodMatcher]
    FALSE: ClassVar[MethodMatcher]

    @abstractmethod
    def matches(self, method: Method, target_class: type | None) -> bool: ...

    @property
    def is_runtime(self) -> bool:
        return False

    def matches_runtime(
        self,
        method: Method,
        target_class: type | None,
        args: tuple,
        kwargs: dict[str, Any],
    ) -> bool:
        raise NotImplementedError(f"{type(self).__name__} is a static matcher")


class IntroductionAwareMethodMatcher(MethodMatcher):
    """Matcher that may answer differently when the target has introductions.

    ``has_introductions`` is true when at least one introduction advisor
    applies to the target, i.e. the proxy implements interfaces the target
    class itself does not.
    """

    @abstractmethod
    def matches(  # type: ignore[override]
        self,
        method: Method,
        target_class: type | None,
        has_introductions: bool = False,
    ) -> bool: ...


class Pointcut(ABC):
    """A (ClassFilter, MethodMatcher) pair."""

    TRUE: ClassVar[Pointcut]
    FALSE: ClassVar[Pointcut]

    @property
    @abstractmethod
    def class_filter(self) -> ClassFilter: ...

    @property
    @abstractmethod
    def method_matcher(self) -> MethodMatcher: ...


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------


class _ConstantClassFilter(ClassFilter):
    def __init__(self, value: bool) -> None:
        self._value = value

    def matches(self, cls: type) -> bool:
        return self._value

    def __repr__(self) -> str:
        return f"ClassFilter.{str(self._value).upper()}"


class _ConstantMethodMatcher(MethodMatcher):
    def __init__(self, value: bool) -> None:
        self._value = value

    def matches(self, method: Method, target_class: type | None) -> bool:
        return self._value

    def __repr__(self) -> str:
        return f"MethodMatcher.{str(self._value).upper()}"


class _ConstantPointcut(Pointcut):
    def __init__(self, value: bool) -> None:
        self._value = value

    @property
    def class_filter(self) -> ClassFilter:
        return ClassFilter.TRUE if self._value else ClassFilter.FALSE

    @property
    def method_matcher(self) -> MethodMatcher:
        return MethodMatcher.TRUE if self._value else MethodMatcher.FALSE

    def __repr__(self) -> str:
        return f"Pointcut.{str(self._value).upper()}"


ClassFilter.TRUE = _ConstantClassFilter(True)
ClassFilter.FALSE = _ConstantClassFilter(False)
MethodMatcher.TRUE = _ConstantMethodMatcher(True)
MethodMatcher.FALSE = _ConstantMethodMatcher(False)
Pointcut.TRUE = _ConstantPointcut(True)
Pointcut.FALSE = _ConstantPointcut(False)


def method_matches(
    matcher: MethodMatcher,
    method: Method,
    target_class: type | None,
    has_introductions: bool = False,
) -> bool:
    """Static match, using the introduction-aware form when available."""
    if isinstance(matcher, IntroductionAwareMethodMatcher):
        return matcher.matches(method, target_class, has_introductions)
    return matcher.matches(method, target_class)


# ---------------------------------------------------------------------------
# Dotted glob patterns
# ---------------------------------------------------------------------------


def matches_pointcut(pattern: str, qualified_name: str) -> bool:
    """Check whether *qualified_name* matches a dotted glob *pattern*.

    Pattern syntax
    --------------
    * ``*``  — matches exactly one dot-separated segment.
    * ``**`` — matches one or more segments (crosses dots).
    * Partial globs inside a segment, e.g. ``get_*`` or ``*Service``.

    Examples
    --------
    >>> matches_pointcut("service.*.*", "service.OrderService.create")
    True
    >>> matches_pointcut("**.*Service.*", "a.b.c.OrderService.create")
    True
    >>> matches_pointcut("*.my_method", "a.b.MyClass.my_method")
    False
    """
    return _pattern_to_regex(pattern).fullmatch(qualified_name) is not None


def _segment_to_regex(seg: str) -> str:
    if seg == "**":
        return r"(?:[^.]+\.)*[^.]+"
    if seg == "*":
        return r"[^.]+"
    parts: list[str] = []
    for ch in seg:
        if ch == "*":
            parts.append("[^.]*")
        elif ch == "?":
            parts.append("[^.]")
        else:
            parts.append(re.escape(ch))
    return "".join(parts)


@functools.lru_cache(maxsize=512)
def _pattern_to_regex(pattern: str) -> re.Pattern[str]:
    return re.compile(r"\.".join(_segment_to_regex(seg) for seg in pattern.split(".")))
