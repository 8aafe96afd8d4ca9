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
"""Reusable pointcut building blocks."""

from __future__ import annotations

import fnmatch
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from pyweave.aop.pointcut import (
    ClassFilter,
    IntroductionAwareMethodMatcher,
    MethodMatcher,
    Pointcut,
    matches_pointcut,
    method_matches,
)
from pyweave.container.stereotypes import stereotype_of

if TYPE_CHECKING:
    from pyweave.aop.introspection import Method


# ---------------------------------------------------------------------------
# Class filters
# ---------------------------------------------------------------------------


class RootClassFilter(ClassFilter):
    """Matches *root* and its subclasses."""

    def __init__(self, root: type) -> None:
        self.root = root

    def matches(self, cls: type) -> bool:
        return isinstance(cls, type) and issubclass(cls, self.root)

    def __repr__(self) -> str:
        return f"RootClassFilter({self.root.__qualname__})"


class TypeClassFilter(ClassFilter):
    """Matches classes whose ``module.QualName`` matches a dotted glob."""

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern

    def matches(self, cls: type) -> bool:
        return matches_pointcut(self.pattern, f"{cls.__module__}.{cls.__qualname__}")

    def __repr__(self) -> str:
        return f"TypeClassFilter({self.pattern!r})"


class MarkerClassFilter(ClassFilter):
    """Matches classes carrying a decorator-set marker attribute."""

    def __init__(self, marker: str, check_inherited: bool = False) -> None:
        self.marker = marker
        self.check_inherited = check_inherited

    def matches(self, cls: type) -> bool:
        if self.check_inherited:
            return bool(getattr(cls, self.marker, False))
        return bool(cls.__dict__.get(self.marker, False))


class _UnionClassFilter(ClassFilter):
    def __init__(self, filters: Iterable[ClassFilter]) -> None:
        self.filters = tuple(filters)

    def matches(self, cls: type) -> bool:
        return any(f.matches(cls) for f in self.filters)


class _IntersectionClassFilter(ClassFilter):
    def __init__(self, filters: Iterable[ClassFilter]) -> None:
        self.filters = tuple(filters)

    def matches(self, cls: type) -> bool:
        return all(f.matches(cls) for f in self.filters)


class _NegateClassFilter(ClassFilter):
    def __init__(self, original: ClassFilter) -> None:
        self.original = original

    def matches(self, cls: type) -> bool:
        return not self.original.matches(cls)


class ClassFilters:
    """Composition helpers for class filters."""

    @staticmethod
    def union(*filters: ClassFilter) -> ClassFilter:
        return _UnionClassFilter(filters)

    @staticmethod
    def intersection(*filters: ClassFilter) -> ClassFilter:
        return _IntersectionClassFilter(filters)

    @staticmethod
    def negate(original: ClassFilter) -> ClassFilter:
        return _NegateClassFilter(original)


# ---------------------------------------------------------------------------
# Method matchers
# ---------------------------------------------------------------------------


class StaticMethodMatcher(MethodMatcher):
    """Base for matchers that never look at arguments."""


class DynamicMethodMatcher(MethodMatcher):
    """Base for matchers that must see the arguments of each call.

    The static ``matches`` defaults to True; subclasses override it to
    narrow the join points that get the per-call check at all.
    """

    def matches(self, method: Method, target_class: type | None) -> bool:
        return True

    @property
    def is_runtime(self) -> bool:
        return True

    def matches_runtime(
        self,
        method: Method,
        target_class: type | None,
        args: tuple,
        kwargs: dict[str, Any],
    ) -> bool:
        raise NotImplementedError


class FunctionMethodMatcher(MethodMatcher):
    """Adapts plain predicates into a matcher.

    *static* receives ``(method, target_class)``; *runtime*, if given,
    receives ``(method, target_class, args, kwargs)`` and makes the matcher
    dynamic.
    """

    def __init__(
        self,
        static: Callable[[Method, type | None], bool],
        runtime: Callable[[Method, type | None, tuple, dict[str, Any]], bool] | None = None,
    ) -> None:
        self._static = static
        self._runtime = runtime

    def matches(self, method: Method, target_class: type | None) -> bool:
        return self._static(method, target_class)

    @property
    def is_runtime(self) -> bool:
        return self._runtime is not None

    def matches_runtime(
        self,
        method: Method,
        target_class: type | None,
        args: tuple,
        kwargs: dict[str, Any],
    ) -> bool:
        if self._runtime is None:
            return super().matches_runtime(method, target_class, args, kwargs)
        return self._runtime(method, target_class, args, kwargs)


class _UnionMethodMatcher(IntroductionAwareMethodMatcher):
    def __init__(self, a: MethodMatcher, b: MethodMatcher) -> None:
        self.a = a
        self.b = b

    def matches(self, method: Method, target_class: type | None, has_introductions: bool = False) -> bool:
        return method_matches(self.a, method, target_class, has_introductions) or method_matches(
            self.b, method, target_class, has_introductions
        )

    @property
    def is_runtime(self) -> bool:
        return self.a.is_runtime or self.b.is_runtime

    def matches_runtime(self, method: Method, target_class: type | None, args: tuple, kwargs: dict[str, Any]) -> bool:
        return _runtime_or_static(self.a, method, target_class, args, kwargs) or _runtime_or_static(
            self.b, method, target_class, args, kwargs
        )


class _IntersectionMethodMatcher(IntroductionAwareMethodMatcher):
    def __init__(self, a: MethodMatcher, b: MethodMatcher) -> None:
        self.a = a
        self.b = b

    def matches(self, method: Method, target_class: type | None, has_introductions: bool = False) -> bool:
        return method_matches(self.a, method, target_class, has_introductions) and method_matches(
            self.b, method, target_class, has_introductions
        )

    @property
    def is_runtime(self) -> bool:
        return self.a.is_runtime or self.b.is_runtime

    def matches_runtime(self, method: Method, target_class: type | None, args: tuple, kwargs: dict[str, Any]) -> bool:
        # Static halves already passed when the chain was resolved.
        a = self.a.matches_runtime(method, target_class, args, kwargs) if self.a.is_runtime else True
        b = self.b.matches_runtime(method, target_class, args, kwargs) if self.b.is_runtime else True
        return a and b


class _NegateMethodMatcher(MethodMatcher):
    def __init__(self, original: MethodMatcher) -> None:
        self.original = original

    def matches(self, method: Method, target_class: type | None) -> bool:
        return not self.original.matches(method, target_class)

    @property
    def is_runtime(self) -> bool:
        return self.original.is_runtime

    def matches_runtime(self, method: Method, target_class: type | None, args: tuple, kwargs: dict[str, Any]) -> bool:
        return not self.original.matches_runtime(method, target_class, args, kwargs)


def _runtime_or_static(
    matcher: MethodMatcher,
    method: Method,
    target_class: type | None,
    args: tuple,
    kwargs: dict[str, Any],
) -> bool:
    if matcher.is_runtime:
        return matcher.matches(method, target_class) and matcher.matches_runtime(method, target_class, args, kwargs)
    return matcher.matches(method, target_class)


class MethodMatchers:
    """Composition helpers for method matchers."""

    @staticmethod
    def union(a: MethodMatcher, b: MethodMatcher) -> MethodMatcher:
        return _UnionMethodMatcher(a, b)

    @staticmethod
    def intersection(a: MethodMatcher, b: MethodMatcher) -> MethodMatcher:
        return _IntersectionMethodMatcher(a, b)

    @staticmethod
    def negate(original: MethodMatcher) -> MethodMatcher:
        return _NegateMethodMatcher(original)


# ---------------------------------------------------------------------------
# Pointcuts
# ---------------------------------------------------------------------------


class StaticMethodMatcherPointcut(StaticMethodMatcher, Pointcut):
    """A pointcut that is its own (static) method matcher.

    Subclasses implement ``matches(method, target_class)``; the class filter
    defaults to ``ClassFilter.TRUE`` and may be replaced.
    """

    _class_filter: ClassFilter = ClassFilter.TRUE

    @property
    def class_filter(self) -> ClassFilter:
        return self._class_filter

    @class_filter.setter
    def class_filter(self, value: ClassFilter) -> None:
        self._class_filter = value

    @property
    def method_matcher(self) -> MethodMatcher:
        return self


class NameMatchMethodPointcut(StaticMethodMatcherPointcut):
    """Matches method names against shell-style patterns (``get_*``, ``*_async``)."""

    def __init__(self, *mapped_names: str) -> None:
        self.mapped_names: list[str] = list(mapped_names)

    def add_method_name(self, name: str) -> NameMatchMethodPointcut:
        self.mapped_names.append(name)
        return self

    def matches(self, method: Method, target_class: type | None) -> bool:
        return any(
            name == method.name or fnmatch.fnmatchcase(method.name, name)
            for name in self.mapped_names
        )

    def __repr__(self) -> str:
        return f"NameMatchMethodPointcut({self.mapped_names!r})"


def _qualified_names(method: Method, target_class: type | None) -> list[str]:
    cls = target_class if target_class is not None else method.declaring_class
    names = [f"{cls.__module__}.{cls.__qualname__}.{method.name}"]
    role = stereotype_of(cls)
    if role:
        names.append(f"{role}.{cls.__name__}.{method.name}")
    return names


class ExpressionPointcut(StaticMethodMatcherPointcut):
    """Matches a dotted glob against the join point's qualified name.

    The qualified name is ``module.ClassName.method`` of the target class;
    classes carrying a stereotype (``@service``, ``@repository``, ...) also
    answer to ``stereotype.ClassName.method``, e.g. ``service.*.create_*``.
    """

    def __init__(self, expression: str) -> None:
        self.expression = expression

    def matches(self, method: Method, target_class: type | None) -> bool:
        return any(matches_pointcut(self.expression, name) for name in _qualified_names(method, target_class))

    def __repr__(self) -> str:
        return f"ExpressionPointcut({self.expression!r})"


class DecoratedMethodPointcut(Pointcut):
    """Matches methods (or classes) carrying a decorator-set marker attribute.

    The decorator analogue of annotation matching: a method matches when the
    implementation on the target class (or the method itself) has
    *method_marker* set; with *class_marker* the target class must be marked.
    """

    def __init__(self, method_marker: str | None = None, class_marker: str | None = None) -> None:
        if method_marker is None and class_marker is None:
            raise ValueError("Either method_marker or class_marker must be given")
        self._class_filter: ClassFilter = (
            MarkerClassFilter(class_marker, check_inherited=True) if class_marker else ClassFilter.TRUE
        )
        self._method_matcher: MethodMatcher = (
            _MarkerMethodMatcher(method_marker) if method_marker else MethodMatcher.TRUE
        )

    @property
    def class_filter(self) -> ClassFilter:
        return self._class_filter

    @property
    def method_matcher(self) -> MethodMatcher:
        return self._method_matcher


class _MarkerMethodMatcher(StaticMethodMatcher):
    def __init__(self, marker: str) -> None:
        self.marker = marker

    def matches(self, method: Method, target_class: type | None) -> bool:
        from pyweave.aop.introspection import get_most_specific_method

        if method.get_marker(self.marker):
            return True
        return bool(get_most_specific_method(method, target_class).get_marker(self.marker))


class ComposablePointcut(Pointcut):
    """Pointcut assembled with fluent union/intersection operations.

    Usage::

        pc = (ComposablePointcut(RootClassFilter(Repository))
              .intersection(NameMatchMethodPointcut("save*", "delete*")))
    """

    def __init__(
        self,
        class_filter: ClassFilter | Pointcut = ClassFilter.TRUE,
        method_matcher: MethodMatcher = MethodMatcher.TRUE,
    ) -> None:
        if isinstance(class_filter, Pointcut):
            self._class_filter = class_filter.class_filter
            self._method_matcher = class_filter.method_matcher
        else:
            self._class_filter = class_filter
            self._method_matcher = method_matcher

    @property
    def class_filter(self) -> ClassFilter:
        return self._class_filter

    @property
    def method_matcher(self) -> MethodMatcher:
        return self._method_matcher

    def union(self, other: ClassFilter | MethodMatcher | Pointcut) -> ComposablePointcut:
        if isinstance(other, Pointcut):
            self._method_matcher = _ClassFilterAwareUnionMethodMatcher(
                self._method_matcher, self._class_filter, other.method_matcher, other.class_filter
            )
            self._class_filter = ClassFilters.union(self._class_filter, other.class_filter)
        elif isinstance(other, ClassFilter):
            self._class_filter = ClassFilters.union(self._class_filter, other)
        else:
            self._method_matcher = MethodMatchers.union(self._method_matcher, other)
        return self

    def intersection(self, other: ClassFilter | MethodMatcher | Pointcut) -> ComposablePointcut:
        if isinstance(other, Pointcut):
            self._class_filter = ClassFilters.intersection(self._class_filter, other.class_filter)
            self._method_matcher = MethodMatchers.intersection(self._method_matcher, other.method_matcher)
        elif isinstance(other, ClassFilter):
            self._class_filter = ClassFilters.intersection(self._class_filter, other)
        else:
            self._method_matcher = MethodMatchers.intersection(self._method_matcher, other)
        return self


class _ClassFilterAwareUnionMethodMatcher(_UnionMethodMatcher):
    """Union where each half only counts for classes its own filter accepts."""

    def __init__(self, a: MethodMatcher, fa: ClassFilter, b: MethodMatcher, fb: ClassFilter) -> None:
        super().__init__(a, b)
        self.fa = fa
        self.fb = fb

    def matches(self, method: Method, target_class: type | None, has_introductions: bool = False) -> bool:
        cls = target_class if target_class is not None else method.declaring_class
        return (self.fa.matches(cls) and method_matches(self.a, method, target_class, has_introductions)) or (
            self.fb.matches(cls) and method_matches(self.b, method, target_class, has_introductions)
        )


class Pointcuts:
    """Pointcut helpers."""

    @staticmethod
    def union(a: Pointcut, b: Pointcut) -> Pointcut:
        return ComposablePointcut(a).union(b)

    @staticmethod
    def intersection(a: Pointcut, b: Pointcut) -> Pointcut:
        return ComposablePointcut(a).intersection(b)

    @staticmethod
    def matches(pointcut: Pointcut, method: Method, target_class: type, args: tuple, kwargs: dict[str, Any]) -> bool:
        """Full evaluation of *pointcut* for one concrete call."""
        if not pointcut.class_filter.matches(target_class):
            return False
        matcher = pointcut.method_matcher
        if not matcher.matches(method, target_class):
            return False
        return not matcher.is_runtime or matcher.matches_runtime(method, target_class, args, kwargs)
