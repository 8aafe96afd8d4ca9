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
"""AOP decorators — @aspect, advice annotations and proxying markers.

Advice decorators attach an :class:`AdviceDeclaration` to the decorated
function; :class:`~pyweave.aop.registry.AspectRegistry` reads it when the
aspect bean is registered.  Class markers are plain boolean attributes read
by the auto-proxy creators.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, TypeVar

from pyweave.container.stereotypes import Stereotype

T = TypeVar("T", bound=type)
F = TypeVar("F", bound=Callable[..., Any])

ADVICE_KINDS: tuple[str, ...] = ("around", "before", "after", "after_returning", "after_throwing")
"""Advice kinds in the order they nest within one aspect, outermost first."""

_ADVICE_ATTR = "__pyweave_advice__"
_ASPECT_ATTR = "__pyweave_aspect__"
_LAZY_TARGET_ATTR = "__pyweave_lazy_target__"
_PRESERVE_TARGET_CLASS_ATTR = "__pyweave_preserve_target_class__"
_INFRASTRUCTURE_ATTR = "__pyweave_infrastructure__"

_aspect_stereotype = Stereotype("aspect")


@dataclass(frozen=True)
class AdviceDeclaration:
    """What an advice decorator recorded: the kind and the pointcut expression."""

    kind: str
    pointcut: str


def advice_declaration(fn: Any) -> AdviceDeclaration | None:
    return getattr(fn, _ADVICE_ATTR, None)


def aspect(cls: T) -> T:
    """Mark a class as a pyweave aspect.

    Aspect beans are collected by :class:`AspectAutoProxyCreator` and are
    never proxied themselves.  They carry the ``aspect`` stereotype.
    """
    setattr(cls, _ASPECT_ATTR, True)
    return _aspect_stereotype(cls)


def is_aspect(cls: type) -> bool:
    return bool(getattr(cls, _ASPECT_ATTR, False))


class _AdviceDecorator:
    """``@<kind>("pointcut")`` for one advice kind."""

    def __init__(self, kind: str) -> None:
        self.kind = kind
        self.__name__ = kind

    def __call__(self, pointcut: str) -> Callable[[F], F]:
        if not pointcut or not isinstance(pointcut, str):
            raise ValueError(f"@{self.kind} needs a pointcut expression, got {pointcut!r}")
        declaration = AdviceDeclaration(self.kind, pointcut)

        def decorator(fn: F) -> F:
            existing = advice_declaration(fn)
            if existing is not None and existing != declaration:
                raise ValueError(
                    f"{getattr(fn, '__qualname__', fn)!r} is already @{existing.kind}({existing.pointcut!r})"
                )
            setattr(fn, _ADVICE_ATTR, declaration)
            return fn

        return decorator

    def __repr__(self) -> str:
        return f"@{self.kind}"


before = _AdviceDecorator("before")
after_returning = _AdviceDecorator("after_returning")
after_throwing = _AdviceDecorator("after_throwing")
after = _AdviceDecorator("after")
around = _AdviceDecorator("around")


def _class_marker(attr: str, doc: str) -> Callable[[T], T]:
    def marker(cls: T) -> T:
        setattr(cls, attr, True)
        return cls

    marker.__doc__ = doc
    return marker


lazy_target = _class_marker(_LAZY_TARGET_ATTR, "Create the bean's target on first use (LazyInitTargetSourceCreator).")
preserve_target_class = _class_marker(
    _PRESERVE_TARGET_CLASS_ATTR, "Always proxy this bean with a subclass proxy, even if it has interfaces."
)
infrastructure = _class_marker(_INFRASTRUCTURE_ATTR, "Exclude a framework-level bean from auto-proxying.")


def is_lazy_target(cls: type) -> bool:
    return bool(getattr(cls, _LAZY_TARGET_ATTR, False))


def is_preserve_target_class(cls: type) -> bool:
    return bool(getattr(cls, _PRESERVE_TARGET_CLASS_ATTR, False))


def is_infrastructure(cls: type) -> bool:
    return bool(getattr(cls, _INFRASTRUCTURE_ATTR, False))
