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
"""Advice contracts — the kinds of cross-cutting behavior a proxy can run.

Each advice kind is a structural protocol: any object with the right method
qualifies, no base class required.  The adapter registry turns every kind
into the canonical :class:`MethodInterceptor` shape before a chain is built.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from pyweave.aop.introspection import Method
    from pyweave.aop.invocation import ReflectiveMethodInvocation


@runtime_checkable
class MethodInterceptor(Protocol):
    """Around advice and the canonical interceptor shape.

    ``invoke`` receives the per-call invocation and decides whether, and
    how often, to call ``invocation.proceed()``.  Its return value (or the
    exception it raises) becomes the outcome of the call.
    """

    def invoke(self, invocation: ReflectiveMethodInvocation) -> Any: ...


@runtime_checkable
class MethodBeforeAdvice(Protocol):
    """Runs before the target; may only abort the call by raising."""

    def before(self, method: Method, args: tuple, kwargs: dict[str, Any], target: Any) -> None: ...


@runtime_checkable
class AfterReturningAdvice(Protocol):
    """Runs after a normal return; observes but cannot replace the value."""

    def after_returning(
        self,
        return_value: Any,
        method: Method,
        args: tuple,
        kwargs: dict[str, Any],
        target: Any,
    ) -> None: ...


@runtime_checkable
class ThrowsAdvice(Protocol):
    """Runs when the call raised an exception matching a handler.

    Handlers are methods named ``after_throwing`` or ``after_throwing_*``
    taking either ``(ex)`` or ``(method, args, kwargs, target, ex)``.  The
    annotation of ``ex`` selects the handled exception type (a union selects
    several); unannotated handlers catch every ``Exception``.  Handlers
    cannot swallow the exception: it is re-raised afterwards unless the
    handler raises a different one.
    """

    after_throwing: Any


@runtime_checkable
class AfterAdvice(Protocol):
    """Runs after the call whatever its outcome (``finally`` semantics)."""

    def after(self, method: Method, args: tuple, kwargs: dict[str, Any], target: Any) -> None: ...


@runtime_checkable
class IntroductionInterceptor(MethodInterceptor, Protocol):
    """Interceptor that makes the proxy implement additional interfaces."""

    def implements_interface(self, interface: type) -> bool: ...


ADVICE_TYPES: tuple[type, ...] = (
    MethodInterceptor,
    MethodBeforeAdvice,
    AfterReturningAdvice,
    ThrowsAdvice,
    AfterAdvice,
)


def has_throws_handlers(obj: Any) -> bool:
    """Whether *obj* (or class) declares ``after_throwing`` style handlers."""
    cls = obj if isinstance(obj, type) else type(obj)
    return any(name == "after_throwing" or name.startswith("after_throwing_") for name in dir(cls))


def is_advice(obj: Any) -> bool:
    """Whether *obj* (an instance) is one of the known advice kinds."""
    return isinstance(obj, ADVICE_TYPES) or has_throws_handlers(obj)


def is_advice_class(cls: type) -> bool:
    """Whether instances of *cls* would be advice.

    Classes that explicitly extend an advice protocol always qualify.  Without
    that, only the unambiguous hook names count: ``before`` and ``after`` are
    common business method names and need the explicit base.
    """
    if any(base in ADVICE_TYPES for base in cls.__mro__):
        return True
    if any(callable(getattr(cls, attr, None)) for attr in ("invoke", "after_returning")):
        return True
    return has_throws_handlers(cls)
