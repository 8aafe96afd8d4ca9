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
"""Built-in interceptors — adapted advice kinds, introductions and exposure.

Every interceptor here works for both sync and coroutine join points: when
``invocation.proceed()`` hands back an awaitable, the post-processing is
deferred into a coroutine that awaits it first.
"""

from __future__ import annotations

import inspect
import types
import typing
from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from typing import Any

import structlog

from pyweave.aop.advice import AfterAdvice, AfterReturningAdvice, MethodBeforeAdvice
from pyweave.aop.advisor import DefaultPointcutAdvisor
from pyweave.aop.introspection import declared_interfaces
from pyweave.aop.invocation import AsyncReflectiveMethodInvocation, ReflectiveMethodInvocation
from pyweave.container.ordering import HIGHEST_PRECEDENCE
from pyweave.kernel.exceptions import AopConfigException

logger = structlog.get_logger("pyweave.aop.interceptors")


class MethodBeforeAdviceInterceptor:
    """Runs a :class:`MethodBeforeAdvice`, then proceeds."""

    def __init__(self, advice: MethodBeforeAdvice) -> None:
        self.advice = advice

    def invoke(self, invocation: ReflectiveMethodInvocation) -> Any:
        self.advice.before(invocation.method, invocation.args, invocation.kwargs, invocation.this)
        return invocation.proceed()


class AfterReturningAdviceInterceptor:
    """Proceeds, then hands the return value to an :class:`AfterReturningAdvice`."""

    def __init__(self, advice: AfterReturningAdvice) -> None:
        self.advice = advice

    def invoke(self, invocation: ReflectiveMethodInvocation) -> Any:
        result = invocation.proceed()
        if inspect.isawaitable(result):
            return self._invoke_async(result, invocation)
        self._after_returning(result, invocation)
        return result

    async def _invoke_async(self, pending: Awaitable[Any], invocation: ReflectiveMethodInvocation) -> Any:
        result = await pending
        self._after_returning(result, invocation)
        return result

    def _after_returning(self, result: Any, invocation: ReflectiveMethodInvocation) -> None:
        self.advice.after_returning(result, invocation.method, invocation.args, invocation.kwargs, invocation.this)


class AfterAdviceInterceptor:
    """Runs an :class:`AfterAdvice` once the call has finished, however it finished."""

    def __init__(self, advice: AfterAdvice) -> None:
        self.advice = advice

    def invoke(self, invocation: ReflectiveMethodInvocation) -> Any:
        try:
            result = invocation.proceed()
        except BaseException:
            self._after(invocation)
            raise
        if inspect.isawaitable(result):
            return self._invoke_async(result, invocation)
        self._after(invocation)
        return result

    async def _invoke_async(self, pending: Awaitable[Any], invocation: ReflectiveMethodInvocation) -> Any:
        try:
            return await pending
        finally:
            self._after(invocation)

    def _after(self, invocation: ReflectiveMethodInvocation) -> None:
        self.advice.after(invocation.method, invocation.args, invocation.kwargs, invocation.this)


# ---------------------------------------------------------------------------
# Throws advice
# ---------------------------------------------------------------------------


def _handled_types(handler: Callable[..., Any]) -> tuple[type[BaseException], ...]:
    params = list(inspect.signature(handler).parameters.values())
    if len(params) not in (1, 5):
        return ()
    ex_param = params[-1]
    try:
        hints = typing.get_type_hints(handler)
    except (NameError, TypeError):
        hints = {}
    annotation = hints.get(ex_param.name, inspect.Parameter.empty)
    if annotation is inspect.Parameter.empty:
        return (Exception,)
    if typing.get_origin(annotation) in (typing.Union, types.UnionType):
        candidates = typing.get_args(annotation)
    else:
        candidates = (annotation,)
    return tuple(c for c in candidates if isinstance(c, type) and issubclass(c, BaseException))


class ThrowsAdviceInterceptor:
    """Dispatches exceptions to the matching ``after_throwing*`` handler.

    Handlers are discovered once, at construction.  For a raised exception
    the handler registered for the closest class in its MRO wins.  The
    exception is always re-raised after the handler returns.

    Raises:
        AopConfigException: If *advice* declares no usable handler.
    """

    def __init__(self, advice: Any) -> None:
        self.advice = advice
        self._handlers: dict[type[BaseException], Callable[..., Any]] = {}
        for name in dir(type(advice)):
            if name != "after_throwing" and not name.startswith("after_throwing_"):
                continue
            handler = getattr(advice, name)
            if not callable(handler):
                continue
            for ex_type in _handled_types(handler):
                self._handlers.setdefault(ex_type, handler)
        if not self._handlers:
            raise AopConfigException(
                f"At least one after_throwing handler must be declared on {type(advice).__qualname__}",
                context={"advice_type": type(advice).__qualname__},
            )
        logger.debug(
            "throws_handlers_found",
            advice=type(advice).__qualname__,
            handled=[t.__name__ for t in self._handlers],
        )

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    def invoke(self, invocation: ReflectiveMethodInvocation) -> Any:
        try:
            result = invocation.proceed()
        except Exception as exc:
            self._handle(exc, invocation)
            raise
        if inspect.isawaitable(result):
            return self._invoke_async(result, invocation)
        return result

    async def _invoke_async(self, pending: Awaitable[Any], invocation: ReflectiveMethodInvocation) -> Any:
        try:
            return await pending
        except Exception as exc:
            self._handle(exc, invocation)
            raise

    def _handler_for(self, exc: BaseException) -> Callable[..., Any] | None:
        for cls in type(exc).__mro__:
            handler = self._handlers.get(cls)
            if handler is not None:
                return handler
        return None

    def _handle(self, exc: BaseException, invocation: ReflectiveMethodInvocation) -> None:
        handler = self._handler_for(exc)
        if handler is None:
            return
        if len(inspect.signature(handler).parameters) == 1:
            handler(exc)
        else:
            handler(invocation.method, invocation.args, invocation.kwargs, invocation.this, exc)


# ---------------------------------------------------------------------------
# Introductions
# ---------------------------------------------------------------------------


class DelegatingIntroductionInterceptor:
    """Introduces the interfaces of a delegate into the proxy.

    Calls to methods declared on an introduced interface are answered by the
    delegate and never reach the target.  Subclass it and implement the
    interfaces directly, or pass a *delegate* object.

    Usage::

        class AuditableMixin(DelegatingIntroductionInterceptor, Auditable):
            def audit_trail(self) -> list[str]: ...

        factory.add_advisor(DefaultIntroductionAdvisor(AuditableMixin()))
    """

    def __init__(self, delegate: Any = None) -> None:
        self._delegate = self if delegate is None else delegate
        self._published: list[type] = declared_interfaces(type(self._delegate))
        if self._delegate is not self:
            self._published = [i for i in self._published if i not in declared_interfaces(type(self))]

    @property
    def interfaces(self) -> tuple[type, ...]:
        return tuple(self._published)

    def suppress_interface(self, interface: type) -> None:
        self._published = [i for i in self._published if i is not interface]

    def implements_interface(self, interface: type) -> bool:
        return any(issubclass(published, interface) for published in self._published)

    def is_method_on_introduced_interface(self, invocation: ReflectiveMethodInvocation) -> bool:
        return self.implements_interface(invocation.method.declaring_class)

    def invoke(self, invocation: ReflectiveMethodInvocation) -> Any:
        if self.is_method_on_introduced_interface(invocation):
            result = invocation.method.invoke(self._delegate, invocation.args, invocation.kwargs)
            if result is self._delegate:
                return invocation.proxy
            return result
        return invocation.proceed()


# ---------------------------------------------------------------------------
# Invocation exposure
# ---------------------------------------------------------------------------

_current_invocation: ContextVar[ReflectiveMethodInvocation | None] = ContextVar(
    "pyweave_current_invocation", default=None
)


class ExposeInvocationInterceptor:
    """Publishes the current invocation for the rest of the chain.

    Must be the outermost interceptor; :data:`ADVISOR` carries the matching
    order.
    """

    INSTANCE: ExposeInvocationInterceptor
    ADVISOR: DefaultPointcutAdvisor

    @staticmethod
    def current_invocation() -> ReflectiveMethodInvocation:
        invocation = _current_invocation.get()
        if invocation is None:
            raise AopConfigException(
                "No invocation in progress: add ExposeInvocationInterceptor.ADVISOR "
                "as the first advisor of the chain",
                code="AOP_NO_INVOCATION",
            )
        return invocation

    def invoke(self, invocation: ReflectiveMethodInvocation) -> Any:
        if isinstance(invocation, AsyncReflectiveMethodInvocation):
            return self._invoke_async(invocation)
        token = _current_invocation.set(invocation)
        try:
            return invocation.proceed()
        finally:
            _current_invocation.reset(token)

    async def _invoke_async(self, invocation: AsyncReflectiveMethodInvocation) -> Any:
        token = _current_invocation.set(invocation)
        try:
            return await invocation.proceed()
        finally:
            _current_invocation.reset(token)

    def __repr__(self) -> str:
        return "ExposeInvocationInterceptor.INSTANCE"


ExposeInvocationInterceptor.INSTANCE = ExposeInvocationInterceptor()
ExposeInvocationInterceptor.ADVISOR = DefaultPointcutAdvisor(
    ExposeInvocationInterceptor.INSTANCE, order=HIGHEST_PRECEDENCE + 1
)
