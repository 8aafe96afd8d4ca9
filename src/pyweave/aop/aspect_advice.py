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
"""Interceptors running @aspect advice methods.

Each decorated aspect method becomes one interceptor.  Handlers receive a
:class:`JoinPoint`; before, after and after-returning/throwing handlers may be
coroutines when they advise a coroutine method.  Around handlers continue the
chain through ``jp.proceed()`` (awaited for coroutine methods).
"""

from __future__ import annotations

import inspect
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

from pyweave.aop.invocation import AsyncReflectiveMethodInvocation, ReflectiveMethodInvocation
from pyweave.aop.types import JoinPoint
from pyweave.kernel.exceptions import AopConfigException


def join_point_for(invocation: ReflectiveMethodInvocation) -> JoinPoint:
    return JoinPoint(
        target=invocation.this,
        method_name=invocation.method.name,
        args=invocation.args,
        kwargs=invocation.kwargs,
        method=invocation.method,
        invocation=invocation,
    )


class AbstractAspectAdvice(ABC):
    """Base of the aspect interceptors; picks the sync or async path per call."""

    advice_type: str = ""

    def __init__(self, handler: Callable[..., Any], aspect_name: str = "") -> None:
        self.handler = handler
        self.aspect_name = aspect_name

    def invoke(self, invocation: ReflectiveMethodInvocation) -> Any:
        if isinstance(invocation, AsyncReflectiveMethodInvocation):
            return self.invoke_async(invocation)
        return self.invoke_sync(invocation)

    @abstractmethod
    def invoke_sync(self, invocation: ReflectiveMethodInvocation) -> Any: ...

    @abstractmethod
    async def invoke_async(self, invocation: AsyncReflectiveMethodInvocation) -> Any: ...

    def _call_sync(self, jp: JoinPoint) -> Any:
        result = self.handler(jp)
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            raise AopConfigException(
                f"Coroutine @{self.advice_type} advice {self._handler_name} cannot advise "
                f"synchronous method {jp.signature}",
                context={"advice": self._handler_name, "method": jp.signature},
            )
        return result

    async def _call_async(self, jp: JoinPoint) -> Any:
        result = self.handler(jp)
        if inspect.isawaitable(result):
            result = await result
        return result

    @property
    def _handler_name(self) -> str:
        return getattr(self.handler, "__qualname__", repr(self.handler))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._handler_name})"


class AspectBeforeAdvice(AbstractAspectAdvice):
    advice_type = "before"

    def invoke_sync(self, invocation: ReflectiveMethodInvocation) -> Any:
        self._call_sync(join_point_for(invocation))
        return invocation.proceed()

    async def invoke_async(self, invocation: AsyncReflectiveMethodInvocation) -> Any:
        await self._call_async(join_point_for(invocation))
        return await invocation.proceed()


class AspectAfterReturningAdvice(AbstractAspectAdvice):
    advice_type = "after_returning"

    def invoke_sync(self, invocation: ReflectiveMethodInvocation) -> Any:
        result = invocation.proceed()
        jp = join_point_for(invocation)
        jp.return_value = result
        self._call_sync(jp)
        return result

    async def invoke_async(self, invocation: AsyncReflectiveMethodInvocation) -> Any:
        result = await invocation.proceed()
        jp = join_point_for(invocation)
        jp.return_value = result
        await self._call_async(jp)
        return result


class AspectAfterThrowingAdvice(AbstractAspectAdvice):
    advice_type = "after_throwing"

    def invoke_sync(self, invocation: ReflectiveMethodInvocation) -> Any:
        try:
            return invocation.proceed()
        except Exception as exc:
            jp = join_point_for(invocation)
            jp.exception = exc
            self._call_sync(jp)
            raise

    async def invoke_async(self, invocation: AsyncReflectiveMethodInvocation) -> Any:
        try:
            return await invocation.proceed()
        except Exception as exc:
            jp = join_point_for(invocation)
            jp.exception = exc
            await self._call_async(jp)
            raise


class AspectAfterAdvice(AbstractAspectAdvice):
    advice_type = "after"

    def invoke_sync(self, invocation: ReflectiveMethodInvocation) -> Any:
        jp = join_point_for(invocation)
        try:
            jp.return_value = invocation.proceed()
            return jp.return_value
        except Exception as exc:
            jp.exception = exc
            raise
        finally:
            self._call_sync(jp)

    async def invoke_async(self, invocation: AsyncReflectiveMethodInvocation) -> Any:
        jp = join_point_for(invocation)
        try:
            jp.return_value = await invocation.proceed()
            return jp.return_value
        except Exception as exc:
            jp.exception = exc
            raise
        finally:
            await self._call_async(jp)


class AspectAroundAdvice(AbstractAspectAdvice):
    advice_type = "around"

    def invoke_sync(self, invocation: ReflectiveMethodInvocation) -> Any:
        jp = join_point_for(invocation)
        jp.proceed = _proceed_with(invocation)
        return self._call_sync(jp)

    async def invoke_async(self, invocation: AsyncReflectiveMethodInvocation) -> Any:
        jp = join_point_for(invocation)
        jp.proceed = _proceed_with(invocation)
        return await self._call_async(jp)


def _proceed_with(invocation: ReflectiveMethodInvocation) -> Callable[..., Any]:
    """``jp.proceed`` for around advice; arguments, when given, replace the call's arguments."""

    def proceed(*args: Any, **kwargs: Any) -> Any:
        if args or kwargs:
            invocation.args = args
            invocation.kwargs = kwargs
        return invocation.proceed()

    return proceed


ASPECT_ADVICE_TYPES: dict[str, type[AbstractAspectAdvice]] = {
    "around": AspectAroundAdvice,
    "before": AspectBeforeAdvice,
    "after": AspectAfterAdvice,
    "after_returning": AspectAfterReturningAdvice,
    "after_throwing": AspectAfterThrowingAdvice,
}
