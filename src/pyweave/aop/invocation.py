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
"""Invocation runtime — walks an interceptor chain with onion semantics.

One invocation object exists per proxied call.  It carries the call's
immutable facts (proxy, target, method, arguments, chain) and a cursor into
the chain.  Each :meth:`~ReflectiveMethodInvocation.proceed` runs the
remainder of the chain from the cursor; when the cursor has passed the last
interceptor, the target method itself is called.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pyweave.kernel.exceptions import AopInvocationException

if TYPE_CHECKING:
    from pyweave.aop.introspection import Method
    from pyweave.aop.pointcut import MethodMatcher


@dataclass(frozen=True)
class InterceptorAndDynamicMethodMatcher:
    """Chain entry whose interceptor only runs if the matcher accepts the arguments."""

    interceptor: Any
    method_matcher: MethodMatcher


def invoke_joinpoint_using_reflection(target: Any, method: Method, args: tuple, kwargs: dict[str, Any]) -> Any:
    """Call *method* on *target*, failing clearly when there is no target."""
    if target is None:
        raise AopInvocationException(
            f"No target to invoke {method} on: the proxy was created without a target "
            f"and no interceptor handled the call",
            context={"method": str(method)},
        )
    return method.invoke(target, args, kwargs)


class ReflectiveMethodInvocation:
    """Per-call invocation for synchronous methods.

    Interceptors receive this object in ``invoke`` and may call
    :meth:`proceed` any number of times: not at all (short-circuit), once,
    or repeatedly (retry).  Every call to :meth:`proceed` restarts the rest
    of the chain from the interceptor's own position.  Exceptions raised
    anywhere in the chain propagate unchanged.
    """

    def __init__(
        self,
        proxy: Any,
        target: Any,
        method: Method,
        args: tuple,
        kwargs: dict[str, Any],
        target_class: type | None,
        interceptors: tuple[Any, ...] | list[Any],
    ) -> None:
        self.proxy = proxy
        self.target = target
        self.method = method
        self.args = tuple(args)
        self.kwargs = dict(kwargs)
        self.target_class = target_class
        self.interceptors = tuple(interceptors)
        self._cursor = 0
        self._user_attributes: dict[str, Any] | None = None

    @property
    def this(self) -> Any:
        """The object the join point is executing on (the target)."""
        return self.target

    @property
    def static_part(self) -> Method:
        """The method being invoked; identical for the whole traversal."""
        return self.method

    @property
    def current_interceptor_index(self) -> int:
        return self._cursor - 1

    def proceed(self) -> Any:
        position = self._cursor
        if position >= len(self.interceptors):
            return self.invoke_joinpoint()

        entry = self.interceptors[position]
        self._cursor = position + 1
        try:
            if isinstance(entry, InterceptorAndDynamicMethodMatcher):
                if self._runtime_match(entry):
                    return entry.interceptor.invoke(self)
                return self.proceed()
            return entry.invoke(self)
        finally:
            self._cursor = position

    def invoke_joinpoint(self) -> Any:
        return invoke_joinpoint_using_reflection(self.target, self.method, self.args, self.kwargs)

    def _runtime_match(self, entry: InterceptorAndDynamicMethodMatcher) -> bool:
        target_class = self.target_class if self.target_class is not None else self.method.declaring_class
        return entry.method_matcher.matches_runtime(self.method, target_class, self.args, self.kwargs)

    # -- user attributes -----------------------------------------------------

    def set_user_attribute(self, key: str, value: Any) -> None:
        """Attach *value* to this invocation; ``None`` removes the key."""
        if value is None:
            if self._user_attributes is not None:
                self._user_attributes.pop(key, None)
            return
        if self._user_attributes is None:
            self._user_attributes = {}
        self._user_attributes[key] = value

    def get_user_attribute(self, key: str, default: Any = None) -> Any:
        if self._user_attributes is None:
            return default
        return self._user_attributes.get(key, default)

    @property
    def user_attributes(self) -> dict[str, Any]:
        if self._user_attributes is None:
            self._user_attributes = {}
        return self._user_attributes

    def __repr__(self) -> str:
        target = "no target" if self.target is None else f"target is of class [{type(self.target).__qualname__}]"
        return f"{type(self).__name__}: {self.method}; {target}"


class AsyncReflectiveMethodInvocation(ReflectiveMethodInvocation):
    """Invocation for coroutine methods; :meth:`proceed` must be awaited.

    Interceptors may be plain functions returning ``invocation.proceed()``
    (the coroutine is awaited further out) or coroutines themselves.
    """

    async def proceed(self) -> Any:  # type: ignore[override]
        position = self._cursor
        if position >= len(self.interceptors):
            result = self.invoke_joinpoint()
            if inspect.isawaitable(result):
                result = await result
            return result

        entry = self.interceptors[position]
        self._cursor = position + 1
        try:
            if isinstance(entry, InterceptorAndDynamicMethodMatcher):
                if not self._runtime_match(entry):
                    return await self.proceed()
                result = entry.interceptor.invoke(self)
            else:
                result = entry.invoke(self)
            if inspect.isawaitable(result):
                result = await result
            return result
        finally:
            self._cursor = position
