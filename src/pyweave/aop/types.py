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
"""JoinPoint: the view of an intercepted call handed to @aspect advice methods."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from pyweave.kernel.exceptions import AopInvocationException

if TYPE_CHECKING:
    from pyweave.aop.introspection import Method
    from pyweave.aop.invocation import ReflectiveMethodInvocation


@dataclass
class JoinPoint:
    """One method execution, as seen by aspect advice.

    Attributes:
        target: The object whose method is intercepted (never the proxy).
        method_name: Name of the intercepted method.
        args: Positional arguments of the call.
        kwargs: Keyword arguments of the call.
        return_value: Set for after-returning and after advice.
        exception: Set for after-throwing advice, and for after advice when
            the call failed.
        proceed: Continues the chain; set for around advice only.  Awaitable
            when the intercepted method is a coroutine.  Arguments, when
            given, replace the call's arguments.
        method: The intercepted method.
        invocation: The underlying method invocation.
    """

    target: Any
    method_name: str
    args: tuple
    kwargs: dict[str, Any]
    return_value: Any = None
    exception: BaseException | None = None
    proceed: Callable[..., Any] | None = None
    method: Method | None = None
    invocation: ReflectiveMethodInvocation | None = None

    @property
    def this(self) -> Any:
        """The proxy the call came through, or the target outside a proxy."""
        return self.invocation.proxy if self.invocation is not None else self.target

    @property
    def signature(self) -> str:
        """``module.Class.method`` of the intercepted method."""
        if self.method is not None:
            return self.method.qualified_name
        return f"{type(self.target).__qualname__}.{self.method_name}"

    def get_attribute(self, key: str, default: Any = None) -> Any:
        """Per-call attribute shared by every advice on this invocation."""
        if self.invocation is None:
            return default
        return self.invocation.get_user_attribute(key, default)

    def set_attribute(self, key: str, value: Any) -> None:
        if self.invocation is None:
            raise AopInvocationException(
                f"JoinPoint for {self.signature} is not bound to an invocation",
                context={"method": self.signature},
            )
        self.invocation.set_user_attribute(key, value)

    def __str__(self) -> str:
        return f"execution({self.signature})"
