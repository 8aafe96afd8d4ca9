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
"""AopContext — access to the proxy currently handling a call."""

from __future__ import annotations

from contextvars import ContextVar, Token
from typing import Any

from pyweave.kernel.exceptions import AopConfigException

_current_proxy: ContextVar[Any] = ContextVar("pyweave_current_proxy", default=None)


class AopContext:
    """Exposes the current proxy to the target while a call is in progress.

    Only populated for proxies created with ``expose_proxy=True``.  A target
    uses it to route self-invocations through its own advice::

        def place(self, order):
            AopContext.current_proxy().audit(order)
    """

    @staticmethod
    def current_proxy() -> Any:
        proxy = _current_proxy.get()
        if proxy is None:
            raise AopConfigException(
                "Cannot find current proxy: set 'expose_proxy' to True on the proxy "
                "configuration to make it available",
                code="AOP_PROXY_NOT_EXPOSED",
            )
        return proxy

    @staticmethod
    def set_current_proxy(proxy: Any) -> Token[Any]:
        return _current_proxy.set(proxy)

    @staticmethod
    def reset(token: Token[Any]) -> None:
        _current_proxy.reset(token)
