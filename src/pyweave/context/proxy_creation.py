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
"""Name of the bean whose proxy is currently being built."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

_current_proxied_bean: ContextVar[str | None] = ContextVar("pyweave_current_proxied_bean", default=None)


class ProxyCreationContext:
    """Set by the auto-proxy creators around proxy construction; read by log processors."""

    @staticmethod
    def current_proxied_bean_name() -> str | None:
        return _current_proxied_bean.get()

    @staticmethod
    @contextmanager
    def proxying(bean_name: str | None) -> Iterator[None]:
        token = _current_proxied_bean.set(bean_name)
        try:
            yield
        finally:
            _current_proxied_bean.reset(token)
