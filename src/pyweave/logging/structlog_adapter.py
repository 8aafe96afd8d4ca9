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
"""StructlogAdapter — LoggingPort implementation using structlog."""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from pyweave.config.properties.logging import LoggingProperties
from pyweave.context.proxy_creation import ProxyCreationContext
from pyweave.core.config import Config


def add_proxied_bean(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Tag events emitted while an auto-proxy creator builds a bean's proxy."""
    bean_name = ProxyCreationContext.current_proxied_bean_name()
    if bean_name is not None:
        event_dict.setdefault("proxied_bean", bean_name)
    return event_dict


class StructlogAdapter:
    """Logging adapter backed by structlog.

    ``format`` selects console or JSON rendering.  ``level`` maps logger
    names to levels, ``root`` being the root logger, e.g.
    ``{"root": "INFO", "pyweave.aop.chain": "DEBUG"}`` traces chain
    resolution only.
    """

    def __init__(self) -> None:
        self._root_level: str = "INFO"
        self._format: str = "console"
        self._module_levels: dict[str, str] = {}

    @classmethod
    def from_config(cls, config: Config) -> StructlogAdapter:
        adapter = cls()
        adapter.configure(config.bind(LoggingProperties))
        return adapter

    def configure(self, properties: LoggingProperties) -> None:
        levels = {name: level.upper() for name, level in properties.level.items()}
        self._root_level = levels.pop("root", "INFO")
        self._module_levels = levels
        self._format = properties.format

        self._setup_structlog()
        for name, level in self._module_levels.items():
            self.set_level(name, level)

    def get_logger(self, name: str) -> Any:
        return structlog.get_logger(name)

    def set_level(self, name: str, level: str) -> None:
        logging.getLogger(name).setLevel(getattr(logging, level.upper(), logging.INFO))

    def _renderer(self) -> structlog.typing.Processor:
        if self._format == "json":
            return structlog.processors.JSONRenderer()
        return structlog.dev.ConsoleRenderer()

    def _setup_structlog(self) -> None:
        structlog.configure(
            processors=[
                structlog.contextvars.merge_contextvars,
                add_proxied_bean,
                structlog.stdlib.filter_by_level,
                structlog.stdlib.add_logger_name,
                structlog.stdlib.add_log_level,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                self._renderer(),
            ],
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=getattr(logging, self._root_level, logging.INFO),
            force=True,
        )
