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
"""AOP auto-configuration — AspectAutoProxyCreator from pyweave.aop properties."""

from __future__ import annotations

import structlog

from pyweave.aop.post_processor import AspectAutoProxyCreator
from pyweave.config.properties.aop import AopProperties
from pyweave.config.properties.logging import LoggingProperties
from pyweave.context.bean_factory import StaticBeanFactory
from pyweave.core.config import Config
from pyweave.logging.port import LoggingPort
from pyweave.logging.structlog_adapter import StructlogAdapter

logger = structlog.get_logger("pyweave.aop")


class AopAutoConfiguration:
    """Auto-configures the AspectAutoProxyCreator for aspect proxying.

    Usage::

        config = Config.from_sources(".")
        factory = StaticBeanFactory()
        AopAutoConfiguration(config).configure(factory)
    """

    def __init__(self, config: Config | None = None) -> None:
        self._config = config if config is not None else Config.from_sources(".", load_defaults=True)

    def aop_properties(self) -> AopProperties:
        return self._config.bind(AopProperties)

    def logging_port(self, port: LoggingPort | None = None) -> LoggingPort:
        """Apply pyweave.logging.* to *port*, a StructlogAdapter unless given."""
        port = port if port is not None else StructlogAdapter()
        port.configure(self._config.bind(LoggingProperties))
        return port

    def aspect_auto_proxy_creator(self) -> AspectAutoProxyCreator | None:
        props = self.aop_properties()
        if not props.enabled:
            logger.info("aop_disabled", prefix="pyweave.aop")
            return None
        creator = AspectAutoProxyCreator()
        creator.proxy_target_class = props.proxy_target_class
        creator.expose_proxy = props.expose_proxy
        creator.opaque = props.opaque
        creator.optimize = props.optimize
        creator.freeze_proxy = props.frozen
        logger.debug(
            "aspect_auto_proxy_creator_configured",
            proxy_target_class=props.proxy_target_class,
            expose_proxy=props.expose_proxy,
            frozen=props.frozen,
        )
        return creator

    def configure(self, bean_factory: StaticBeanFactory) -> AspectAutoProxyCreator | None:
        """Register the creator as a post-processor of *bean_factory*."""
        creator = self.aspect_auto_proxy_creator()
        if creator is not None:
            bean_factory.add_bean_post_processor(creator)
        return creator
