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
"""Target source creators — custom target sources for auto-proxied beans."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Protocol, runtime_checkable

import structlog

from pyweave.aop.decorators import is_lazy_target
from pyweave.aop.target import (
    AbstractBeanFactoryBasedTargetSource,
    LazyInitTargetSource,
    PrototypeTargetSource,
    SimplePoolTargetSource,
    TargetSource,
    ThreadLocalTargetSource,
)
from pyweave.context.bean_factory import BeanFactory

logger = structlog.get_logger("pyweave.aop.target_source_creators")

LAZY_INIT_ATTRIBUTE = "lazy_init"


@runtime_checkable
class TargetSourceCreator(Protocol):
    """Supplies a target source for a bean, or None to use the bean instance."""

    def get_target_source(self, bean_class: type, bean_name: str) -> TargetSource | None: ...


class AbstractBeanFactoryBasedTargetSourceCreator(ABC):
    """Creates bean-factory based target sources wired to the owning factory."""

    def __init__(self) -> None:
        self._bean_factory: BeanFactory | None = None

    def set_bean_factory(self, bean_factory: BeanFactory) -> None:
        self._bean_factory = bean_factory

    def get_target_source(self, bean_class: type, bean_name: str) -> TargetSource | None:
        target_source = self.create_bean_factory_based_target_source(bean_class, bean_name)
        if target_source is None:
            return None
        if self._bean_factory is not None:
            target_source.set_bean_factory(self._bean_factory)
        logger.debug("target_source_created", bean=bean_name, target_source=type(target_source).__name__)
        return target_source

    @abstractmethod
    def create_bean_factory_based_target_source(
        self, bean_class: type, bean_name: str
    ) -> AbstractBeanFactoryBasedTargetSource | None: ...


class LazyInitTargetSourceCreator(AbstractBeanFactoryBasedTargetSourceCreator):
    """Lazy targets for classes marked ``@lazy_target`` or beans with a ``lazy_init`` attribute."""

    def create_bean_factory_based_target_source(
        self, bean_class: type, bean_name: str
    ) -> AbstractBeanFactoryBasedTargetSource | None:
        lazy = is_lazy_target(bean_class)
        if not lazy and self._bean_factory is not None:
            lazy = bool(self._bean_factory.get_bean_attribute(bean_name, LAZY_INIT_ATTRIBUTE, False))
        if not lazy:
            return None
        return LazyInitTargetSource(bean_name, bean_class)


class QuickTargetSourceCreator(AbstractBeanFactoryBasedTargetSourceCreator):
    """Target sources chosen by bean-name prefix.

    * ``:name`` -> :class:`SimplePoolTargetSource`
    * ``!name`` -> :class:`ThreadLocalTargetSource`
    * ``%name`` -> :class:`PrototypeTargetSource`
    """

    PREFIX_COMMONS_POOL = ":"
    PREFIX_THREAD_LOCAL = "!"
    PREFIX_PROTOTYPE = "%"

    def __init__(self, pool_max_size: int = 8) -> None:
        super().__init__()
        self.pool_max_size = pool_max_size

    def create_bean_factory_based_target_source(
        self, bean_class: type, bean_name: str
    ) -> AbstractBeanFactoryBasedTargetSource | None:
        if bean_name.startswith(self.PREFIX_COMMONS_POOL):
            return SimplePoolTargetSource(bean_name, bean_class, max_size=self.pool_max_size)
        if bean_name.startswith(self.PREFIX_THREAD_LOCAL):
            return ThreadLocalTargetSource(bean_name, bean_class)
        if bean_name.startswith(self.PREFIX_PROTOTYPE):
            return PrototypeTargetSource(bean_name, bean_class)
        return None
