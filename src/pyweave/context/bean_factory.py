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
"""Bean factory collaborator consumed by the auto-proxy creators.

The AOP layer does not own bean lifecycles.  It talks to whatever container
hosts it through the :class:`BeanFactory` protocol.  :class:`StaticBeanFactory`
is a small in-memory implementation: singletons registered up front plus
bean definitions created on demand, with post-processor callbacks and early
references for circular dependencies.
"""

from __future__ import annotations

import difflib
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Protocol, TypeVar, runtime_checkable

import structlog

from pyweave.container.exceptions import BeanCreationException, NoSuchBeanError
from pyweave.context.post_processor import BeanPostProcessor, SmartInstantiationAwareBeanPostProcessor

T = TypeVar("T")

logger = structlog.get_logger("pyweave.context")


@runtime_checkable
class BeanFactory(Protocol):
    """Container view required by the auto-proxy creators."""

    def get_bean(self, name: str) -> Any: ...

    def contains_bean(self, name: str) -> bool: ...

    def get_type(self, name: str) -> type | None: ...

    def get_bean_names_for_type(self, cls: type) -> list[str]: ...

    def get_beans_of_type(self, cls: type[T]) -> dict[str, T]: ...

    def is_currently_in_creation(self, name: str) -> bool: ...

    def get_bean_attribute(self, name: str, key: str, default: Any = None) -> Any: ...

    def set_bean_attribute(self, name: str, key: str, value: Any) -> None: ...

    def create_bean(self, name: str) -> Any: ...


@runtime_checkable
class BeanFactoryAware(Protocol):
    def set_bean_factory(self, bean_factory: BeanFactory) -> None: ...


@dataclass
class BeanDefinition:
    """Recipe for a bean: how to instantiate it and how to wire it."""

    bean_class: type
    factory: Callable[[], Any] | None = None
    populate: Callable[[Any, StaticBeanFactory], None] | None = None
    singleton: bool = True
    attributes: dict[str, Any] = field(default_factory=dict)

    def instantiate(self) -> Any:
        return self.factory() if self.factory is not None else self.bean_class()


class StaticBeanFactory:
    """In-memory BeanFactory.

    Usage::

        factory = StaticBeanFactory()
        factory.add_bean_post_processor(DefaultAdvisorAutoProxyCreator())
        factory.register_singleton("txAdvisor", advisor)
        factory.register_definition("orderService", OrderService)
        service = factory.get_bean("orderService")   # a proxy
    """

    def __init__(self) -> None:
        self._definitions: dict[str, BeanDefinition] = {}
        self._singletons: dict[str, Any] = {}
        self._early_singletons: dict[str, Any] = {}
        self._in_creation: dict[str, Any] = {}
        self._post_processors: list[BeanPostProcessor] = []

    # -- registration --------------------------------------------------------

    def register_singleton(self, name: str, bean: Any) -> None:
        """Register a ready-made object; post-processors are not applied."""
        self._singletons[name] = bean
        self._definitions.setdefault(name, BeanDefinition(bean_class=type(bean)))

    def register_definition(
        self,
        name: str,
        bean_class: type,
        factory: Callable[[], Any] | None = None,
        populate: Callable[[Any, StaticBeanFactory], None] | None = None,
        singleton: bool = True,
        **attributes: Any,
    ) -> BeanDefinition:
        definition = BeanDefinition(
            bean_class=bean_class,
            factory=factory,
            populate=populate,
            singleton=singleton,
            attributes=dict(attributes),
        )
        self._definitions[name] = definition
        return definition

    def add_bean_post_processor(self, post_processor: BeanPostProcessor) -> None:
        if isinstance(post_processor, BeanFactoryAware):
            post_processor.set_bean_factory(self)
        self._post_processors.append(post_processor)

    # -- BeanFactory ---------------------------------------------------------

    def contains_bean(self, name: str) -> bool:
        return name in self._definitions

    def get_type(self, name: str) -> type | None:
        if name in self._singletons:
            return type(self._singletons[name])
        definition = self._definitions.get(name)
        if definition is None:
            return None
        for pp in self._smart_post_processors():
            predicted = pp.predict_bean_type(definition.bean_class, name)
            if predicted is not None:
                return predicted
        return definition.bean_class

    def get_bean_names_for_type(self, cls: type) -> list[str]:
        return [
            name
            for name, definition in self._definitions.items()
            if isinstance(definition.bean_class, type) and issubclass(definition.bean_class, cls)
        ]

    def get_beans_of_type(self, cls: type[T]) -> dict[str, T]:
        return {name: self.get_bean(name) for name in self.get_bean_names_for_type(cls)}

    def is_currently_in_creation(self, name: str) -> bool:
        return name in self._in_creation

    def get_bean_attribute(self, name: str, key: str, default: Any = None) -> Any:
        definition = self._definitions.get(name)
        if definition is None:
            return default
        return definition.attributes.get(key, default)

    def set_bean_attribute(self, name: str, key: str, value: Any) -> None:
        definition = self._definitions.get(name)
        if definition is not None:
            definition.attributes[key] = value

    def get_bean(self, name: str) -> Any:
        if name in self._singletons:
            return self._singletons[name]
        if name in self._in_creation:
            return self._early_reference(name)
        definition = self._require_definition(name)
        bean = self._create(name, definition)
        if definition.singleton:
            self._singletons[name] = bean
        return bean

    def preinstantiate_singletons(self) -> None:
        """Eagerly create every singleton bean, in registration order."""
        for name, definition in list(self._definitions.items()):
            if definition.singleton and name not in self._singletons:
                self.get_bean(name)
        logger.debug("singletons_preinstantiated", count=len(self._singletons))

    def create_bean(self, name: str) -> Any:
        """Create a fresh, fully initialized instance (prototype semantics).

        Instantiation short-circuits from post-processors are not consulted,
        so target sources can use this to obtain raw targets.
        """
        definition = self._require_definition(name)
        bean = definition.instantiate()
        if definition.populate is not None:
            definition.populate(bean, self)
        return bean

    # -- internals -----------------------------------------------------------

    def _require_definition(self, name: str) -> BeanDefinition:
        definition = self._definitions.get(name)
        if definition is None:
            raise NoSuchBeanError(name, difflib.get_close_matches(name, list(self._definitions), n=3))
        return definition

    def _smart_post_processors(self) -> list[SmartInstantiationAwareBeanPostProcessor]:
        return [pp for pp in self._post_processors if isinstance(pp, SmartInstantiationAwareBeanPostProcessor)]

    def _early_reference(self, name: str) -> Any:
        if name in self._early_singletons:
            return self._early_singletons[name]
        raw = self._in_creation[name]
        if raw is None:
            raise BeanCreationException(name, "requested while being instantiated (unresolvable circular reference)")
        exposed = raw
        for pp in self._smart_post_processors():
            exposed = pp.get_early_bean_reference(exposed, name)
        self._early_singletons[name] = exposed
        return exposed

    def _create(self, name: str, definition: BeanDefinition) -> Any:
        for pp in self._smart_post_processors():
            short_circuit = pp.before_instantiation(definition.bean_class, name)
            if short_circuit is not None:
                logger.debug("bean_instantiation_short_circuited", bean=name, type=type(short_circuit).__name__)
                return self._apply_after_init(short_circuit, name)

        self._in_creation[name] = None
        try:
            raw = definition.instantiate()
            self._in_creation[name] = raw
            if definition.populate is not None:
                definition.populate(raw, self)

            bean = raw
            for pp in self._post_processors:
                bean = pp.before_init(bean, name)
            bean = self._apply_after_init(bean, name)

            early = self._early_singletons.pop(name, None)
            if early is not None and bean is raw:
                bean = early
            return bean
        finally:
            self._in_creation.pop(name, None)

    def _apply_after_init(self, bean: Any, name: str) -> Any:
        for pp in self._post_processors:
            bean = pp.after_init(bean, name)
        return bean
