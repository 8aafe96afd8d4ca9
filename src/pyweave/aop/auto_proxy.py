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
"""Auto-proxy creators — decide per bean whether it gets a proxy.

An auto-proxy creator is a bean post-processor.  For every bean the
container creates it computes a cache key (bean name, else class), vetoes
infrastructure beans, looks up the advisors that apply at most once per key
and, if there are any, replaces the bean with a proxy.  Decisions are
remembered, so beans known to need no proxy cost a single dict lookup.
"""

from __future__ import annotations

import fnmatch
import threading
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import structlog

from pyweave.aop.adapter import GlobalAdvisorAdapterRegistry
from pyweave.aop.advice import is_advice_class
from pyweave.aop.advised import ProxyConfig
from pyweave.aop.advisor import Advisor
from pyweave.aop.chain import DefaultAdvisorChainFactory, sort_advisors
from pyweave.aop.decorators import is_infrastructure, is_preserve_target_class
from pyweave.aop.pointcut import ClassFilter, MethodMatcher, Pointcut
from pyweave.aop.proxy import ProxyFactory
from pyweave.aop.target import SingletonTargetSource, TargetSource
from pyweave.aop.target_source_creators import TargetSourceCreator
from pyweave.aop.utils import evaluate_proxy_interfaces, find_advisors_that_can_apply, is_proxy_class
from pyweave.context.bean_factory import BeanFactory
from pyweave.context.proxy_creation import ProxyCreationContext
from pyweave.kernel.exceptions import AopConfigException

logger = structlog.get_logger("pyweave.aop.auto_proxy")

DO_NOT_PROXY: None = None
"""Returned by advisor lookups when a bean needs no proxy."""

PROXY_WITHOUT_ADDITIONAL_INTERCEPTORS: tuple[()] = ()
"""Returned when a bean needs a proxy with only the common interceptors."""

ORIGINAL_INSTANCE_SUFFIX = ".ORIGINAL"
ORIGINAL_TARGET_CLASS_ATTRIBUTE = "pyweave.aop.original_target_class"
PRESERVE_TARGET_CLASS_ATTRIBUTE = "pyweave.aop.preserve_target_class"


def _cache_key(bean_class: type, bean_name: str | None) -> str | type:
    return bean_name if bean_name else bean_class


class AbstractAutoProxyCreator(ProxyConfig, ABC):
    """Bean post-processor wrapping eligible beans in proxies.

    Subclasses decide which advisors apply to a bean
    (:meth:`get_advices_and_advisors_for_bean`).  Common interceptors named
    in :attr:`interceptor_names` are added to every proxy, before the
    bean-specific advisors unless :attr:`apply_common_interceptors_first`
    is False.  :attr:`custom_target_source_creators` may supply a target
    source instead of the bean instance; such beans are proxied before they
    are instantiated.
    """

    def __init__(self) -> None:
        super().__init__()
        self.advisor_adapter_registry = GlobalAdvisorAdapterRegistry.get_instance()
        self.freeze_proxy = False
        self.interceptor_names: list[str] = []
        self.apply_common_interceptors_first = True
        self.custom_target_source_creators: list[TargetSourceCreator] = []
        self._bean_factory: BeanFactory | None = None
        self._lock = threading.Lock()
        self._targeted_beans: set[str] = set()
        self._early_proxy_references: dict[str | type, tuple[Any, Any]] = {}
        self._proxy_types: dict[str | type, type] = {}
        self._advised_beans: dict[str | type, bool] = {}
        self._specific_interceptors: dict[str | type, Sequence[Any] | None] = {}

    # -- collaborators -------------------------------------------------------

    def set_bean_factory(self, bean_factory: BeanFactory) -> None:
        self._bean_factory = bean_factory
        for creator in self.custom_target_source_creators:
            setter = getattr(creator, "set_bean_factory", None)
            if setter is not None:
                setter(bean_factory)

    @property
    def bean_factory(self) -> BeanFactory | None:
        return self._bean_factory

    def set_custom_target_source_creators(self, *creators: TargetSourceCreator) -> None:
        self.custom_target_source_creators = list(creators)
        if self._bean_factory is not None:
            self.set_bean_factory(self._bean_factory)

    # -- container hooks -------------------------------------------------------

    def predict_bean_type(self, bean_class: type, bean_name: str) -> type | None:
        if not self._proxy_types:
            return None
        return self._proxy_types.get(_cache_key(bean_class, bean_name))

    def get_early_bean_reference(self, bean: Any, bean_name: str) -> Any:
        key = _cache_key(type(bean), bean_name)
        exposed = self.wrap_if_necessary(bean, bean_name, key)
        with self._lock:
            self._early_proxy_references[key] = (bean, exposed)
        return exposed

    def before_instantiation(self, bean_class: type, bean_name: str) -> Any:
        key = _cache_key(bean_class, bean_name)
        if not bean_name or bean_name not in self._targeted_beans:
            if key in self._advised_beans:
                return None
            if self.is_infrastructure_class(bean_class) or self.should_skip(bean_class, bean_name):
                self._remember(key, False)
                return None

        target_source = self.get_custom_target_source(bean_class, bean_name)
        if target_source is None:
            return None
        if bean_name:
            with self._lock:
                self._targeted_beans.add(bean_name)
        specific = self._lookup_advisors(key, bean_class, bean_name, target_source)
        proxy = self.create_proxy(bean_class, bean_name, specific, target_source)
        with self._lock:
            self._proxy_types[key] = type(proxy)
        return proxy

    def before_init(self, bean: Any, bean_name: str) -> Any:
        return bean

    def after_init(self, bean: Any, bean_name: str) -> Any:
        if bean is None:
            return bean
        key = _cache_key(type(bean), bean_name)
        with self._lock:
            early = self._early_proxy_references.pop(key, None)
        if early is not None and early[0] is bean:
            return early[1]
        return self.wrap_if_necessary(bean, bean_name, key)

    # -- decision ----------------------------------------------------------------

    def wrap_if_necessary(self, bean: Any, bean_name: str | None, key: str | type) -> Any:
        """Return a proxy for *bean* if any advice applies, else the bean itself."""
        if bean_name and bean_name in self._targeted_beans:
            return bean
        if self._advised_beans.get(key) is False:
            return bean
        bean_class = type(bean)
        if self.is_infrastructure_class(bean_class) or self.should_skip(bean_class, bean_name):
            self._remember(key, False)
            return bean

        specific = self._lookup_advisors(key, bean_class, bean_name, None)
        if specific is DO_NOT_PROXY:
            self._remember(key, False)
            return bean

        self._remember(key, True)
        proxy = self.create_proxy(bean_class, bean_name, specific, SingletonTargetSource(bean))
        with self._lock:
            self._proxy_types[key] = type(proxy)
        return proxy

    def _lookup_advisors(
        self,
        key: str | type,
        bean_class: type,
        bean_name: str | None,
        target_source: TargetSource | None,
    ) -> Sequence[Any] | None:
        if key in self._specific_interceptors:
            return self._specific_interceptors[key]
        specific = self.get_advices_and_advisors_for_bean(bean_class, bean_name, target_source)
        with self._lock:
            return self._specific_interceptors.setdefault(key, specific)

    def _remember(self, key: str | type, advised: bool) -> None:
        with self._lock:
            self._advised_beans[key] = advised

    def is_infrastructure_class(self, bean_class: type) -> bool:
        """Advice, advisors, pointcuts and marked classes are never proxied."""
        infrastructure = (
            issubclass(bean_class, (Advisor, Pointcut, ClassFilter, MethodMatcher, AbstractAutoProxyCreator))
            or is_advice_class(bean_class)
            or is_infrastructure(bean_class)
        )
        if infrastructure:
            logger.debug("skipping_infrastructure_class", bean_class=bean_class.__qualname__)
        return bool(infrastructure)

    def should_skip(self, bean_class: type, bean_name: str | None) -> bool:
        """Beans registered as the original instance of a proxied bean are skipped."""
        return bool(bean_name) and bean_name.endswith(ORIGINAL_INSTANCE_SUFFIX)  # type: ignore[union-attr]

    def get_custom_target_source(self, bean_class: type, bean_name: str | None) -> TargetSource | None:
        if not self.custom_target_source_creators or self._bean_factory is None or not bean_name:
            return None
        if not self._bean_factory.contains_bean(bean_name):
            return None
        for creator in self.custom_target_source_creators:
            target_source = creator.get_target_source(bean_class, bean_name)
            if target_source is not None:
                logger.debug(
                    "custom_target_source",
                    bean=bean_name,
                    creator=type(creator).__name__,
                    target_source=type(target_source).__name__,
                )
                return target_source
        return None

    # -- proxy building ----------------------------------------------------------

    def create_proxy(
        self,
        bean_class: type,
        bean_name: str | None,
        specific_interceptors: Sequence[Any] | None,
        target_source: TargetSource,
    ) -> Any:
        if bean_name and self._bean_factory is not None:
            self._bean_factory.set_bean_attribute(bean_name, ORIGINAL_TARGET_CLASS_ATTRIBUTE, bean_class)

        factory = ProxyFactory()
        factory.copy_from(self)
        factory.frozen = False
        factory.advisor_chain_factory = DefaultAdvisorChainFactory(self.advisor_adapter_registry)

        if factory.proxy_target_class:
            if is_proxy_class(bean_class):
                for iface in evaluate_proxy_interfaces(bean_class):
                    factory.add_interface(iface)
        elif self.should_proxy_target_class(bean_class, bean_name):
            factory.proxy_target_class = True
        else:
            interfaces = evaluate_proxy_interfaces(bean_class)
            if interfaces:
                for iface in interfaces:
                    factory.add_interface(iface)
            else:
                factory.proxy_target_class = True

        factory.add_advisors(self.build_advisors(bean_name, specific_interceptors))
        factory.target_source = target_source
        self.customize_proxy_factory(factory)
        factory.pre_filtered = self.advisors_pre_filtered()
        factory.frozen = self.freeze_proxy

        logger.debug(
            "creating_auto_proxy",
            bean=bean_name,
            bean_class=bean_class.__qualname__,
            advisors=factory.advisor_count,
            proxy_target_class=factory.proxy_target_class,
        )
        with ProxyCreationContext.proxying(bean_name):
            return factory.get_proxy()

    def should_proxy_target_class(self, bean_class: type, bean_name: str | None) -> bool:
        if is_preserve_target_class(bean_class):
            return True
        if bean_name and self._bean_factory is not None:
            return bool(self._bean_factory.get_bean_attribute(bean_name, PRESERVE_TARGET_CLASS_ATTRIBUTE, False))
        return False

    def build_advisors(self, bean_name: str | None, specific_interceptors: Sequence[Any] | None) -> list[Advisor]:
        common = self._resolve_interceptor_names()
        all_interceptors: list[Any] = list(specific_interceptors or ())
        if common:
            if all_interceptors and self.apply_common_interceptors_first:
                all_interceptors = common + all_interceptors
            else:
                all_interceptors.extend(common)
        logger.debug(
            "advisors_resolved",
            bean=bean_name,
            common=len(common),
            specific=len(specific_interceptors or ()),
        )
        return [self.advisor_adapter_registry.wrap(item) for item in all_interceptors]

    def _resolve_interceptor_names(self) -> list[Any]:
        if not self.interceptor_names:
            return []
        if self._bean_factory is None:
            raise AopConfigException(
                "interceptor_names require a bean factory",
                context={"names": list(self.interceptor_names)},
            )
        return [
            self.advisor_adapter_registry.wrap(self._bean_factory.get_bean(name)) for name in self.interceptor_names
        ]

    def customize_proxy_factory(self, proxy_factory: ProxyFactory) -> None:
        """Hook for subclasses to adjust the factory before the proxy is built."""

    def advisors_pre_filtered(self) -> bool:
        return False

    @abstractmethod
    def get_advices_and_advisors_for_bean(
        self,
        bean_class: type,
        bean_name: str | None,
        custom_target_source: TargetSource | None,
    ) -> Sequence[Any] | None:
        """Advisors for the bean, :data:`PROXY_WITHOUT_ADDITIONAL_INTERCEPTORS`, or :data:`DO_NOT_PROXY`."""


class AbstractAdvisorAutoProxyCreator(AbstractAutoProxyCreator):
    """Auto-proxy creator that applies advisors found in the bean factory."""

    def __init__(self) -> None:
        super().__init__()
        self._cached_advisor_bean_names: list[str] | None = None

    def set_bean_factory(self, bean_factory: BeanFactory) -> None:
        super().set_bean_factory(bean_factory)
        self._cached_advisor_bean_names = None

    def get_advices_and_advisors_for_bean(
        self,
        bean_class: type,
        bean_name: str | None,
        custom_target_source: TargetSource | None,
    ) -> Sequence[Any] | None:
        advisors = self.find_eligible_advisors(bean_class, bean_name)
        if not advisors:
            return DO_NOT_PROXY
        return advisors

    def find_eligible_advisors(self, bean_class: type, bean_name: str | None) -> list[Advisor]:
        candidates = self.find_candidate_advisors()
        eligible = self.find_advisors_that_can_apply(candidates, bean_class, bean_name)
        self.extend_advisors(eligible)
        if eligible:
            eligible = sort_advisors(eligible)
        return eligible

    def find_candidate_advisors(self) -> list[Advisor]:
        """Advisor beans of the bean factory, skipping those still being created."""
        bean_factory = self._bean_factory
        if bean_factory is None:
            return []
        names = self._cached_advisor_bean_names
        if names is None:
            names = bean_factory.get_bean_names_for_type(Advisor)
            self._cached_advisor_bean_names = names
        advisors: list[Advisor] = []
        for name in names:
            if not self.is_eligible_advisor_bean(name):
                continue
            if bean_factory.is_currently_in_creation(name):
                logger.debug("skipping_advisor_in_creation", advisor=name)
                continue
            advisors.append(bean_factory.get_bean(name))
        return advisors

    def find_advisors_that_can_apply(
        self, candidates: list[Advisor], bean_class: type, bean_name: str | None
    ) -> list[Advisor]:
        with ProxyCreationContext.proxying(bean_name):
            return find_advisors_that_can_apply(candidates, bean_class)

    def is_eligible_advisor_bean(self, bean_name: str) -> bool:
        return True

    def extend_advisors(self, candidate_advisors: list[Advisor]) -> None:
        """Hook to add, remove or reorder the eligible advisors in place."""

    def advisors_pre_filtered(self) -> bool:
        return True


class DefaultAdvisorAutoProxyCreator(AbstractAdvisorAutoProxyCreator):
    """Applies every ``Advisor`` bean, optionally those with a name prefix only.

    Usage::

        factory.add_bean_post_processor(DefaultAdvisorAutoProxyCreator())
        factory.register_singleton("txAdvisor", tx_advisor)
    """

    def __init__(self, advisor_bean_name_prefix: str | None = None) -> None:
        super().__init__()
        self.advisor_bean_name_prefix = advisor_bean_name_prefix

    @property
    def use_prefix(self) -> bool:
        return self.advisor_bean_name_prefix is not None

    def is_eligible_advisor_bean(self, bean_name: str) -> bool:
        if not self.use_prefix:
            return True
        return bean_name.startswith(self.advisor_bean_name_prefix)  # type: ignore[arg-type]


class BeanNameAutoProxyCreator(AbstractAutoProxyCreator):
    """Proxies beans whose names match glob patterns with the common interceptors.

    Usage::

        creator = BeanNameAutoProxyCreator("*Service", "order*")
        creator.interceptor_names = ["auditInterceptor"]
    """

    def __init__(self, *bean_names: str) -> None:
        super().__init__()
        self.bean_names: list[str] = [name.strip() for name in bean_names]

    def set_bean_names(self, *bean_names: str) -> None:
        self.bean_names = [name.strip() for name in bean_names]

    def is_match(self, bean_name: str | None) -> bool:
        if not bean_name:
            return False
        return any(bean_name == pattern or fnmatch.fnmatchcase(bean_name, pattern) for pattern in self.bean_names)

    def get_custom_target_source(self, bean_class: type, bean_name: str | None) -> TargetSource | None:
        if not self.is_match(bean_name):
            return None
        return super().get_custom_target_source(bean_class, bean_name)

    def get_advices_and_advisors_for_bean(
        self,
        bean_class: type,
        bean_name: str | None,
        custom_target_source: TargetSource | None,
    ) -> Sequence[Any] | None:
        if self.is_match(bean_name):
            return PROXY_WITHOUT_ADDITIONAL_INTERCEPTORS
        return DO_NOT_PROXY
