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
"""Proxy configuration — the advised state a proxy is built from.

:class:`AdvisedSupport` holds the advisors, interfaces and target source of
a proxy together with the per-method chain cache.  Proxies keep a reference
to it, so advisors added later take effect on existing proxies (unless the
configuration is frozen).
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any, NamedTuple, Protocol

import structlog

from pyweave.aop.adapter import DefaultAdvisorAdapterRegistry, GlobalAdvisorAdapterRegistry
from pyweave.aop.advice import IntroductionInterceptor
from pyweave.aop.advisor import Advisor, DefaultIntroductionAdvisor, DefaultPointcutAdvisor, IntroductionAdvisor
from pyweave.aop.chain import AdvisorChainFactory, DefaultAdvisorChainFactory
from pyweave.aop.introspection import Method
from pyweave.aop.target import EmptyTargetSource, SingletonTargetSource, TargetSource
from pyweave.kernel.exceptions import AopConfigException, ChainCacheInconsistencyError

if TYPE_CHECKING:
    from pyweave.aop.proxy import AopProxy, DefaultAopProxyFactory

logger = structlog.get_logger("pyweave.aop.advised")


class ProxyConfig:
    """Flags shared by proxy factories and auto-proxy creators.

    Attributes:
        proxy_target_class: Proxy the target class itself (subclass proxy)
            instead of its interfaces.
        optimize: Allow the most aggressive strategy; treated like
            ``proxy_target_class`` when choosing a strategy.
        opaque: Hide the advised configuration from users of the proxy.
        expose_proxy: Publish the proxy through :class:`AopContext` during calls.
        frozen: Reject advice changes once set.
        proxy_target_class_resolver: Per-class callback deciding the strategy
            (True: subclass, False: contract, None: no opinion).
    """

    def __init__(self) -> None:
        self.proxy_target_class = False
        self.optimize = False
        self.opaque = False
        self.expose_proxy = False
        self.frozen = False
        self.proxy_target_class_resolver: Callable[[type | None], bool | None] | None = None

    def copy_from(self, other: ProxyConfig) -> None:
        self.proxy_target_class = other.proxy_target_class
        self.optimize = other.optimize
        self.opaque = other.opaque
        self.expose_proxy = other.expose_proxy
        self.frozen = other.frozen
        self.proxy_target_class_resolver = other.proxy_target_class_resolver

    def __repr__(self) -> str:
        return (
            f"proxy_target_class={self.proxy_target_class}; optimize={self.optimize}; "
            f"opaque={self.opaque}; expose_proxy={self.expose_proxy}; frozen={self.frozen}"
        )


class AdvisedSupportListener(Protocol):
    """Notified about proxy activation and advice changes."""

    def activated(self, advised: AdvisedSupport) -> None: ...

    def advice_changed(self, advised: AdvisedSupport) -> None: ...


class _ChainEntry(NamedTuple):
    chain: tuple[Any, ...]
    advisors: tuple[Advisor, ...]


class AdvisedSupport(ProxyConfig):
    """Advisors, interfaces and target source of a proxy, plus its chain cache.

    Chains are cached per ``(target class, method)``.  Any advisor or
    interface change clears the cache; a chain computed concurrently with
    such a change is discarded instead of being cached.
    """

    def __init__(self, *interfaces: type) -> None:
        super().__init__()
        self._target_source: TargetSource = EmptyTargetSource.INSTANCE
        self._advisors: list[Advisor] = []
        self._interfaces: list[type] = []
        self.advisor_chain_factory: AdvisorChainFactory = DefaultAdvisorChainFactory()
        self.pre_filtered = False
        self._method_cache: dict[tuple[type | None, Method], _ChainEntry] = {}
        self._cache_version = 0
        self._lock = threading.Lock()
        for iface in interfaces:
            self.add_interface(iface)

    # -- target ----------------------------------------------------------------

    @property
    def target_source(self) -> TargetSource:
        return self._target_source

    @target_source.setter
    def target_source(self, target_source: TargetSource | None) -> None:
        self._target_source = target_source if target_source is not None else EmptyTargetSource.INSTANCE

    def set_target(self, target: Any) -> None:
        self.target_source = SingletonTargetSource(target)

    def set_target_class(self, target_class: type | None) -> None:
        """Proxy a class without a target instance (advice answers every call)."""
        self.target_source = EmptyTargetSource.for_class(target_class)

    @property
    def target_class(self) -> type | None:
        return self._target_source.get_target_class()

    # -- interfaces ------------------------------------------------------------

    @property
    def interfaces(self) -> tuple[type, ...]:
        return tuple(self._interfaces)

    def set_interfaces(self, *interfaces: type) -> None:
        self._interfaces.clear()
        for iface in interfaces:
            self.add_interface(iface)

    def add_interface(self, interface: type) -> None:
        if not isinstance(interface, type):
            raise AopConfigException(f"[{interface!r}] is not a class", context={"interface": repr(interface)})
        if interface not in self._interfaces:
            self._interfaces.append(interface)
            self.advice_changed()

    def remove_interface(self, interface: type) -> bool:
        if interface not in self._interfaces:
            return False
        self._interfaces.remove(interface)
        self.advice_changed()
        return True

    def is_interface_proxied(self, interface: type) -> bool:
        return any(issubclass(proxied, interface) for proxied in self._interfaces)

    # -- advisors --------------------------------------------------------------

    @property
    def adapter_registry(self) -> DefaultAdvisorAdapterRegistry:
        """Registry the chain factory adapts advice with; advisors are checked against it when added."""
        registry = getattr(self.advisor_chain_factory, "registry", None)
        return registry if registry is not None else GlobalAdvisorAdapterRegistry.get_instance()

    @property
    def advisors(self) -> tuple[Advisor, ...]:
        return tuple(self._advisors)

    @property
    def advisor_count(self) -> int:
        return len(self._advisors)

    def add_advisor(self, advisor: Advisor) -> None:
        self.add_advisor_at(len(self._advisors), advisor)

    def add_advisor_at(self, position: int, advisor: Advisor) -> None:
        self._check_frozen("add advisor")
        self.adapter_registry.check_advisor(advisor)
        if isinstance(advisor, IntroductionAdvisor):
            self._validate_introduction_advisor(advisor)
        self._add_advisor_internal(position, advisor)

    def add_advisors(self, *advisors: Advisor | Iterable[Advisor]) -> None:
        self._check_frozen("add advisors")
        flat: list[Advisor] = []
        for item in advisors:
            if isinstance(item, Advisor):
                flat.append(item)
            else:
                flat.extend(item)
        if not flat:
            return
        for advisor in flat:
            self.adapter_registry.check_advisor(advisor)
            if isinstance(advisor, IntroductionAdvisor):
                self._validate_introduction_advisor(advisor)
        self._advisors.extend(flat)
        self.advice_changed()

    def remove_advisor(self, advisor: Advisor) -> bool:
        index = self.index_of(advisor)
        if index == -1:
            return False
        self.remove_advisor_at(index)
        return True

    def remove_advisor_at(self, index: int) -> None:
        self._check_frozen("remove advisor")
        if not 0 <= index < len(self._advisors):
            raise AopConfigException(
                f"Advisor index {index} is out of bounds: only {len(self._advisors)} advisors defined",
                context={"index": index},
            )
        advisor = self._advisors.pop(index)
        if isinstance(advisor, IntroductionAdvisor):
            for iface in advisor.interfaces:
                self.remove_interface(iface)
        self.advice_changed()

    def index_of(self, advisor_or_advice: Any) -> int:
        """Position of an advisor, or of the first advisor holding an advice; -1 if absent."""
        for index, advisor in enumerate(self._advisors):
            if advisor is advisor_or_advice:
                return index
        for index, advisor in enumerate(self._advisors):
            if advisor.advice is advisor_or_advice:
                return index
        return -1

    def replace_advisor(self, old: Advisor, new: Advisor) -> bool:
        index = self.index_of(old)
        if index == -1:
            return False
        self.remove_advisor_at(index)
        self.add_advisor_at(index, new)
        return True

    def add_advice(self, advice: Any) -> None:
        self.add_advice_at(len(self._advisors), advice)

    def add_advice_at(self, position: int, advice: Any) -> None:
        if isinstance(advice, IntroductionInterceptor):
            if getattr(advice, "interfaces", None) is None:
                raise AopConfigException(
                    "An IntroductionInterceptor without published interfaces needs an IntroductionAdvisor",
                    context={"advice_type": type(advice).__qualname__},
                )
            self.add_advisor_at(position, DefaultIntroductionAdvisor(advice))
        else:
            self.add_advisor_at(position, DefaultPointcutAdvisor(advice))

    def remove_advice(self, advice: Any) -> bool:
        index = self.index_of(advice)
        if index == -1:
            return False
        self.remove_advisor_at(index)
        return True

    def advice_included(self, advice: Any) -> bool:
        return any(advisor.advice is advice for advisor in self._advisors)

    def count_advices_of_type(self, advice_type: type) -> int:
        return sum(1 for advisor in self._advisors if isinstance(advisor.advice, advice_type))

    def _validate_introduction_advisor(self, advisor: IntroductionAdvisor) -> None:
        advisor.validate_interfaces()
        for iface in advisor.interfaces:
            self.add_interface(iface)

    def _add_advisor_internal(self, position: int, advisor: Advisor) -> None:
        self._check_frozen("add advisor")
        if not 0 <= position <= len(self._advisors):
            raise AopConfigException(
                f"Illegal position {position} in advisor list with size {len(self._advisors)}",
                context={"position": position},
            )
        self._advisors.insert(position, advisor)
        self.advice_changed()

    def _check_frozen(self, action: str) -> None:
        if self.frozen:
            raise AopConfigException(f"Cannot {action}: configuration is frozen", code="AOP_FROZEN")

    # -- chain cache -----------------------------------------------------------

    def get_interceptors_and_dynamic_interception_advice(
        self, method: Method, target_class: type | None
    ) -> tuple[Any, ...]:
        """The chain for *method* on *target_class*, from cache when possible.

        Repeated lookups for the same key return the identical tuple.
        """
        key = (target_class, method)
        entry = self._method_cache.get(key)
        if entry is not None:
            return entry.chain
        version = self._cache_version
        advisors = tuple(self._advisors)
        chain = tuple(
            self.advisor_chain_factory.get_interceptors_and_dynamic_interception_advice(self, method, target_class)
        )
        with self._lock:
            cached = self._method_cache.get(key)
            if cached is not None:
                return cached.chain
            if self._cache_version == version:
                self._method_cache[key] = _ChainEntry(chain, advisors)
        return chain

    def advice_changed(self) -> None:
        """Invalidate every cached chain."""
        with self._lock:
            self._method_cache.clear()
            self._cache_version += 1

    def verify_cache(self) -> None:
        """Check that cached chains were built from currently registered advisors.

        Raises:
            ChainCacheInconsistencyError: For the first cached chain that
                references an advisor no longer registered.
        """
        registered = set(map(id, self._advisors))
        with self._lock:
            entries = list(self._method_cache.items())
        for (_, method), entry in entries:
            for advisor in entry.advisors:
                if id(advisor) not in registered:
                    raise ChainCacheInconsistencyError(advisor, method)

    @property
    def cached_chain_count(self) -> int:
        return len(self._method_cache)

    # -- copying ---------------------------------------------------------------

    def copy_configuration_from(
        self,
        other: AdvisedSupport,
        target_source: TargetSource | None = None,
        advisors: Iterable[Advisor] | None = None,
    ) -> None:
        self.copy_from(other)
        self.target_source = target_source if target_source is not None else other.target_source
        self.advisor_chain_factory = other.advisor_chain_factory
        self.pre_filtered = other.pre_filtered
        self._interfaces = list(other.interfaces)
        for advisor in advisors if advisors is not None else other.advisors:
            if isinstance(advisor, IntroductionAdvisor):
                self._validate_introduction_advisor(advisor)
            self._advisors.append(advisor)
        self.advice_changed()

    def to_proxy_config_string(self) -> str:
        interfaces = ", ".join(i.__qualname__ for i in self._interfaces)
        advisors = ", ".join(repr(a) for a in self._advisors)
        return (
            f"{type(self).__name__}: {len(self._interfaces)} interfaces [{interfaces}]; "
            f"{len(self._advisors)} advisors [{advisors}]; "
            f"target source [{self._target_source!r}]; {super().__repr__()}"
        )

    def __repr__(self) -> str:
        return self.to_proxy_config_string()


class ProxyCreatorSupport(AdvisedSupport):
    """AdvisedSupport that creates proxies and notifies listeners."""

    def __init__(self, *interfaces: type, aop_proxy_factory: DefaultAopProxyFactory | None = None) -> None:
        self._listeners: list[AdvisedSupportListener] = []
        self._active = False
        super().__init__(*interfaces)
        if aop_proxy_factory is None:
            from pyweave.aop.proxy import DefaultAopProxyFactory

            aop_proxy_factory = DefaultAopProxyFactory()
        self.aop_proxy_factory = aop_proxy_factory

    @property
    def is_active(self) -> bool:
        return self._active

    def add_listener(self, listener: AdvisedSupportListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: AdvisedSupportListener) -> None:
        self._listeners.remove(listener)

    def create_aop_proxy(self) -> AopProxy:
        if not self._active:
            self._activate()
        return self.aop_proxy_factory.create_aop_proxy(self)

    def _activate(self) -> None:
        self._active = True
        for listener in self._listeners:
            listener.activated(self)

    def advice_changed(self) -> None:
        super().advice_changed()
        if self._active:
            for listener in self._listeners:
                listener.advice_changed(self)
