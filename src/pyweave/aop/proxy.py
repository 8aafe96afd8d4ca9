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
"""Proxy strategies — contract proxies, subclass proxies and the selector.

Both strategies generate a class once per shape and cache it.  Every public
method of the generated class is a stub that hands the call to the proxy's
handler (:class:`ContractAopProxy` or :class:`SubclassAopProxy`), which
fetches the target, resolves the cached chain and runs it.
"""

from __future__ import annotations

import enum
import functools
import inspect
import types
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any

import structlog

from pyweave.aop.advised import AdvisedSupport, ProxyCreatorSupport
from pyweave.aop.aop_context import AopContext
from pyweave.aop.introspection import Method, is_interface, iter_public_methods
from pyweave.aop.invocation import (
    AsyncReflectiveMethodInvocation,
    ReflectiveMethodInvocation,
    invoke_joinpoint_using_reflection,
)
from pyweave.aop.target import EmptyTargetSource, SingletonTargetSource, TargetSource
from pyweave.aop.utils import (
    PROXY_HANDLER_ATTR,
    ContractProxy,
    complete_proxied_interfaces,
    equals_in_proxy,
    evaluate_proxy_interfaces,
    get_user_class,
    is_proxy_class,
)
from pyweave.kernel.exceptions import AopConfigException

logger = structlog.get_logger("pyweave.aop.proxy")

# Callable objects whose classes are produced by the interpreter, not by users.
_GENERATED_TYPES: tuple[type, ...] = (
    types.FunctionType,
    types.MethodType,
    types.BuiltinFunctionType,
    functools.partial,
)


class ProxyStrategy(enum.Enum):
    CONTRACT = "contract"
    SUBCLASS = "subclass"


class AopProxy(ABC):
    """A configured proxy strategy, ready to produce proxy instances."""

    @abstractmethod
    def get_proxy(self) -> Any: ...

    @abstractmethod
    def get_proxy_class(self) -> type: ...


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class _DispatchingAopProxy(AopProxy):
    """Shared call handling of both strategies."""

    def __init__(self, advised: AdvisedSupport) -> None:
        if advised.advisor_count == 0 and advised.target_source is EmptyTargetSource.INSTANCE:
            raise AopConfigException("No advisors and no target source specified")
        self.advised = advised

    def get_proxy(self) -> Any:
        proxy_class = self.get_proxy_class()
        proxy = self._instantiate(proxy_class)
        object.__setattr__(proxy, PROXY_HANDLER_ATTR, self)
        logger.debug(
            "proxy_created",
            proxy_class=proxy_class.__qualname__,
            target_source=repr(self.advised.target_source),
        )
        return proxy

    def _instantiate(self, proxy_class: type) -> Any:
        try:
            return object.__new__(proxy_class)
        except TypeError as exc:
            raise AopConfigException(
                f"Could not instantiate proxy class {proxy_class.__qualname__}: {exc}",
                context={"proxy_class": proxy_class.__qualname__},
            ) from exc

    def dispatch(self, proxy: Any, method: Method, args: tuple, kwargs: dict[str, Any]) -> Any:
        advised = self.advised
        target_source = advised.target_source
        token = AopContext.set_current_proxy(proxy) if advised.expose_proxy else None
        target = None
        try:
            target = target_source.get_target()
            target_class = type(target) if target is not None else None
            chain = advised.get_interceptors_and_dynamic_interception_advice(method, target_class)
            if chain:
                invocation = ReflectiveMethodInvocation(proxy, target, method, args, kwargs, target_class, chain)
                result = invocation.proceed()
            else:
                result = invoke_joinpoint_using_reflection(target, method, args, kwargs)
            if result is target and target is not None:
                return proxy
            return result
        finally:
            if target is not None and not target_source.is_static:
                target_source.release_target(target)
            if token is not None:
                AopContext.reset(token)

    async def dispatch_async(self, proxy: Any, method: Method, args: tuple, kwargs: dict[str, Any]) -> Any:
        advised = self.advised
        target_source = advised.target_source
        token = AopContext.set_current_proxy(proxy) if advised.expose_proxy else None
        target = None
        try:
            target = target_source.get_target()
            target_class = type(target) if target is not None else None
            chain = advised.get_interceptors_and_dynamic_interception_advice(method, target_class)
            if chain:
                invocation = AsyncReflectiveMethodInvocation(proxy, target, method, args, kwargs, target_class, chain)
                result = await invocation.proceed()
            else:
                result = invoke_joinpoint_using_reflection(target, method, args, kwargs)
                if inspect.isawaitable(result):
                    result = await result
            if result is target and target is not None:
                return proxy
            return result
        finally:
            if target is not None and not target_source.is_static:
                target_source.release_target(target)
            if token is not None:
                AopContext.reset(token)

    def read_target_attribute(self, name: str) -> Any:
        target_source = self.advised.target_source
        target = target_source.get_target()
        try:
            if target is None:
                raise AttributeError(name)
            return getattr(target, name)
        finally:
            if target is not None and not target_source.is_static:
                target_source.release_target(target)

    def write_target_attribute(self, name: str, value: Any) -> None:
        target_source = self.advised.target_source
        target = target_source.get_target()
        try:
            if target is None:
                raise AttributeError(f"Cannot set '{name}': proxy has no target")
            setattr(target, name, value)
        finally:
            if target is not None and not target_source.is_static:
                target_source.release_target(target)

    def delete_target_attribute(self, name: str) -> None:
        target_source = self.advised.target_source
        target = target_source.get_target()
        try:
            if target is None:
                raise AttributeError(name)
            delattr(target, name)
        finally:
            if target is not None and not target_source.is_static:
                target_source.release_target(target)

    def describe_target(self) -> str:
        target_source = self.advised.target_source
        if isinstance(target_source, SingletonTargetSource):
            return repr(target_source.target)
        return repr(target_source)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, _DispatchingAopProxy):
            return False
        return equals_in_proxy(self.advised, other.advised)

    def __hash__(self) -> int:
        return hash((_DispatchingAopProxy, self.advised.target_source))


def _handler(proxy: Any) -> _DispatchingAopProxy:
    return object.__getattribute__(proxy, PROXY_HANDLER_ATTR)


def _make_stub(method: Method) -> Callable[..., Any]:
    if method.is_coroutine:

        async def async_stub(self: Any, *args: Any, **kwargs: Any) -> Any:
            return await _handler(self).dispatch_async(self, method, args, kwargs)

        stub: Callable[..., Any] = async_stub
    else:

        def sync_stub(self: Any, *args: Any, **kwargs: Any) -> Any:
            try:
                handler = _handler(self)
            except AttributeError:
                # Still inside the fallback constructor call.
                return method.function(self, *args, **kwargs)
            return handler.dispatch(self, method, args, kwargs)

        stub = sync_stub
    functools.update_wrapper(stub, method.function)
    stub.__isabstractmethod__ = False  # type: ignore[attr-defined]
    stub.__pyweave_proxy_stub__ = True  # type: ignore[attr-defined]
    return stub


def _proxy_eq(self: Any, other: object) -> bool:
    if self is other:
        return True
    if not is_proxy_class(type(other)):
        return False
    return _handler(self) == _handler(other)


def _proxy_hash(self: Any) -> int:
    return hash(_handler(self))


def _proxy_repr(self: Any) -> str:
    return f"<{type(self).__qualname__} for {_handler(self).describe_target()}>"


def _advised_property(self: Any) -> AdvisedSupport:
    advised = _handler(self).advised
    if advised.opaque:
        raise AttributeError("Proxy is opaque: its configuration is not exposed")
    return advised


def _common_namespace(name: str, module: str) -> dict[str, Any]:
    return {
        "__module__": module,
        "__qualname__": name,
        "__pyweave_proxy__": True,
        "__pyweave_advised__": property(_advised_property),
        "__repr__": _proxy_repr,
    }


# ---------------------------------------------------------------------------
# Contract proxies
# ---------------------------------------------------------------------------


def _contract_methods(interfaces: tuple[type, ...]) -> dict[str, Method]:
    methods: dict[str, Method] = {}
    for iface in interfaces:
        for method in iter_public_methods(iface):
            methods.setdefault(method.name, method)
        for name in sorted({"__call__", *getattr(iface, "__abstractmethods__", ())}):
            if name in methods:
                continue
            try:
                method = Method.for_name(iface, name)
            except AttributeError:
                continue
            if inspect.isfunction(method.function) and method.declaring_class is not object:
                methods[name] = method
    return methods


def _contract_attributes(interfaces: tuple[type, ...], methods: dict[str, Method]) -> dict[str, Any]:
    """Interface members that are not methods: abstract members and properties.

    Maps each name to the interface's declaration of it.
    """
    attributes: dict[str, Any] = {}
    for iface in interfaces:
        abstract = set(getattr(iface, "__abstractmethods__", ()))
        for cls in iface.__mro__:
            if cls is object:
                continue
            for name, value in vars(cls).items():
                if name in methods or name in attributes:
                    continue
                if name in abstract or (isinstance(value, property) and not name.startswith("_")):
                    attributes[name] = value
    return attributes


def _target_attribute(name: str, declared: Any) -> property:
    """Property reading *name* from the proxy's current target."""

    def fget(self: Any) -> Any:
        return _handler(self).read_target_attribute(name)

    def fset(self: Any, value: Any) -> None:
        _handler(self).write_target_attribute(name, value)

    writable = not isinstance(declared, property) or declared.fset is not None
    return property(fget, fset if writable else None, doc=getattr(declared, "__doc__", None))


@functools.lru_cache(maxsize=None)
def _contract_proxy_class(interfaces: tuple[type, ...]) -> type:
    name = f"{interfaces[0].__name__}$$PyWeaveProxy" if interfaces else "PyWeaveProxy"
    namespace = _common_namespace(name, __name__)
    namespace["__pyweave_interfaces__"] = interfaces
    namespace["__eq__"] = _proxy_eq
    namespace["__hash__"] = _proxy_hash
    methods = _contract_methods(interfaces)
    for method_name, method in methods.items():
        namespace[method_name] = _make_stub(method)
    for attribute_name, declared in _contract_attributes(interfaces, methods).items():
        namespace[attribute_name] = _target_attribute(attribute_name, declared)
    try:
        proxy_class = types.new_class(name, (ContractProxy, *interfaces), exec_body=lambda ns: ns.update(namespace))
    except TypeError as exc:
        raise AopConfigException(
            f"Cannot generate a proxy class implementing {[i.__qualname__ for i in interfaces]}: {exc}",
            context={"interfaces": [i.__qualname__ for i in interfaces]},
        ) from exc
    # Every abstract member now has a stub or a delegating property.
    proxy_class.__abstractmethods__ = frozenset()
    return proxy_class


class ContractAopProxy(_DispatchingAopProxy):
    """Proxy that implements the target's interfaces and nothing else.

    The generated class derives from :class:`ContractProxy` and the proxied
    interfaces, so ``isinstance(proxy, Interface)`` holds while
    ``isinstance(proxy, TargetClass)`` does not.
    """

    def __init__(self, advised: AdvisedSupport) -> None:
        super().__init__(advised)
        self.proxied_interfaces = tuple(complete_proxied_interfaces(advised))

    def get_proxy_class(self) -> type:
        return _contract_proxy_class(self.proxied_interfaces)


# ---------------------------------------------------------------------------
# Subclass proxies
# ---------------------------------------------------------------------------


def _delegating_getattribute(self: Any, name: str) -> Any:
    # Stubs, proxy internals and dunders resolve on the proxy; everything else on the target.
    if name in type(self).__dict__ or (name.startswith("__") and name.endswith("__")) or name == PROXY_HANDLER_ATTR:
        return object.__getattribute__(self, name)
    try:
        handler = _handler(self)
    except AttributeError:
        return object.__getattribute__(self, name)
    return handler.read_target_attribute(name)


def _delegating_setattr(self: Any, name: str, value: Any) -> None:
    try:
        handler = _handler(self)
    except AttributeError:
        object.__setattr__(self, name, value)
        return
    handler.write_target_attribute(name, value)


def _delegating_delattr(self: Any, name: str) -> None:
    _handler(self).delete_target_attribute(name)


@functools.lru_cache(maxsize=None)
def _subclass_proxy_class(user_class: type, extra_interfaces: tuple[type, ...]) -> type:
    if getattr(user_class, "__final__", False):
        raise AopConfigException(
            f"Cannot subclass final class {user_class.__qualname__}",
            context={"target_class": user_class.__qualname__},
        )
    name = f"{user_class.__qualname__}$$PyWeaveProxy"
    namespace = _common_namespace(name, user_class.__module__)
    namespace["__pyweave_user_class__"] = user_class
    namespace["__pyweave_interfaces__"] = tuple(evaluate_proxy_interfaces(user_class)) + extra_interfaces
    namespace["__getattribute__"] = _delegating_getattribute
    namespace["__setattr__"] = _delegating_setattr
    namespace["__delattr__"] = _delegating_delattr
    if user_class.__eq__ is object.__eq__:
        namespace["__eq__"] = _proxy_eq
        namespace["__hash__"] = _proxy_hash
    for cls in (user_class, *extra_interfaces):
        for method in iter_public_methods(cls):
            namespace.setdefault(method.name, _make_stub(method))
    try:
        return types.new_class(
            user_class.__name__ + "$$PyWeaveProxy",
            (user_class, *extra_interfaces),
            exec_body=lambda ns: ns.update(namespace),
        )
    except TypeError as exc:
        raise AopConfigException(
            f"Cannot subclass {user_class.__qualname__}: {exc}",
            context={"target_class": user_class.__qualname__},
        ) from exc


class SubclassAopProxy(_DispatchingAopProxy):
    """Proxy generated as a subclass of the target class.

    Every public method is overridden to run the chain; other attributes are
    read from and written to the current target.  Instances are created
    without running the target class's constructor; classes that cannot be
    allocated that way need a zero-argument constructor.
    """

    def get_proxy_class(self) -> type:
        target_class = self.advised.target_class
        if target_class is None:
            raise AopConfigException(
                "Target class must be available for creating a subclass proxy",
                context={"target_source": repr(self.advised.target_source)},
            )
        user_class = get_user_class(target_class)
        extras = tuple(i for i in self.advised.interfaces if not issubclass(user_class, i))
        return _subclass_proxy_class(user_class, extras)

    def _instantiate(self, proxy_class: type) -> Any:
        try:
            return proxy_class.__new__(proxy_class)
        except TypeError as exc:
            allocation_error = exc
        logger.debug("proxy_allocation_fallback", proxy_class=proxy_class.__qualname__, reason=str(allocation_error))
        try:
            instance = proxy_class()
        except TypeError as exc:
            raise AopConfigException(
                f"Could not instantiate proxy class {proxy_class.__qualname__}: "
                f"no accessible zero-argument constructor",
                context={"proxy_class": proxy_class.__qualname__},
            ) from exc
        if hasattr(instance, "__dict__"):
            vars(instance).clear()
        return instance



# ---------------------------------------------------------------------------
# Strategy selection
# ---------------------------------------------------------------------------


def _is_generated_type(cls: type) -> bool:
    return is_proxy_class(cls) or issubclass(cls, _GENERATED_TYPES)


class DefaultAopProxyFactory:
    """Chooses between contract and subclass proxies.

    Rules, first match wins:

    1. ``proxy_target_class`` (or ``optimize``) requests a subclass proxy,
       except for targets that are themselves interfaces or contract proxies;
    2. generated target types (pyweave proxies, functions, bound methods)
       get a contract proxy carrying their interfaces forward; a subclass
       proxy type is unwrapped to its user class first;
    3. the ``proxy_target_class_resolver`` callback may decide;
    4. any proxiable interface, supplied or found on the target class, means
       a contract proxy;
    5. otherwise the target class is subclassed.
    """

    def create_aop_proxy(self, config: AdvisedSupport) -> AopProxy:
        strategy = self.select_strategy(config)
        target_class = config.target_class
        logger.debug(
            "creating_proxy",
            strategy=strategy.value,
            target=target_class.__qualname__ if target_class is not None else None,
        )
        if strategy is ProxyStrategy.SUBCLASS:
            return SubclassAopProxy(config)
        return ContractAopProxy(config)

    def select_strategy(self, config: AdvisedSupport) -> ProxyStrategy:
        target_class = config.target_class

        if config.proxy_target_class or config.optimize:
            if target_class is None:
                raise AopConfigException(
                    "Target source cannot determine target class: either an interface "
                    "or a target is required for proxy creation"
                )
            contract_type = is_proxy_class(target_class) and issubclass(target_class, ContractProxy)
            if not contract_type and not is_interface(target_class):
                return ProxyStrategy.SUBCLASS

        if target_class is not None and _is_generated_type(target_class):
            if is_proxy_class(target_class) and not issubclass(target_class, ContractProxy):
                user_class = get_user_class(target_class)
                if config.interfaces or evaluate_proxy_interfaces(user_class):
                    return ProxyStrategy.CONTRACT
                return ProxyStrategy.SUBCLASS
            return ProxyStrategy.CONTRACT

        resolver = config.proxy_target_class_resolver
        if resolver is not None:
            decision = resolver(target_class)
            if decision is True and target_class is not None:
                return ProxyStrategy.SUBCLASS
            if decision is False:
                return ProxyStrategy.CONTRACT

        if config.interfaces:
            return ProxyStrategy.CONTRACT
        if target_class is not None and (is_interface(target_class) or evaluate_proxy_interfaces(target_class)):
            return ProxyStrategy.CONTRACT
        if target_class is None:
            raise AopConfigException(
                "Target source cannot determine target class: either an interface "
                "or a target is required for proxy creation"
            )
        return ProxyStrategy.SUBCLASS


# ---------------------------------------------------------------------------
# Programmatic use
# ---------------------------------------------------------------------------


class ProxyFactory(ProxyCreatorSupport):
    """Builds proxies programmatically.

    Usage::

        factory = ProxyFactory(OrderService())
        factory.add_advice(TimingInterceptor())
        service = factory.get_proxy()
    """

    def __init__(
        self,
        target: Any = None,
        *interfaces: type,
        aop_proxy_factory: DefaultAopProxyFactory | None = None,
    ) -> None:
        super().__init__(*interfaces, aop_proxy_factory=aop_proxy_factory)
        if target is None:
            return
        if isinstance(target, TargetSource):
            self.target_source = target
            return
        self.set_target(target)
        if not interfaces and not _is_generated_type(type(target)):
            for iface in evaluate_proxy_interfaces(type(target)):
                self.add_interface(iface)

    def get_proxy(self) -> Any:
        return self.create_aop_proxy().get_proxy()

    def get_proxy_class(self) -> type:
        return self.create_aop_proxy().get_proxy_class()

    @classmethod
    def for_interface(cls, interface: type, interceptor_or_target_source: Any) -> Any:
        """Proxy implementing *interface*, backed by an interceptor or a target source."""
        factory = cls()
        factory.add_interface(interface)
        if isinstance(interceptor_or_target_source, TargetSource):
            factory.target_source = interceptor_or_target_source
        else:
            factory.add_advice(interceptor_or_target_source)
        return factory.get_proxy()

    @classmethod
    def for_target_source(cls, target_source: TargetSource) -> Any:
        """Subclass proxy over the class reported by *target_source*."""
        if target_source.get_target_class() is None:
            raise AopConfigException("Cannot create a class proxy for a target source without target class")
        factory = cls()
        factory.target_source = target_source
        factory.proxy_target_class = True
        return factory.get_proxy()
