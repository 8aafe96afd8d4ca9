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
"""Proxy and advisor utilities."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from pyweave.aop.advisor import Advisor, IntroductionAdvisor, PointcutAdvisor
from pyweave.aop.introspection import declared_interfaces, is_interface, iter_public_methods, prune_interfaces
from pyweave.aop.pointcut import MethodMatcher, Pointcut, method_matches
from pyweave.aop.target import SingletonTargetSource

if TYPE_CHECKING:
    from pyweave.aop.advised import AdvisedSupport

PROXY_HANDLER_ATTR = "_pyweave_handler"


class ContractProxy:
    """Marker base of every generated contract (interface) proxy class."""


# ---------------------------------------------------------------------------
# Proxy inspection
# ---------------------------------------------------------------------------


def is_proxy_class(cls: Any) -> bool:
    return isinstance(cls, type) and cls.__dict__.get("__pyweave_proxy__", False)


def is_aop_proxy(obj: Any) -> bool:
    """Whether *obj* is a proxy generated by pyweave."""
    return is_proxy_class(type(obj))


def is_contract_proxy(obj: Any) -> bool:
    return is_aop_proxy(obj) and isinstance(obj, ContractProxy)


def is_subclass_proxy(obj: Any) -> bool:
    return is_aop_proxy(obj) and "__pyweave_user_class__" in type(obj).__dict__


def _handler_of(proxy: Any) -> Any:
    if not is_aop_proxy(proxy):
        return None
    return object.__getattribute__(proxy, PROXY_HANDLER_ATTR)


def _advised_of(proxy: Any) -> AdvisedSupport | None:
    handler = _handler_of(proxy)
    return handler.advised if handler is not None else None


def get_advised(proxy: Any) -> AdvisedSupport | None:
    """The advised configuration behind *proxy*; None for opaque proxies and non-proxies."""
    advised = _advised_of(proxy)
    if advised is None or advised.opaque:
        return None
    return advised


def get_user_class(obj: Any) -> type:
    """The user-defined class behind a subclass proxy (or *obj*'s own class)."""
    cls = obj if isinstance(obj, type) else type(obj)
    return cls.__dict__.get("__pyweave_user_class__", cls)


def get_target_class(candidate: Any) -> type:
    """The class of the object a proxy ultimately calls, or the candidate's class."""
    advised = _advised_of(candidate)
    if advised is not None:
        target_class = advised.target_class
        if target_class is not None:
            return target_class
    return get_user_class(candidate)


def get_singleton_target(candidate: Any) -> Any:
    """The fixed target of *candidate* if it is a non-opaque proxy over a single instance."""
    advised = get_advised(candidate)
    if advised is not None and isinstance(advised.target_source, SingletonTargetSource):
        return advised.target_source.target
    return None


def unwrap(obj: Any) -> Any:
    """Peel off proxies with singleton targets until a plain object is reached."""
    current = obj
    while True:
        target = get_singleton_target(current)
        if target is None:
            return current
        current = target


def ultimate_target_class(candidate: Any) -> type:
    """Target class through any number of nested singleton proxies."""
    current = candidate
    result: type | None = None
    while current is not None:
        result = get_target_class(current)
        current = get_singleton_target(current)
    return result if result is not None else get_user_class(candidate)


# ---------------------------------------------------------------------------
# Interfaces
# ---------------------------------------------------------------------------


def evaluate_proxy_interfaces(bean_class: type) -> list[type]:
    """The usable proxy contracts implemented by *bean_class*."""
    if is_proxy_class(bean_class):
        return list(bean_class.__dict__.get("__pyweave_interfaces__", ()))
    return declared_interfaces(get_user_class(bean_class))


def complete_proxied_interfaces(advised: AdvisedSupport) -> list[type]:
    """Interfaces a contract proxy for *advised* implements.

    Explicit interfaces win; otherwise the target class itself (when it is an
    interface) or the interfaces it implements.
    """
    interfaces = list(advised.interfaces)
    if not interfaces:
        target_class = advised.target_class
        if target_class is not None:
            if is_interface(target_class):
                interfaces = [target_class]
            else:
                interfaces = evaluate_proxy_interfaces(target_class)
    return prune_interfaces(interfaces)


def proxied_user_interfaces(proxy: Any) -> list[type]:
    """The user interfaces of a contract proxy, without the pyweave marker."""
    return list(type(proxy).__dict__.get("__pyweave_interfaces__", ()))


def equals_in_proxy(a: AdvisedSupport, b: AdvisedSupport) -> bool:
    """Whether two configurations produce interchangeable proxies."""
    return a is b or (
        a.interfaces == b.interfaces
        and list(a.advisors) == list(b.advisors)
        and a.target_source == b.target_source
    )


# ---------------------------------------------------------------------------
# Advisor applicability
# ---------------------------------------------------------------------------


def can_apply(advisor_or_pointcut: Advisor | Pointcut, target_class: type, has_introductions: bool = False) -> bool:
    """Whether the advisor (or pointcut) can apply to any method of *target_class*."""
    if isinstance(advisor_or_pointcut, IntroductionAdvisor):
        return advisor_or_pointcut.class_filter.matches(target_class)
    if isinstance(advisor_or_pointcut, PointcutAdvisor):
        pointcut = advisor_or_pointcut.pointcut
    elif isinstance(advisor_or_pointcut, Pointcut):
        pointcut = advisor_or_pointcut
    else:
        return True

    if not pointcut.class_filter.matches(target_class):
        return False
    matcher = pointcut.method_matcher
    if matcher is MethodMatcher.TRUE:
        return True

    user_class = get_user_class(target_class)
    candidates: list[type] = [user_class, *evaluate_proxy_interfaces(target_class)]
    for cls in candidates:
        for method in iter_public_methods(cls):
            if method_matches(matcher, method, user_class, has_introductions):
                return True
    return False


def find_advisors_that_can_apply(candidates: Iterable[Advisor], target_class: type) -> list[Advisor]:
    """Filter *candidates* down to advisors applicable to *target_class*.

    Introduction advisors are evaluated first so that pointcuts can take the
    introduced interfaces into account.
    """
    candidates = list(candidates)
    if not candidates:
        return []
    eligible = [a for a in candidates if isinstance(a, IntroductionAdvisor) and can_apply(a, target_class)]
    has_introductions = bool(eligible)
    for advisor in candidates:
        if isinstance(advisor, IntroductionAdvisor):
            continue
        if can_apply(advisor, target_class, has_introductions):
            eligible.append(advisor)
    return eligible
