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
"""Advisors — advice paired with the pointcut that decides where it applies."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pyweave.aop.introspection import declared_interfaces, is_interface
from pyweave.aop.matchers import ExpressionPointcut, NameMatchMethodPointcut
from pyweave.aop.pointcut import ClassFilter, Pointcut
from pyweave.container.ordering import LOWEST_PRECEDENCE, get_order
from pyweave.kernel.exceptions import AopConfigException


class Advisor(ABC):
    """Holds one piece of advice and the rule for applying it.

    Advisors are shared between proxies and never change after creation.
    Lower :meth:`get_order` values run further outside in the chain.
    """

    def __init__(self, order: int | None = None) -> None:
        self._order = order

    @property
    @abstractmethod
    def advice(self) -> Any: ...

    def get_order(self) -> int:
        if self._order is not None:
            return self._order
        advice = self.advice
        if advice is None:
            return LOWEST_PRECEDENCE
        return get_order(advice)

    @property
    def has_explicit_order(self) -> bool:
        return self._order is not None


class PointcutAdvisor(Advisor):
    """Advisor driven by a pointcut (method-level applicability)."""

    @property
    @abstractmethod
    def pointcut(self) -> Pointcut: ...


class IntroductionAdvisor(Advisor):
    """Advisor that makes proxies implement additional interfaces.

    Introductions apply per class: only the class filter is consulted.
    """

    @property
    @abstractmethod
    def class_filter(self) -> ClassFilter: ...

    @property
    @abstractmethod
    def interfaces(self) -> tuple[type, ...]: ...

    def validate_interfaces(self) -> None:
        """Raise :class:`AopConfigException` if the advice cannot serve the interfaces."""


class DefaultPointcutAdvisor(PointcutAdvisor):
    """The general-purpose advisor: any advice, any pointcut.

    Usage::

        advisor = DefaultPointcutAdvisor(TimingInterceptor(), ExpressionPointcut("service.*.*"))
    """

    def __init__(self, advice: Any, pointcut: Pointcut = Pointcut.TRUE, order: int | None = None) -> None:
        super().__init__(order)
        self._advice = advice
        self._pointcut = pointcut

    @property
    def advice(self) -> Any:
        return self._advice

    @property
    def pointcut(self) -> Pointcut:
        return self._pointcut

    def __repr__(self) -> str:
        return f"{type(self).__name__}(pointcut={self._pointcut!r}, advice={self._advice!r})"


class NameMatchMethodPointcutAdvisor(DefaultPointcutAdvisor):
    """Advisor applying its advice to methods with matching names."""

    def __init__(self, advice: Any, *mapped_names: str, order: int | None = None) -> None:
        super().__init__(advice, NameMatchMethodPointcut(*mapped_names), order)

    @property
    def mapped_names(self) -> list[str]:
        return self.pointcut.mapped_names  # type: ignore[attr-defined]


class ExpressionPointcutAdvisor(DefaultPointcutAdvisor):
    """Advisor applying its advice to join points matching a dotted glob."""

    def __init__(self, advice: Any, expression: str, order: int | None = None) -> None:
        super().__init__(advice, ExpressionPointcut(expression), order)

    @property
    def expression(self) -> str:
        return self.pointcut.expression  # type: ignore[attr-defined]


class DefaultIntroductionAdvisor(IntroductionAdvisor):
    """Introduction advisor for an :class:`IntroductionInterceptor`.

    Without explicit *interfaces*, the interfaces published by the advice
    itself are introduced (see
    :class:`~pyweave.aop.interceptors.DelegatingIntroductionInterceptor`).
    """

    def __init__(
        self,
        advice: Any,
        *interfaces: type,
        class_filter: ClassFilter = ClassFilter.TRUE,
        order: int | None = None,
    ) -> None:
        super().__init__(order)
        self._advice = advice
        if not interfaces:
            published = getattr(advice, "interfaces", None)
            interfaces = tuple(published) if published is not None else tuple(declared_interfaces(type(advice)))
        self._interfaces = tuple(interfaces)
        self._class_filter = class_filter

    @property
    def advice(self) -> Any:
        return self._advice

    @property
    def class_filter(self) -> ClassFilter:
        return self._class_filter

    @property
    def interfaces(self) -> tuple[type, ...]:
        return self._interfaces

    def validate_interfaces(self) -> None:
        implements = getattr(self._advice, "implements_interface", None)
        for iface in self._interfaces:
            if not is_interface(iface):
                raise AopConfigException(
                    f"Class [{iface.__qualname__}] is not an interface; cannot be introduced",
                    context={"interface": iface.__qualname__},
                )
            if implements is None or not implements(iface):
                raise AopConfigException(
                    f"Introduction advice [{self._advice!r}] does not implement [{iface.__qualname__}]",
                    context={"interface": iface.__qualname__},
                )

    def __repr__(self) -> str:
        names = ", ".join(i.__qualname__ for i in self._interfaces)
        return f"DefaultIntroductionAdvisor(interfaces=[{names}], advice={self._advice!r})"
