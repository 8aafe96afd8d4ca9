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
"""Advisor adapter registry — normalizes every advice kind to interceptors."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from typing import Any

import structlog

from pyweave.aop.advice import (
    AfterAdvice,
    AfterReturningAdvice,
    MethodBeforeAdvice,
    MethodInterceptor,
    has_throws_handlers,
)
from pyweave.aop.advisor import Advisor, DefaultPointcutAdvisor
from pyweave.aop.interceptors import (
    AfterAdviceInterceptor,
    AfterReturningAdviceInterceptor,
    MethodBeforeAdviceInterceptor,
    ThrowsAdviceInterceptor,
)
from pyweave.kernel.exceptions import UnknownAdviceTypeError

logger = structlog.get_logger("pyweave.aop.adapter")


class AdvisorAdapter(ABC):
    """Turns one advice kind into a :class:`MethodInterceptor`."""

    @abstractmethod
    def supports_advice(self, advice: Any) -> bool: ...

    @abstractmethod
    def get_interceptor(self, advisor: Advisor) -> MethodInterceptor: ...


class MethodBeforeAdviceAdapter(AdvisorAdapter):
    def supports_advice(self, advice: Any) -> bool:
        return isinstance(advice, MethodBeforeAdvice)

    def get_interceptor(self, advisor: Advisor) -> MethodInterceptor:
        return MethodBeforeAdviceInterceptor(advisor.advice)


class AfterReturningAdviceAdapter(AdvisorAdapter):
    def supports_advice(self, advice: Any) -> bool:
        return isinstance(advice, AfterReturningAdvice)

    def get_interceptor(self, advisor: Advisor) -> MethodInterceptor:
        return AfterReturningAdviceInterceptor(advisor.advice)


class ThrowsAdviceAdapter(AdvisorAdapter):
    def supports_advice(self, advice: Any) -> bool:
        return has_throws_handlers(advice)

    def get_interceptor(self, advisor: Advisor) -> MethodInterceptor:
        return ThrowsAdviceInterceptor(advisor.advice)


class AfterAdviceAdapter(AdvisorAdapter):
    def supports_advice(self, advice: Any) -> bool:
        return isinstance(advice, AfterAdvice)

    def get_interceptor(self, advisor: Advisor) -> MethodInterceptor:
        return AfterAdviceInterceptor(advisor.advice)


class DefaultAdvisorAdapterRegistry:
    """Registry of advisor adapters, preloaded with the built-in advice kinds.

    An advice that already is a :class:`MethodInterceptor` is used as-is.
    Any other advice is offered to every registered adapter in registration
    order; each adapter that supports it contributes one interceptor, so an
    object implementing several advice kinds yields several stages.

    Usage::

        registry = DefaultAdvisorAdapterRegistry()
        registry.register_advisor_adapter(RetryAdviceAdapter())
        advisor = registry.wrap(my_before_advice)
        interceptors = registry.get_interceptors(advisor)
    """

    def __init__(self) -> None:
        self._adapters: list[AdvisorAdapter] = [
            MethodBeforeAdviceAdapter(),
            AfterReturningAdviceAdapter(),
            ThrowsAdviceAdapter(),
            AfterAdviceAdapter(),
        ]

    @property
    def adapters(self) -> tuple[AdvisorAdapter, ...]:
        return tuple(self._adapters)

    def register_advisor_adapter(self, adapter: AdvisorAdapter) -> None:
        self._adapters.append(adapter)
        logger.debug("advisor_adapter_registered", adapter=type(adapter).__qualname__)

    def supports(self, advice: Any) -> bool:
        """Whether *advice* is an interceptor or a kind some adapter handles."""
        return isinstance(advice, MethodInterceptor) or any(
            adapter.supports_advice(advice) for adapter in self._adapters
        )

    def check_advisor(self, advisor: Advisor) -> Advisor:
        """Return *advisor* unchanged if its advice can be turned into interceptors.

        Raises:
            UnknownAdviceTypeError: If no adapter supports the advisor's advice.
        """
        if not self.supports(advisor.advice):
            raise UnknownAdviceTypeError(advisor.advice)
        return advisor

    def wrap(self, advice: Any) -> Advisor:
        """Return *advice* as an advisor applying to every method.

        Advisors are returned as-is once their advice is known to be supported.

        Raises:
            UnknownAdviceTypeError: If *advice* is neither a supported advisor
                nor an advice kind some adapter supports.
        """
        if isinstance(advice, Advisor):
            return self.check_advisor(advice)
        if self.supports(advice):
            return DefaultPointcutAdvisor(advice)
        raise UnknownAdviceTypeError(advice)

    def get_interceptors(self, advisor: Advisor) -> list[MethodInterceptor]:
        """The interceptor stages contributed by *advisor*, in adapter order.

        Raises:
            UnknownAdviceTypeError: If no adapter supports the advisor's advice.
        """
        advice = self.check_advisor(advisor).advice
        if isinstance(advice, MethodInterceptor):
            return [advice]
        return [adapter.get_interceptor(advisor) for adapter in self._adapters if adapter.supports_advice(advice)]


class GlobalAdvisorAdapterRegistry:
    """Process-wide :class:`DefaultAdvisorAdapterRegistry`."""

    _instance: DefaultAdvisorAdapterRegistry | None = None
    _lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> DefaultAdvisorAdapterRegistry:
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = DefaultAdvisorAdapterRegistry()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Drop the shared registry, discarding adapters registered at runtime."""
        with cls._lock:
            cls._instance = None
