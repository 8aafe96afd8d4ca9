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
"""Chain resolution — which interceptors run, in what order, for one method."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol

import structlog

from pyweave.aop.adapter import DefaultAdvisorAdapterRegistry, GlobalAdvisorAdapterRegistry
from pyweave.aop.advisor import Advisor, IntroductionAdvisor, PointcutAdvisor
from pyweave.aop.introspection import Method, get_most_specific_method
from pyweave.aop.invocation import InterceptorAndDynamicMethodMatcher
from pyweave.aop.pointcut import method_matches

if TYPE_CHECKING:
    from pyweave.aop.advised import AdvisedSupport

__all__ = [
    "AdvisorChainFactory",
    "DefaultAdvisorChainFactory",
    "InterceptorAndDynamicMethodMatcher",
    "sort_advisors",
]

logger = structlog.get_logger("pyweave.aop.chain")


class AdvisorChainFactory(Protocol):
    def get_interceptors_and_dynamic_interception_advice(
        self,
        config: AdvisedSupport,
        method: Method,
        target_class: type | None,
    ) -> list[Any]: ...


def sort_advisors(advisors: Sequence[Advisor]) -> list[Advisor]:
    """Stable sort on ``(order, registration index)``."""
    return sorted(advisors, key=lambda advisor: advisor.get_order())


def has_matching_introductions(advisors: Sequence[Advisor], actual_class: type) -> bool:
    return any(isinstance(a, IntroductionAdvisor) and a.class_filter.matches(actual_class) for a in advisors)


class DefaultAdvisorChainFactory:
    """Builds the interceptor chain for a method from an advised configuration.

    Steps, for each advisor in (order, registration) order:

    1. the class filter must accept the target class, unless the
       configuration says its advisors were pre-filtered;
    2. the method matcher is consulted with the most specific implementation
       of the method on the target class;
    3. the advisor's interceptors are appended; runtime matchers wrap them in
       :class:`InterceptorAndDynamicMethodMatcher` for the per-call check.

    Introduction advisors only pass the class filter; plain advisors always
    apply.
    """

    def __init__(self, registry: DefaultAdvisorAdapterRegistry | None = None) -> None:
        self._registry = registry

    @property
    def registry(self) -> DefaultAdvisorAdapterRegistry:
        return self._registry if self._registry is not None else GlobalAdvisorAdapterRegistry.get_instance()

    def get_interceptors_and_dynamic_interception_advice(
        self,
        config: AdvisedSupport,
        method: Method,
        target_class: type | None,
    ) -> list[Any]:
        registry = self.registry
        advisors = sort_advisors(config.advisors)
        actual_class = target_class if target_class is not None else method.declaring_class
        specific = get_most_specific_method(method, actual_class)
        has_introductions: bool | None = None
        chain: list[Any] = []

        for advisor in advisors:
            if isinstance(advisor, PointcutAdvisor):
                pointcut = advisor.pointcut
                if not (config.pre_filtered or pointcut.class_filter.matches(actual_class)):
                    continue
                if has_introductions is None:
                    has_introductions = has_matching_introductions(advisors, actual_class)
                matcher = pointcut.method_matcher
                if not method_matches(matcher, specific, actual_class, has_introductions):
                    continue
                interceptors = registry.get_interceptors(advisor)
                if matcher.is_runtime:
                    chain.extend(InterceptorAndDynamicMethodMatcher(i, matcher) for i in interceptors)
                else:
                    chain.extend(interceptors)
            elif isinstance(advisor, IntroductionAdvisor):
                if config.pre_filtered or advisor.class_filter.matches(actual_class):
                    chain.extend(registry.get_interceptors(advisor))
            else:
                chain.extend(registry.get_interceptors(advisor))

        logger.debug("chain_resolved", method=str(method), target=actual_class.__qualname__, size=len(chain))
        return chain
