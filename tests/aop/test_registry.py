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
"""Tests for AspectRegistry and AdviceBinding."""

from __future__ import annotations

import pytest

from pyweave.aop.advisor import DefaultPointcutAdvisor
from pyweave.aop.aspect_advice import (
    ASPECT_ADVICE_TYPES,
    AbstractAspectAdvice,
    AspectAfterReturningAdvice,
    AspectAroundAdvice,
    AspectBeforeAdvice,
)
from pyweave.aop.decorators import AdviceDeclaration, after, after_returning, around, aspect, before
from pyweave.aop.matchers import ExpressionPointcut
from pyweave.aop.registry import AspectRegistry
from pyweave.container.ordering import LOWEST_PRECEDENCE, order

# ---- Fixture aspects --------------------------------------------------------


@aspect
class LoggingAspect:
    @before("service.*.*")
    def log_before(self, jp):
        pass

    @after_returning("service.*.*")
    def log_after(self, jp):
        pass


@order(10)
@aspect
class SecurityAspect:
    @around("service.*.create")
    def check_auth(self, jp):
        pass


@order(-5)
@aspect
class EarlyAspect:
    @before("service.*.*")
    def run_early(self, jp):
        pass


@aspect
class MixedAspect:
    @after("service.*.*")
    def first_after(self, jp):
        pass

    @before("service.*.*")
    def first_before(self, jp):
        pass

    @around("service.*.*")
    def wrap(self, jp):
        pass

    @before("service.*.*")
    def second_before(self, jp):
        pass


# ---- Tests ------------------------------------------------------------------


class TestAspectRegistry:
    """AspectRegistry registration, ordering, and matching."""

    def test_register_single_aspect_binding_count(self) -> None:
        registry = AspectRegistry()
        registry.register(LoggingAspect())
        assert len(registry.get_all_bindings()) == 2

    def test_bindings_have_correct_types_and_pointcuts(self) -> None:
        registry = AspectRegistry()
        registry.register(LoggingAspect())
        bindings = registry.get_all_bindings()

        types = {b.advice_type for b in bindings}
        assert types == {"before", "after_returning"}

        pointcuts = {b.pointcut for b in bindings}
        assert pointcuts == {"service.*.*"}

    def test_multiple_aspects_ordered_by_order(self) -> None:
        registry = AspectRegistry()
        registry.register(LoggingAspect())  # unordered
        registry.register(SecurityAspect())  # order 10
        registry.register(EarlyAspect())  # order -5

        bindings = registry.get_all_bindings()
        orders = [b.aspect_order for b in bindings]
        assert orders == sorted(orders)
        # EarlyAspect (-5) comes first, then SecurityAspect (10), unordered aspects last
        assert bindings[0].aspect_order == -5
        assert bindings[1].aspect_order == 10
        assert bindings[-1].aspect_order == LOWEST_PRECEDENCE

    def test_get_matching_returns_matching_bindings(self) -> None:
        registry = AspectRegistry()
        registry.register(LoggingAspect())
        registry.register(SecurityAspect())

        matches = registry.get_matching("service.OrderService.create")
        assert len(matches) == 3  # log_before + log_after + check_auth

    def test_get_matching_partial(self) -> None:
        registry = AspectRegistry()
        registry.register(LoggingAspect())
        registry.register(SecurityAspect())

        # "delete" does not match SecurityAspect's "service.*.create"
        matches = registry.get_matching("service.OrderService.delete")
        assert len(matches) == 2  # only LoggingAspect's two bindings

    def test_no_match_for_unrelated_qualified_name(self) -> None:
        registry = AspectRegistry()
        registry.register(LoggingAspect())
        registry.register(SecurityAspect())

        matches = registry.get_matching("repo.UserRepo.find_by_id")
        assert len(matches) == 0

    def test_registering_same_instance_twice_is_noop(self) -> None:
        registry = AspectRegistry()
        instance = LoggingAspect()
        first = registry.register(instance)
        second = registry.register(instance)

        assert len(first) == 2
        assert second == []
        assert registry.aspects == [instance]
        assert registry.is_registered(instance)
        assert not registry.is_registered(LoggingAspect())

    def test_binding_exposes_declaration(self) -> None:
        registry = AspectRegistry()
        registry.register(SecurityAspect())
        binding = registry.get_all_bindings()[0]

        assert binding.declaration == AdviceDeclaration("around", "service.*.create")
        assert binding.advisor.advice.handler == binding.handler


class TestAspectAdvisors:
    """Each binding carries an advisor usable by the proxy machinery."""

    def test_advisors_use_expression_pointcut_and_aspect_order(self) -> None:
        registry = AspectRegistry()
        advisors = registry.register(SecurityAspect())

        assert len(advisors) == 1
        advisor = advisors[0]
        assert isinstance(advisor, DefaultPointcutAdvisor)
        assert isinstance(advisor.pointcut, ExpressionPointcut)
        assert advisor.pointcut.expression == "service.*.create"
        assert advisor.get_order() == 10

    def test_advisors_follow_kind_then_definition_order(self) -> None:
        registry = AspectRegistry()
        advisors = registry.register(MixedAspect())

        names = [a.advice.handler.__name__ for a in advisors]
        assert names == ["wrap", "first_before", "second_before", "first_after"]

    def test_advice_objects_match_kind(self) -> None:
        registry = AspectRegistry()
        registry.register(LoggingAspect())
        registry.register(SecurityAspect())

        kinds = {type(a.advice) for a in registry.advisors}
        assert kinds == {AspectBeforeAdvice, AspectAfterReturningAdvice, AspectAroundAdvice}

    def test_handlers_are_bound_to_the_instance(self) -> None:
        registry = AspectRegistry()
        instance = LoggingAspect()
        registry.register(instance)

        assert all(b.handler.__self__ is instance for b in registry.get_all_bindings())

    def test_overridden_method_without_decorator_is_not_advice(self) -> None:
        class QuietLoggingAspect(LoggingAspect):
            def log_before(self, jp):
                pass

        registry = AspectRegistry()
        registry.register(QuietLoggingAspect())

        assert [b.advice_type for b in registry.get_all_bindings()] == ["after_returning"]

    def test_aspect_advice_base_is_abstract(self) -> None:
        with pytest.raises(TypeError):
            AbstractAspectAdvice(lambda jp: None)  # type: ignore[abstract]

        for kind, advice_class in ASPECT_ADVICE_TYPES.items():
            assert advice_class(lambda jp: None).advice_type == kind
