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
"""Tests for AspectAutoProxyCreator — aspect advice applied through proxies."""

from __future__ import annotations

import pytest

from pyweave.aop.decorators import after_returning, aspect, before
from pyweave.aop.post_processor import AspectAutoProxyCreator
from pyweave.aop.utils import is_aop_proxy, unwrap
from pyweave.container.stereotypes import service
from pyweave.context.bean_factory import StaticBeanFactory

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@aspect
class LoggingAspect:
    calls: list[str] = []

    @before("service.OrderService.*")
    def log_before(self, jp):
        LoggingAspect.calls.append(f"before:{jp.method_name}")

    @after_returning("service.OrderService.*")
    def log_after(self, jp):
        LoggingAspect.calls.append(f"after_returning:{jp.return_value}")


@service
class OrderService:
    async def create_order(self, item: str) -> str:
        return f"order:{item}"


def _factory(*beans: tuple[str, type]) -> StaticBeanFactory:
    factory = StaticBeanFactory()
    for name, cls in beans:
        factory.register_definition(name, cls)
    factory.add_bean_post_processor(AspectAutoProxyCreator())
    return factory


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestAspectAutoProxyCreator:
    @pytest.mark.asyncio
    async def test_before_advice_applied_via_factory(self) -> None:
        LoggingAspect.calls = []
        factory = _factory(("loggingAspect", LoggingAspect), ("orderService", OrderService))

        svc = factory.get_bean("orderService")
        result = await svc.create_order("widget")

        assert result == "order:widget"
        assert "before:create_order" in LoggingAspect.calls

    @pytest.mark.asyncio
    async def test_after_returning_sees_result_via_factory(self) -> None:
        LoggingAspect.calls = []
        factory = _factory(("loggingAspect", LoggingAspect), ("orderService", OrderService))

        svc = factory.get_bean("orderService")
        await svc.create_order("gadget")

        assert "after_returning:order:gadget" in LoggingAspect.calls

    def test_advised_bean_is_a_proxy_of_its_class(self) -> None:
        factory = _factory(("loggingAspect", LoggingAspect), ("orderService", OrderService))

        svc = factory.get_bean("orderService")

        assert is_aop_proxy(svc)
        assert isinstance(svc, OrderService)
        assert type(unwrap(svc)) is OrderService

    def test_aspects_not_proxied_themselves(self) -> None:
        """Aspect beans should not be targets of their own advice."""

        @aspect
        class SelfAspect:
            woven = False

            @before("aspect.SelfAspect.*")
            def intercept(self, jp):
                SelfAspect.woven = True

            def ping(self) -> str:
                return "pong"

        factory = _factory(("selfAspect", SelfAspect))

        bean = factory.get_bean("selfAspect")

        assert not is_aop_proxy(bean)
        assert bean.ping() == "pong"
        assert not SelfAspect.woven

    @pytest.mark.asyncio
    async def test_non_matching_beans_untouched(self) -> None:
        """Beans that no pointcut matches are returned as-is."""
        calls: list[str] = []

        @aspect
        class NarrowAspect:
            @before("service.OrderService.create_order")
            def on_create(self, jp):
                calls.append("hit")

        @service
        class PaymentService:
            async def charge(self) -> str:
                return "charged"

        factory = _factory(("narrowAspect", NarrowAspect), ("paymentService", PaymentService))

        pay = factory.get_bean("paymentService")
        result = await pay.charge()

        assert not is_aop_proxy(pay)
        assert result == "charged"
        assert calls == []

    def test_include_patterns_filter_aspect_beans(self) -> None:
        calls: list[str] = []

        @aspect
        class AuditAspect:
            @before("service.Ledger.*")
            def audit(self, jp):
                calls.append("audit")

        @service
        class Ledger:
            def post(self) -> str:
                return "posted"

        factory = StaticBeanFactory()
        factory.register_definition("auditAspect", AuditAspect)
        factory.register_definition("ledger", Ledger)
        factory.add_bean_post_processor(AspectAutoProxyCreator(include_patterns=["security*"]))

        ledger = factory.get_bean("ledger")

        assert ledger.post() == "posted"
        assert not is_aop_proxy(ledger)
        assert calls == []


class TestAspectAutoProxyCreatorUnit:
    """Unit-level tests for the creator without a bean factory."""

    def test_before_init_collects_aspect(self) -> None:
        creator = AspectAutoProxyCreator()
        inst = LoggingAspect()
        creator.before_init(inst, "loggingAspect")

        assert creator.registry.aspects == [inst]
        assert len(creator.registry.advisors) == 2

    def test_before_init_ignores_non_aspect(self) -> None:
        creator = AspectAutoProxyCreator()
        creator.before_init(OrderService(), "orderService")

        assert creator.registry.aspects == []

    def test_after_init_noop_without_aspects(self) -> None:
        creator = AspectAutoProxyCreator()
        svc = OrderService()
        result = creator.after_init(svc, "orderService")
        assert result is svc

    def test_after_init_skips_aspect_beans(self) -> None:
        creator = AspectAutoProxyCreator()
        inst = LoggingAspect()
        creator.before_init(inst, "loggingAspect")

        result = creator.after_init(inst, "loggingAspect")
        assert result is inst

    def test_prefix_uses_stereotype(self) -> None:
        """A bean with a stereotype answers to stereotype.ClassName.method."""
        calls: list[str] = []

        @aspect
        class PrefixAspect:
            @before("service.Billing.*")
            def check(self, jp):
                calls.append(f"matched:{jp.method_name}")

        @service
        class Billing:
            def invoice(self) -> str:
                return "invoiced"

        creator = AspectAutoProxyCreator()
        creator.before_init(PrefixAspect(), "prefixAspect")

        proxy = creator.after_init(Billing(), "billing")

        assert is_aop_proxy(proxy)
        assert proxy.invoice() == "invoiced"
        assert calls == ["matched:invoice"]
