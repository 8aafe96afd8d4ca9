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
"""Tests for the pointcut expression matcher."""

from __future__ import annotations

import pytest

from pyweave.aop.introspection import Method
from pyweave.aop.pointcut import ClassFilter, MethodMatcher, Pointcut, matches_pointcut, method_matches


class TestMatchesPointcut:
    """``*`` spans one dotted segment, ``**`` one or more, ``?`` one character."""

    @pytest.mark.parametrize(
        ("pattern", "qualified_name"),
        [
            ("service.OrderService.create", "service.OrderService.create"),
            ("service.OrderService.*", "service.OrderService.create"),
            ("service.*.create", "service.OrderService.create"),
            ("*.OrderService.create", "service.OrderService.create"),
            ("*.*.*", "service.OrderService.create"),
            ("**.*Service.*", "billing.payments.core.PaymentService.charge"),
            ("**.*", "module.method"),
            ("**.refund", "a.b.c.d.e.refund"),
            ("ledger.Ledger.get_*", "ledger.Ledger.get_balance"),
            ("repo.UserRepo.find_?", "repo.UserRepo.find_a"),
        ],
    )
    def test_matches(self, pattern: str, qualified_name: str) -> None:
        assert matches_pointcut(pattern, qualified_name)

    @pytest.mark.parametrize(
        ("pattern", "qualified_name"),
        [
            ("service.OrderService.create", "other.Foo.bar"),
            ("*.refund", "billing.PaymentService.refund"),
            ("ledger.Ledger.get_*", "ledger.Ledger.set_balance"),
            ("service.*.*", "service.sub.OrderService.create"),
            ("repo.UserRepo.find_?", "repo.UserRepo.find_all"),
            ("a+b.C.m", "aab.C.m"),
        ],
    )
    def test_does_not_match(self, pattern: str, qualified_name: str) -> None:
        assert not matches_pointcut(pattern, qualified_name)

    def test_bracket_is_literal(self) -> None:
        assert matches_pointcut("svc.[a].m", "svc.[a].m")
        assert not matches_pointcut("svc.[a].m", "svc.a.m")


class _Account:
    def deposit(self, amount: int) -> None:
        pass


class TestConstants:
    def test_true_pointcut_matches_everything(self) -> None:
        method = Method.for_name(_Account, "deposit")
        assert Pointcut.TRUE.class_filter.matches(_Account)
        assert Pointcut.TRUE.method_matcher.matches(method, _Account)

    def test_false_pointcut_matches_nothing(self) -> None:
        method = Method.for_name(_Account, "deposit")
        assert not Pointcut.FALSE.class_filter.matches(_Account)
        assert not Pointcut.FALSE.method_matcher.matches(method, _Account)

    def test_constants_are_static(self) -> None:
        assert not MethodMatcher.TRUE.is_runtime
        assert ClassFilter.TRUE is Pointcut.TRUE.class_filter

    def test_static_matcher_refuses_runtime_check(self) -> None:
        method = Method.for_name(_Account, "deposit")
        with pytest.raises(NotImplementedError):
            MethodMatcher.TRUE.matches_runtime(method, _Account, (), {})

    def test_method_matches_delegates_to_plain_matcher(self) -> None:
        method = Method.for_name(_Account, "deposit")
        assert method_matches(MethodMatcher.TRUE, method, _Account, has_introductions=True)
