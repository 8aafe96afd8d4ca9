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
"""Tests for the JoinPoint view of an intercepted call."""

from __future__ import annotations

import pytest

from pyweave.aop.introspection import Method
from pyweave.aop.invocation import ReflectiveMethodInvocation
from pyweave.aop.types import JoinPoint
from pyweave.kernel.exceptions import AopInvocationException


class Ledger:
    def post(self, amount: int) -> int:
        return amount


def _join_point(invocation: ReflectiveMethodInvocation | None = None, target: object | None = None) -> JoinPoint:
    return JoinPoint(
        target=target if target is not None else Ledger(),
        method_name="post",
        args=(10,),
        kwargs={},
        method=Method.for_name(Ledger, "post"),
        invocation=invocation,
    )


def _invocation(proxy: object, target: Ledger) -> ReflectiveMethodInvocation:
    return ReflectiveMethodInvocation(proxy, target, Method.for_name(Ledger, "post"), (10,), {}, Ledger, [])


class TestJoinPointFields:
    def test_defaults(self) -> None:
        jp = JoinPoint(target=object(), method_name="m", args=(), kwargs={})

        assert jp.return_value is None
        assert jp.exception is None
        assert jp.proceed is None
        assert jp.method is None
        assert jp.invocation is None

    def test_outcome_fields_are_writable(self) -> None:
        jp = _join_point()
        error = ValueError("overdrawn")
        jp.return_value = 10
        jp.exception = error

        assert jp.return_value == 10
        assert jp.exception is error


class TestJoinPointSignature:
    def test_signature_uses_method(self) -> None:
        assert _join_point().signature == f"{__name__}.Ledger.post"

    def test_signature_falls_back_to_target_type(self) -> None:
        jp = JoinPoint(target=Ledger(), method_name="post", args=(), kwargs={})
        assert jp.signature == "Ledger.post"

    def test_str(self) -> None:
        assert str(_join_point()) == f"execution({__name__}.Ledger.post)"


class TestJoinPointInvocation:
    def test_this_is_the_proxy(self) -> None:
        proxy, target = object(), Ledger()
        jp = _join_point(_invocation(proxy, target), target)

        assert jp.this is proxy
        assert jp.target is target

    def test_this_without_invocation_is_target(self) -> None:
        jp = _join_point()
        assert jp.this is jp.target

    def test_attributes_are_stored_on_the_invocation(self) -> None:
        target = Ledger()
        invocation = _invocation(object(), target)
        jp = _join_point(invocation, target)

        jp.set_attribute("started", 1.5)

        assert jp.get_attribute("started") == 1.5
        assert invocation.get_user_attribute("started") == 1.5
        assert _join_point(invocation, target).get_attribute("started") == 1.5

    def test_unbound_get_attribute_returns_default(self) -> None:
        assert _join_point().get_attribute("missing", "fallback") == "fallback"

    def test_unbound_set_attribute_raises(self) -> None:
        with pytest.raises(AopInvocationException, match="not bound to an invocation"):
            _join_point().set_attribute("started", 1)
