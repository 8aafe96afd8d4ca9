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
"""AspectRegistry — turns @aspect beans into ordered advisors."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any

import structlog

from pyweave.aop.advisor import DefaultPointcutAdvisor
from pyweave.aop.aspect_advice import ASPECT_ADVICE_TYPES
from pyweave.aop.decorators import ADVICE_KINDS, AdviceDeclaration, advice_declaration
from pyweave.aop.matchers import ExpressionPointcut
from pyweave.aop.pointcut import matches_pointcut
from pyweave.container.ordering import get_order

logger = structlog.get_logger("pyweave.aop.registry")


@dataclass(frozen=True)
class AdviceBinding:
    """One advice method of a registered aspect and the advisor applying it.

    Attributes:
        declaration: Kind and pointcut recorded by the advice decorator.
        handler: The advice method, bound to the aspect instance.
        advisor: Pairs an aspect interceptor running *handler* with an
            :class:`ExpressionPointcut`; carries the aspect's ``@order``.
    """

    declaration: AdviceDeclaration
    handler: Any
    advisor: DefaultPointcutAdvisor

    @property
    def advice_type(self) -> str:
        return self.declaration.kind

    @property
    def pointcut(self) -> str:
        return self.declaration.pointcut

    @property
    def aspect_order(self) -> int:
        return self.advisor.get_order()


def _declared_advice(aspect_cls: type) -> Iterator[tuple[str, AdviceDeclaration]]:
    """Advice declarations of *aspect_cls* in definition order, base classes first."""
    declared: dict[str, AdviceDeclaration] = {}
    for klass in reversed(aspect_cls.__mro__):
        for name, member in vars(klass).items():
            declaration = advice_declaration(member)
            if declaration is not None:
                declared[name] = declaration
            else:
                # an undecorated override is no longer advice
                declared.pop(name, None)
    yield from declared.items()


class AspectRegistry:
    """Collects aspect instances and the advisors built from their advice methods.

    Within one aspect, around advice is outermost, followed by before,
    after, after_returning and after_throwing advice, each kind in
    definition order.  Every advisor of an aspect carries the aspect's
    ``@order``; across aspects, bindings are kept sorted by that order
    (stable, so equal orders stay in registration order).

    Usage::

        registry = AspectRegistry()
        registry.register(AuditAspect())
        registry.register(SecurityAspect())
        factory.add_advisors(*registry.advisors)
    """

    def __init__(self) -> None:
        self._bindings: list[AdviceBinding] = []
        self._aspects: list[Any] = []
        self._lock = threading.Lock()

    def register(self, aspect_instance: Any) -> list[DefaultPointcutAdvisor]:
        """Build advisors for the advice methods of *aspect_instance*.

        Registering the same instance twice is a no-op.

        Returns:
            The advisors created for the aspect, in chain order.
        """
        if self.is_registered(aspect_instance):
            return []
        aspect_cls = type(aspect_instance)
        order = get_order(aspect_cls)
        declared = list(_declared_advice(aspect_cls))
        bindings = [
            self._bind(aspect_instance, name, declaration, order)
            for kind in ADVICE_KINDS
            for name, declaration in declared
            if declaration.kind == kind
        ]

        with self._lock:
            if any(existing is aspect_instance for existing in self._aspects):
                return []
            self._aspects.append(aspect_instance)
            self._bindings = sorted(self._bindings + bindings, key=lambda b: b.aspect_order)

        logger.debug("aspect_registered", aspect=aspect_cls.__qualname__, order=order, advice_count=len(bindings))
        return [b.advisor for b in bindings]

    @staticmethod
    def _bind(aspect_instance: Any, name: str, declaration: AdviceDeclaration, order: int) -> AdviceBinding:
        handler = getattr(aspect_instance, name)
        advice = ASPECT_ADVICE_TYPES[declaration.kind](handler, type(aspect_instance).__qualname__)
        advisor = DefaultPointcutAdvisor(advice, ExpressionPointcut(declaration.pointcut), order=order)
        return AdviceBinding(declaration, handler, advisor)

    def is_registered(self, aspect_instance: Any) -> bool:
        return any(existing is aspect_instance for existing in self._aspects)

    @property
    def aspects(self) -> list[Any]:
        return list(self._aspects)

    @property
    def advisors(self) -> list[DefaultPointcutAdvisor]:
        """Advisors of every registered aspect, sorted by aspect order."""
        return [b.advisor for b in self._bindings]

    def get_all_bindings(self) -> list[AdviceBinding]:
        return list(self._bindings)

    def get_matching(self, qualified_name: str) -> list[AdviceBinding]:
        """Bindings whose pointcut matches *qualified_name* (``module.Class.method``)."""
        return [b for b in self._bindings if matches_pointcut(b.pointcut, qualified_name)]
