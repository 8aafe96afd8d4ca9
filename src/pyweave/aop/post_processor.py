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
"""AspectAutoProxyCreator — proxies beans advised by @aspect beans."""

from __future__ import annotations

import fnmatch
from typing import Any

import structlog

from pyweave.aop.advisor import Advisor
from pyweave.aop.auto_proxy import AbstractAdvisorAutoProxyCreator
from pyweave.aop.decorators import is_aspect
from pyweave.aop.registry import AspectRegistry

logger = structlog.get_logger("pyweave.aop.post_processor")


class AspectAutoProxyCreator(AbstractAdvisorAutoProxyCreator):
    """Bean post-processor that applies @aspect advice through proxies.

    During ``before_init``, aspect beans are collected into an internal
    :class:`AspectRegistry`.  Aspect beans the bean factory knows about are
    collected as well when advisors are looked up.  During ``after_init``,
    non-aspect beans matched by any aspect pointcut (or by an ``Advisor``
    bean) are replaced with a proxy.

    *include_patterns* restricts which aspect bean names are used (globs).
    """

    def __init__(self, include_patterns: list[str] | None = None) -> None:
        super().__init__()
        self.registry = AspectRegistry()
        self.include_patterns = include_patterns

    def is_eligible_aspect_bean(self, bean_name: str | None) -> bool:
        if self.include_patterns is None:
            return True
        return bool(bean_name) and any(
            fnmatch.fnmatchcase(bean_name, pattern) for pattern in self.include_patterns  # type: ignore[arg-type]
        )

    def before_init(self, bean: Any, bean_name: str) -> Any:
        """Collect @aspect beans into the registry."""
        if is_aspect(type(bean)) and self.is_eligible_aspect_bean(bean_name):
            self.registry.register(bean)
        return bean

    def find_candidate_advisors(self) -> list[Advisor]:
        advisors = super().find_candidate_advisors()
        self._collect_factory_aspects()
        advisors.extend(self.registry.advisors)
        return advisors

    def _collect_factory_aspects(self) -> None:
        bean_factory = self.bean_factory
        if bean_factory is None:
            return
        for name in bean_factory.get_bean_names_for_type(object):
            bean_type = bean_factory.get_type(name)
            if bean_type is None or not is_aspect(bean_type) or not self.is_eligible_aspect_bean(name):
                continue
            if bean_factory.is_currently_in_creation(name):
                logger.debug("skipping_aspect_in_creation", aspect=name)
                continue
            self.registry.register(bean_factory.get_bean(name))

    def is_infrastructure_class(self, bean_class: type) -> bool:
        return super().is_infrastructure_class(bean_class) or is_aspect(bean_class)
