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
"""Stereotype decorators for bean classification.

A stereotype names the role of a class.  Pointcut expressions can address
join points by role: a method on a class marked ``@service`` also answers to
``service.ClassName.method``, so ``service.*.create_*`` advises every
service's ``create_*`` methods regardless of module.
"""

from __future__ import annotations

from typing import Any, TypeVar, overload

T = TypeVar("T", bound=type)

STEREOTYPE_ATTR = "__pyweave_stereotype__"


def stereotype_of(cls: Any) -> str:
    """The stereotype name of *cls*, or ``""`` when it carries none."""
    return getattr(cls, STEREOTYPE_ATTR, "") or ""


class Stereotype:
    """Class decorator usable bare (``@service``) or called (``@service()``)."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.__name__ = name
        self.__qualname__ = name

    @overload
    def __call__(self, cls: T) -> T: ...

    @overload
    def __call__(self) -> Stereotype: ...

    def __call__(self, cls: T | None = None) -> T | Stereotype:
        if cls is None:
            return self
        setattr(cls, STEREOTYPE_ATTR, self.name)
        return cls

    def is_present(self, cls: type) -> bool:
        return stereotype_of(cls) == self.name

    def __repr__(self) -> str:
        return f"@{self.name}"


component = Stereotype("component")
service = Stereotype("service")
repository = Stereotype("repository")
