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
"""Container hooks — bean post-processor protocols."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class BeanPostProcessor(Protocol):
    """Hook into bean initialization.

    Called for every bean created by the container:
    - ``before_init``: before the bean's init callbacks
    - ``after_init``: after the init callbacks; may return a replacement (a proxy)
    """

    def before_init(self, bean: Any, bean_name: str) -> Any: ...

    def after_init(self, bean: Any, bean_name: str) -> Any: ...


@runtime_checkable
class SmartInstantiationAwareBeanPostProcessor(BeanPostProcessor, Protocol):
    """Post-processor that can short-circuit instantiation and resolve cycles.

    - ``before_instantiation``: may return an object used *instead of*
      instantiating the bean (e.g. a proxy over a custom target source)
    - ``get_early_bean_reference``: reference handed out while the bean is
      still in creation (circular references); must match what ``after_init``
      later returns
    - ``predict_bean_type``: type of the object finally exposed for a bean
    """

    def before_instantiation(self, bean_class: type, bean_name: str) -> Any: ...

    def get_early_bean_reference(self, bean: Any, bean_name: str) -> Any: ...

    def predict_bean_type(self, bean_class: type, bean_name: str) -> type | None: ...
