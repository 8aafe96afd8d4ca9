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
"""Container exceptions — bean lookup and creation failures."""

from __future__ import annotations

from pyweave.kernel.exceptions import InfrastructureException


class BeanCreationException(InfrastructureException):
    """Fatal error while creating a bean."""

    def __init__(self, bean_name: str, reason: str) -> None:
        self.bean_name = bean_name
        self.reason = reason
        super().__init__(
            message=f"Error creating bean '{bean_name}': {reason}",
            code="BEAN_CREATION",
            context={"bean_name": bean_name},
        )


class NoSuchBeanError(BeanCreationException):
    """No bean is registered under the requested name."""

    def __init__(self, bean_name: str, suggestions: list[str] | None = None) -> None:
        self.suggestions = suggestions or []
        reason = "no bean with this name is registered"
        if self.suggestions:
            reason += f" (similar: {', '.join(self.suggestions)})"
        super().__init__(bean_name, reason)
