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
"""AOP subsystem configuration properties."""

from __future__ import annotations

from dataclasses import dataclass

from pyweave.core.config import config_properties


@config_properties(prefix="pyweave.aop")
@dataclass
class AopProperties:
    """Configuration for auto-proxying (pyweave.aop.*).

    Attributes:
        enabled: Register the aspect auto-proxy creator at all.
        proxy_target_class: Always build subclass proxies, never contract proxies.
        expose_proxy: Publish the current proxy through AopContext.
        frozen: Reject advice changes once a proxy has been created.
        opaque: Hide the Advised management view of created proxies.
        optimize: Allow aggressive optimizations (subclass proxies).
    """

    enabled: bool = True
    proxy_target_class: bool = False
    expose_proxy: bool = False
    frozen: bool = False
    opaque: bool = False
    optimize: bool = False
