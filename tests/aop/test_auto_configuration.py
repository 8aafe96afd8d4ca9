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
"""Tests for AOP auto-configuration from pyweave.aop properties."""

from __future__ import annotations

from pyweave.aop.auto_configuration import AopAutoConfiguration
from pyweave.aop.decorators import aspect, before
from pyweave.aop.post_processor import AspectAutoProxyCreator
from pyweave.aop.utils import get_advised, is_subclass_proxy
from pyweave.config.properties.aop import AopProperties
from pyweave.context.bean_factory import StaticBeanFactory
from pyweave.core.config import Config


@aspect
class AuditAspect:
    def __init__(self) -> None:
        self.seen: list[str] = []

    @before("**.Inventory.*")
    def audit(self, jp) -> None:
        self.seen.append(jp.method_name)


class Inventory:
    def reserve(self, sku: str) -> str:
        return f"reserved:{sku}"


def _config(**aop: object) -> Config:
    return Config({"pyweave": {"aop": aop}})


class TestAopProperties:
    def test_defaults(self) -> None:
        props = _config().bind(AopProperties)

        assert props.enabled is True
        assert props.proxy_target_class is False
        assert props.frozen is False

    def test_values_from_config(self) -> None:
        props = _config(expose_proxy=True, opaque=True).bind(AopProperties)

        assert props.expose_proxy is True
        assert props.opaque is True

    def test_environment_overrides(self, monkeypatch) -> None:
        monkeypatch.setenv("PYWEAVE_AOP_FROZEN", "true")
        monkeypatch.setenv("PYWEAVE_AOP_ENABLED", "false")

        props = _config().bind(AopProperties)

        assert props.frozen is True
        assert props.enabled is False

    def test_framework_defaults_file(self, tmp_path) -> None:
        props = Config.from_sources(tmp_path).bind(AopProperties)

        assert props == AopProperties()


class TestAopAutoConfiguration:
    def test_creator_configured_from_properties(self) -> None:
        creator = AopAutoConfiguration(_config(proxy_target_class=True, frozen=True)).aspect_auto_proxy_creator()

        assert isinstance(creator, AspectAutoProxyCreator)
        assert creator.proxy_target_class is True
        assert creator.freeze_proxy is True
        assert creator.expose_proxy is False

    def test_disabled(self) -> None:
        factory = StaticBeanFactory()

        assert AopAutoConfiguration(_config(enabled=False)).configure(factory) is None

    def test_configure_registers_post_processor(self) -> None:
        factory = StaticBeanFactory()
        AopAutoConfiguration(_config(frozen=True)).configure(factory)
        factory.register_definition("auditAspect", AuditAspect)
        factory.register_definition("inventory", Inventory)

        inventory = factory.get_bean("inventory")

        assert inventory.reserve("A1") == "reserved:A1"
        assert factory.get_bean("auditAspect").seen == ["reserve"]
        assert is_subclass_proxy(inventory)
        assert get_advised(inventory).frozen
