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
"""Tests for StructlogAdapter and the proxied-bean processor."""

import logging

import pytest

from pyweave.aop.auto_configuration import AopAutoConfiguration
from pyweave.config.properties.logging import LoggingProperties
from pyweave.context.proxy_creation import ProxyCreationContext
from pyweave.core.config import Config
from pyweave.logging.port import LoggingPort
from pyweave.logging.structlog_adapter import StructlogAdapter, add_proxied_bean


def _logging_config(**section: object) -> Config:
    return Config({"pyweave": {"logging": section}})


class TestStructlogAdapterConformance:
    def test_implements_logging_port(self):
        assert isinstance(StructlogAdapter(), LoggingPort)


class TestStructlogAdapterConfigure:
    def test_configure_with_default_properties(self):
        adapter = StructlogAdapter()
        adapter.configure(LoggingProperties())
        assert adapter._root_level == "INFO"
        assert adapter._module_levels == {}
        assert adapter._format == "console"

    def test_levels_are_upper_cased(self):
        adapter = StructlogAdapter()
        adapter.configure(LoggingProperties(level={"root": "debug", "pyweave.aop": "warning"}))
        assert adapter._root_level == "DEBUG"
        assert adapter._module_levels == {"pyweave.aop": "WARNING"}

    def test_from_config_reads_format(self):
        adapter = StructlogAdapter.from_config(_logging_config(format="JSON"))
        assert adapter._format == "json"

    def test_from_config_rejects_unknown_format(self):
        with pytest.raises(ValueError, match="Configuration validation failed"):
            StructlogAdapter.from_config(_logging_config(format="xml"))

    def test_chain_logger_level_applied(self):
        StructlogAdapter.from_config(_logging_config(level={"root": "INFO", "pyweave.aop.chain": "DEBUG"}))
        assert logging.getLogger("pyweave.aop.chain").level == logging.DEBUG

    def test_framework_defaults(self, tmp_path):
        adapter = StructlogAdapter.from_config(Config.from_sources(tmp_path))
        assert adapter._format == "console"
        assert adapter._root_level == "INFO"

    def test_auto_configuration_defaults_to_structlog(self):
        port = AopAutoConfiguration(_logging_config(level={"root": "ERROR"})).logging_port()
        assert isinstance(port, StructlogAdapter)
        assert port._root_level == "ERROR"


class TestStructlogAdapterLoggers:
    def test_get_logger_returns_bound_logger(self):
        adapter = StructlogAdapter()
        adapter.configure(LoggingProperties())
        logger = adapter.get_logger("pyweave.aop.proxy")
        assert callable(getattr(logger, "info", None))
        assert callable(getattr(logger, "debug", None))

    def test_set_level_updates_logger(self):
        adapter = StructlogAdapter()
        adapter.configure(LoggingProperties())
        adapter.set_level("pyweave.aop.auto_proxy", "warning")
        assert logging.getLogger("pyweave.aop.auto_proxy").level == logging.WARNING


class TestProxiedBeanProcessor:
    def test_no_bean_outside_proxy_creation(self):
        event = add_proxied_bean(None, "debug", {"event": "proxy_created"})
        assert "proxied_bean" not in event

    def test_bean_name_added_while_proxying(self):
        with ProxyCreationContext.proxying("orderService"):
            event = add_proxied_bean(None, "debug", {"event": "creating_proxy"})
        assert event["proxied_bean"] == "orderService"

    def test_explicit_value_is_kept(self):
        with ProxyCreationContext.proxying("orderService"):
            event = add_proxied_bean(None, "debug", {"event": "x", "proxied_bean": "other"})
        assert event["proxied_bean"] == "other"
