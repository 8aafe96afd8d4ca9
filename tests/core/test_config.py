"""Tests for configuration system."""

import os
from dataclasses import dataclass
from pathlib import Path

import pytest
from pydantic import BaseModel

from pyweave.core.config import Config, config_properties


class TestConfig:
    def test_load_from_dict(self):
        config = Config({"app": {"name": "test-service", "port": 8080}})
        assert config.get("app.name") == "test-service"
        assert config.get("app.port") == 8080

    def test_get_with_default(self):
        config = Config({})
        assert config.get("missing.key", "default") == "default"

    def test_get_nested_value(self):
        config = Config({"database": {"pool": {"size": 10}}})
        assert config.get("database.pool.size") == 10

    def test_env_var_override(self):
        os.environ["PYWEAVE_APP_NAME"] = "env-service"
        try:
            config = Config({"app": {"name": "file-service"}})
            assert config.get("app.name") == "env-service"
        finally:
            del os.environ["PYWEAVE_APP_NAME"]

    def test_framework_prefix_not_repeated_in_env_name(self, monkeypatch):
        monkeypatch.setenv("PYWEAVE_AOP_EXPOSE_PROXY", "yes")
        config = Config({"pyweave": {"aop": {"expose_proxy": False}}})
        assert config.get_bool("pyweave.aop.expose_proxy") is True

    def test_get_bool(self):
        config = Config({"flags": {"on": "true", "off": "0", "native": True}})
        assert config.get_bool("flags.on") is True
        assert config.get_bool("flags.off") is False
        assert config.get_bool("flags.native") is True
        assert config.get_bool("flags.missing", default=True) is True

    def test_get_section(self):
        config = Config({"pyweave": {"aop": {"frozen": True}}})
        assert config.get_section("pyweave.aop") == {"frozen": True}
        assert config.get_section("pyweave.missing") == {}


class TestPlaceholders:
    def test_reference_to_other_key(self):
        config = Config({"app": {"name": "orders", "banner": "${app.name}-service"}})
        assert config.get("app.banner") == "orders-service"

    def test_default_value(self):
        config = Config({"db": {"url": "${DB_URL_NOT_SET:sqlite://}"}})
        assert config.get("db.url") == "sqlite://"

    def test_environment_variable(self, monkeypatch):
        monkeypatch.setenv("ORDERS_HOST", "db.internal")
        config = Config({"db": {"host": "${ORDERS_HOST}"}})
        assert config.get("db.host") == "db.internal"

    def test_unresolvable_placeholder(self):
        config = Config({"db": {"url": "${nowhere.to.be.found}"}})
        with pytest.raises(ValueError, match="Cannot resolve placeholder"):
            config.get("db.url")

    def test_circular_placeholder(self):
        config = Config({"a": "${b}", "b": "${a}"})
        with pytest.raises(ValueError, match="Circular placeholder"):
            config.get("a")


class TestConfigProperties:
    def test_bind_to_dataclass(self):
        @config_properties(prefix="database")
        @dataclass
        class DatabaseConfig:
            url: str = "sqlite:///test.db"
            pool_size: int = 5

        config = Config({"database": {"url": "postgresql://localhost/mydb", "pool_size": 20}})
        db_config = config.bind(DatabaseConfig)
        assert db_config.url == "postgresql://localhost/mydb"
        assert db_config.pool_size == 20

    def test_bind_uses_defaults(self):
        @config_properties(prefix="database")
        @dataclass
        class DatabaseConfig:
            url: str = "sqlite:///default.db"
            pool_size: int = 5

        config = Config({})
        db_config = config.bind(DatabaseConfig)
        assert db_config.url == "sqlite:///default.db"
        assert db_config.pool_size == 5

    def test_bind_converts_env_strings(self, monkeypatch):
        @config_properties(prefix="cache")
        @dataclass
        class CacheConfig:
            size: int = 10
            enabled: bool = False

        monkeypatch.setenv("PYWEAVE_CACHE_SIZE", "64")
        monkeypatch.setenv("PYWEAVE_CACHE_ENABLED", "on")
        cache = Config({}).bind(CacheConfig)
        assert cache.size == 64
        assert cache.enabled is True

    def test_bind_to_pydantic_model(self):
        @config_properties(prefix="server")
        class ServerConfig(BaseModel):
            host: str = "localhost"
            port: int = 8000

        server = Config({"server": {"port": "9000"}}).bind(ServerConfig)
        assert server.host == "localhost"
        assert server.port == 9000

    def test_pydantic_validation_error(self):
        @config_properties(prefix="server")
        class ServerConfig(BaseModel):
            port: int = 8000

        with pytest.raises(ValueError, match="Configuration validation failed"):
            Config({"server": {"port": "not-a-port"}}).bind(ServerConfig)

    def test_bind_requires_decorator(self):
        @dataclass
        class Plain:
            value: int = 1

        with pytest.raises(ValueError, match="not decorated with @config_properties"):
            Config({}).bind(Plain)


class TestConfigSources:
    def test_defaults_loaded(self, tmp_path: Path):
        config = Config.from_sources(tmp_path)
        assert config.get("pyweave.aop.enabled") is True
        assert config.loaded_sources == ["pyweave-defaults.yaml (framework defaults)"]

    def test_defaults_can_be_skipped(self, tmp_path: Path):
        config = Config.from_sources(tmp_path, load_defaults=False)
        assert config.get("pyweave.aop.enabled") is None
        assert config.loaded_sources == []

    def test_yaml_overrides_defaults(self, tmp_path: Path):
        (tmp_path / "pyweave.yaml").write_text("pyweave:\n  aop:\n    frozen: true\n")
        config = Config.from_sources(tmp_path)
        assert config.get("pyweave.aop.frozen") is True
        assert config.get("pyweave.aop.enabled") is True

    def test_toml_file(self, tmp_path: Path):
        (tmp_path / "pyweave.toml").write_text('[app]\nname = "from-toml"\n')
        config = Config.from_sources(tmp_path, load_defaults=False)
        assert config.get("app.name") == "from-toml"


class TestProfileConfigMerging:
    def test_merge_profile_config(self, tmp_path):
        (tmp_path / "pyweave.yaml").write_text("server:\n  port: 8080\n  host: localhost\n")
        (tmp_path / "pyweave-dev.yaml").write_text("server:\n  port: 9090\n  debug: true\n")

        config = Config.from_sources(tmp_path, active_profiles=["dev"])
        assert config.get("server.port") == 9090
        assert config.get("server.host") == "localhost"
        assert config.get("server.debug") is True

    def test_later_profile_wins(self, tmp_path):
        (tmp_path / "pyweave.yaml").write_text("db:\n  url: base\n")
        (tmp_path / "pyweave-dev.yaml").write_text("db:\n  url: dev-url\n")
        (tmp_path / "pyweave-local.yaml").write_text("db:\n  url: local-url\n")

        config = Config.from_sources(tmp_path, active_profiles=["dev", "local"])
        assert config.get("db.url") == "local-url"

    def test_missing_profile_file_is_skipped(self, tmp_path):
        (tmp_path / "pyweave.yaml").write_text("app:\n  name: test\n")

        config = Config.from_sources(tmp_path, active_profiles=["nonexistent"])
        assert config.get("app.name") == "test"

    def test_env_vars_still_win(self, tmp_path, monkeypatch):
        (tmp_path / "pyweave.yaml").write_text("app:\n  name: base\n")
        (tmp_path / "pyweave-dev.yaml").write_text("app:\n  name: dev\n")

        monkeypatch.setenv("PYWEAVE_APP_NAME", "env-wins")
        config = Config.from_sources(tmp_path, active_profiles=["dev"])
        assert config.get("app.name") == "env-wins"
