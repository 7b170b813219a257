"""Integration tests for configuration loading with layered precedence.

Tests the real load_config() function with actual YAML files, environment
variables, and CLI overrides to verify precedence: defaults < YAML < ENV < CLI.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from channelgate.infrastructure.config.load import load_config

pytestmark = pytest.mark.integration


@pytest.fixture()
def yaml_config(tmp_path: Path) -> Path:
    """Write a minimal YAML config and return its path."""
    config = {
        "app_name": "channelgate-test",
        "environment": "test",
        "upstream": {
            "base_url": "https://yaml.example.com",
            "timeout_seconds": 15.0,
            "user_agent": "TestAgent/1.0",
        },
        "logging": {"level": "DEBUG", "format": "console"},
        "cache": {"dir": str(tmp_path / "cache"), "ttl_seconds": 300},
        "preload": {"channel_ids": ["1", "2"]},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path


class TestDefaultsOnly:
    """Load with no YAML, no ENV, no CLI: pure defaults."""

    def test_defaults_produce_valid_config(self) -> None:
        config = load_config()
        assert config.app_name == "channelgate"
        assert config.environment == "dev"
        assert config.upstream.timeout_seconds == 30.0
        assert config.upstream.max_retries == 3
        assert config.upstream.backoff_base_seconds == 1.0
        assert config.upstream.max_backoff_seconds == 5.0
        assert config.cache.ttl_seconds == 600
        assert config.cache.key_prefix == "streamUrl_"
        assert config.preload.session_delay_seconds == 0.5
        assert config.log_level == "INFO"
        assert config.log_format == "console"

    def test_defaults_derive_log_format_from_environment(self) -> None:
        config = load_config(cli_overrides={"environment": "prod"})
        assert config.log_format == "json"


class TestYamlOverrides:
    """YAML values override defaults."""

    def test_yaml_overrides_defaults(self, yaml_config: Path, tmp_path: Path) -> None:
        config = load_config(config_path=yaml_config)
        assert config.app_name == "channelgate-test"
        assert config.upstream.base_url == "https://yaml.example.com"
        assert config.upstream.timeout_seconds == 15.0
        assert config.upstream.user_agent == "TestAgent/1.0"
        assert config.log_level == "DEBUG"
        assert config.cache.ttl_seconds == 300
        assert config.cache.directory == tmp_path / "cache"
        assert config.preload.channel_ids == ["1", "2"]

    def test_yaml_file_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "nonexistent.yaml")

    def test_yaml_partial_override_preserves_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "partial.yaml"
        path.write_text(yaml.dump({"upstream": {"max_retries": 5}}), encoding="utf-8")

        config = load_config(config_path=path)
        assert config.upstream.max_retries == 5
        assert config.upstream.timeout_seconds == 30.0
        assert config.upstream.session_path == "gopst/channel"

    def test_empty_yaml_is_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(config_path=path).app_name == "channelgate"

    def test_non_mapping_yaml_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(config_path=path)


class TestEnvOverrides:
    """Environment variables override YAML and defaults."""

    def test_env_overrides_yaml(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHANNELGATE_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("CHANNELGATE_UPSTREAM_TIMEOUT_SECONDS", "60.0")
        monkeypatch.setenv("CHANNELGATE_CACHE_BACKEND", "memory")

        config = load_config(config_path=yaml_config)
        assert config.log_level == "WARNING"
        assert config.upstream.timeout_seconds == 60.0
        assert config.cache.backend == "memory"
        # YAML values not overridden by ENV stay
        assert config.app_name == "channelgate-test"

    def test_env_overrides_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHANNELGATE_ENVIRONMENT", "prod")
        monkeypatch.setenv("CHANNELGATE_PRELOAD_ON_STARTUP", "true")

        config = load_config()
        assert config.environment == "prod"
        assert config.log_format == "json"
        assert config.preload.on_startup is True

    def test_dotenv_file_feeds_env_layer(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # load_dotenv writes into os.environ; isolate it.
        monkeypatch.setattr(os, "environ", os.environ.copy())
        dotenv = tmp_path / ".env"
        dotenv.write_text("CHANNELGATE_CACHE_TTL_SECONDS=120\n", encoding="utf-8")

        config = load_config(dotenv_path=dotenv)
        assert config.cache.ttl_seconds == 120

    def test_missing_dotenv_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(dotenv_path=tmp_path / "missing.env")


class TestCliOverrides:
    """CLI overrides beat everything (highest precedence)."""

    def test_cli_overrides_yaml_and_env(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("CHANNELGATE_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("CHANNELGATE_UPSTREAM_BASE_URL", "https://env.example.com")

        config = load_config(
            config_path=yaml_config,
            cli_overrides={
                "log_level": "ERROR",
                "upstream_base_url": "https://cli.example.com",
            },
        )
        assert config.log_level == "ERROR"
        assert config.upstream.base_url == "https://cli.example.com"


class TestValidation:
    def test_non_positive_ttl_rejected(self) -> None:
        with pytest.raises(ValidationError):
            load_config(cli_overrides={"cache_ttl_seconds": 0})

    def test_negative_session_delay_rejected(self) -> None:
        with pytest.raises(ValidationError):
            load_config(cli_overrides={"preload_session_delay_seconds": -1})

    def test_unknown_backend_rejected(self) -> None:
        with pytest.raises(ValidationError):
            load_config(cli_overrides={"cache_backend": "sqlite"})

    def test_sectioned_dump_round_trips(self) -> None:
        config = load_config()
        dumped = config.to_sectioned_dict()
        assert dumped["cache"]["dir"] == str(config.cache.directory)
        assert dumped["logging"] == {"level": "INFO", "format": "console"}
