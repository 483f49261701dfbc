"""
Tests for configuration management.
"""

import json
import logging
import os

import pytest
import yaml
from pydantic import ValidationError

from zureblob.auth.credentials import DEVSTORE_ACCOUNT, DEVSTORE_KEY
from zureblob.core.config_manager import (
    AccountConfig,
    ConfigManager,
    LogLevel,
    TransferConfig,
    ZureBlobConfig,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("ZUREBLOB_"):
            monkeypatch.delenv(name)


class TestConfigModels:
    """Test suite for configuration models."""

    def test_defaults(self):
        """Test default configuration targets the development account."""
        config = ZureBlobConfig()

        assert config.account.name == DEVSTORE_ACCOUNT
        assert config.account.key == DEVSTORE_KEY
        assert config.account.endpoint is None
        assert config.account.use_path_style_uri is None
        assert config.account.api_version == "2009-09-19"
        assert config.transfer.max_blob_size == 64 * 1024 * 1024
        assert config.transfer.max_block_size == 4 * 1024 * 1024
        assert config.transfer.max_workers == 1
        assert config.http.timeout == 30.0
        assert config.logging.level == LogLevel.INFO.value
        assert config.logging.format == "text"

    @pytest.mark.parametrize("name", ["ab", "a" * 25, "MyAccount", "my-account"])
    def test_invalid_account_name(self, name):
        """Test account names outside 3-24 lowercase alphanumerics are rejected."""
        with pytest.raises(ValidationError) as exc_info:
            AccountConfig(name=name)
        assert "Account name must be 3-24" in str(exc_info.value)

    def test_block_larger_than_blob(self):
        """Test the block ceiling cannot exceed the single-shot ceiling."""
        with pytest.raises(ValidationError) as exc_info:
            TransferConfig(max_blob_size=1024, max_block_size=2048)
        assert "max_block_size must not exceed max_blob_size" in str(exc_info.value)

    @pytest.mark.parametrize("field", ["max_blob_size", "max_block_size", "max_workers"])
    def test_non_positive_transfer_values(self, field):
        """Test transfer settings must be positive."""
        with pytest.raises(ValidationError):
            TransferConfig(**{field: 0})


class TestConfigManager:
    """Test suite for ConfigManager."""

    def test_load_defaults(self):
        """Test loading with no sources yields defaults."""
        config = ConfigManager().load()
        assert config.account.name == DEVSTORE_ACCOUNT

    def test_load_from_yaml(self, tmp_path):
        """Test loading configuration from a YAML file."""
        config_file = tmp_path / "zureblob.yaml"
        config_file.write_text(yaml.dump({
            "account": {"name": "photosacct", "key": "c2VjcmV0", "endpoint": "https://photos.example.com"},
            "transfer": {"max_workers": 4},
        }))

        config = ConfigManager().load(config_file=str(config_file))

        assert config.account.name == "photosacct"
        assert config.account.endpoint == "https://photos.example.com"
        assert config.transfer.max_workers == 4

    def test_load_from_json(self, tmp_path):
        """Test loading configuration from a JSON file."""
        config_file = tmp_path / "zureblob.json"
        config_file.write_text(json.dumps({"http": {"timeout": 5}, "logging": {"format": "json"}}))

        config = ConfigManager().load(config_file=str(config_file))

        assert config.http.timeout == 5.0
        assert config.logging.format == "json"

    def test_empty_yaml(self, tmp_path):
        """Test an empty YAML file falls back to defaults."""
        config_file = tmp_path / "empty.yml"
        config_file.write_text("")

        config = ConfigManager().load(config_file=str(config_file))

        assert config.transfer.max_workers == 1

    def test_load_from_env_variables(self, monkeypatch):
        """Test loading configuration from environment variables."""
        monkeypatch.setenv("ZUREBLOB_ACCOUNT_NAME", "envacct")
        monkeypatch.setenv("ZUREBLOB_ENDPOINT", "http://localhost:10000")
        monkeypatch.setenv("ZUREBLOB_PATH_STYLE", "yes")
        monkeypatch.setenv("ZUREBLOB_MAX_WORKERS", "8")
        monkeypatch.setenv("ZUREBLOB_TIMEOUT", "2.5")
        monkeypatch.setenv("ZUREBLOB_LOG_LEVEL", "warning")

        config = ConfigManager().load()

        assert config.account.name == "envacct"
        assert config.account.endpoint == "http://localhost:10000"
        assert config.account.use_path_style_uri is True
        assert config.transfer.max_workers == 8
        assert config.http.timeout == 2.5
        assert config.logging.level == LogLevel.WARNING.value

    def test_path_style_false(self, monkeypatch):
        """Test path style can be switched off from the environment."""
        monkeypatch.setenv("ZUREBLOB_PATH_STYLE", "false")
        assert ConfigManager().load().account.use_path_style_uri is False

    def test_cli_overrides(self):
        """Test CLI argument overrides."""
        config = ConfigManager().load(cli_overrides={"logging": {"level": "ERROR"}})
        assert config.logging.level == LogLevel.ERROR.value

    def test_configuration_precedence(self, tmp_path, monkeypatch):
        """Test configuration precedence: CLI > ENV > FILE > DEFAULTS."""
        config_file = tmp_path / "zureblob.yaml"
        config_file.write_text(yaml.dump({
            "account": {"name": "fileacct", "endpoint": "https://file.example.com"},
            "transfer": {"max_workers": 2},
        }))
        monkeypatch.setenv("ZUREBLOB_ACCOUNT_NAME", "envacct")
        monkeypatch.setenv("ZUREBLOB_MAX_WORKERS", "3")

        config = ConfigManager().load(
            config_file=str(config_file),
            cli_overrides={"transfer": {"max_workers": 6}},
        )

        assert config.transfer.max_workers == 6
        assert config.account.name == "envacct"
        assert config.account.endpoint == "https://file.example.com"

    def test_invalid_transfer_sizes(self):
        """Test invalid transfer sizes fail validation."""
        with pytest.raises(ValidationError):
            ConfigManager().load(cli_overrides={"transfer": {"max_block_size": -1}})

    def test_file_not_found(self):
        """Test that missing config file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            ConfigManager().load(config_file="/nonexistent/zureblob.yaml")

    def test_unsupported_file_format(self, tmp_path):
        """Test that unsupported file format raises ValueError."""
        config_file = tmp_path / "zureblob.txt"
        config_file.write_text("account: nope")

        with pytest.raises(ValueError) as exc_info:
            ConfigManager().load(config_file=str(config_file))

        assert "Unsupported config file format" in str(exc_info.value)

    def test_account_key_redacted_in_log(self, caplog):
        """Test the active configuration is logged without the account key."""
        caplog.set_level(logging.DEBUG, logger="zureblob.core.config_manager")

        ConfigManager().load()

        assert "Active configuration" in caplog.text
        assert "***REDACTED***" in caplog.text
        assert DEVSTORE_KEY not in caplog.text

    def test_get_config_before_load(self):
        """Test that getting config before loading raises RuntimeError."""
        with pytest.raises(RuntimeError) as exc_info:
            ConfigManager().get_config()
        assert "Configuration not loaded" in str(exc_info.value)

    def test_get_config_after_load(self):
        """Test getting config after loading."""
        manager = ConfigManager()
        config = manager.load()
        assert manager.get_config() is config

    def test_reload_configuration(self, tmp_path):
        """Test reloading picks up file changes."""
        config_file = tmp_path / "zureblob.yaml"
        config_file.write_text(yaml.dump({"transfer": {"max_workers": 2}}))

        manager = ConfigManager()
        assert manager.load(config_file=str(config_file)).transfer.max_workers == 2

        config_file.write_text(yaml.dump({"transfer": {"max_workers": 5}}))
        assert manager.reload().transfer.max_workers == 5
