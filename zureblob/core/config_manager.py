"""
Configuration management for ZureBlob.

Handles loading, validation, and access to client settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from enum import Enum

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator, ValidationError, ConfigDict

from zureblob.auth.credentials import DEVSTORE_ACCOUNT, DEVSTORE_KEY

logger = logging.getLogger(__name__)

REDACTED = "***REDACTED***"


class LogLevel(str, Enum):
    """Valid log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AccountConfig(BaseModel):
    """Storage account settings."""
    name: str = DEVSTORE_ACCOUNT
    key: str = DEVSTORE_KEY
    endpoint: Optional[str] = Field(
        default=None,
        description="Blob endpoint; defaults to the local emulator for the development account "
                    "and to https://{name}.blob.core.windows.net otherwise"
    )
    use_path_style_uri: Optional[bool] = Field(
        default=None,
        description="Account name as first path segment; None picks it from the endpoint"
    )
    api_version: str = "2009-09-19"

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Account names are 3-24 lowercase letters and digits."""
        if not (3 <= len(v) <= 24) or not v.isalnum() or v.lower() != v:
            raise ValueError("Account name must be 3-24 lowercase letters and digits")
        return v


class TransferConfig(BaseModel):
    """Upload ceilings and parallelism."""
    max_blob_size: int = Field(default=64 * 1024 * 1024, gt=0)
    max_block_size: int = Field(default=4 * 1024 * 1024, gt=0)
    max_workers: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def validate_sizes(self) -> "TransferConfig":
        if self.max_block_size > self.max_blob_size:
            raise ValueError("max_block_size must not exceed max_blob_size")
        return self


class HttpConfig(BaseModel):
    """HTTP transport configuration."""
    timeout: float = Field(default=30.0, gt=0.0, description="Request timeout in seconds")
    verify_ssl: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    format: str = "text"
    file: Optional[str] = None
    rotation_size: str = "10MB"
    rotation_count: int = 5
    module_levels: Optional[Dict[str, str]] = Field(
        default=None,
        description="Per-module log levels, e.g., {'zureblob.blob.transfer': 'DEBUG'}"
    )


class ZureBlobConfig(BaseModel):
    """Main ZureBlob configuration schema."""

    account: AccountConfig = Field(default_factory=AccountConfig)

    transfer: TransferConfig = Field(default_factory=TransferConfig)

    http: HttpConfig = Field(default_factory=HttpConfig)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(use_enum_values=True)


class ConfigManager:
    """
    Manages ZureBlob configuration loading and validation.

    Configuration precedence (highest to lowest):
    1. CLI arguments
    2. Environment variables (ZUREBLOB_*)
    3. Configuration file (YAML/JSON)
    4. Defaults
    """

    def __init__(self):
        self._config: Optional[ZureBlobConfig] = None
        self._config_file: Optional[Path] = None

    def load(
        self,
        config_file: Optional[str] = None,
        cli_overrides: Optional[Dict[str, Any]] = None
    ) -> ZureBlobConfig:
        """
        Load and validate configuration from multiple sources.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            cli_overrides: Nested dictionary of CLI argument overrides

        Returns:
            Validated ZureBlobConfig instance

        Raises:
            ValidationError: If configuration is invalid
            FileNotFoundError: If specified config file doesn't exist
        """
        logger.debug("Loading ZureBlob configuration")

        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = self._load_from_file(config_file)
            self._config_file = Path(config_file)
            logger.debug(f"Loaded configuration from file: {config_file}")

        env_config = self._load_from_env()
        config_dict = self._merge_configs(config_dict, env_config)
        if env_config:
            logger.debug(f"Applied {len(env_config)} environment variable overrides")

        if cli_overrides:
            config_dict = self._merge_configs(config_dict, cli_overrides)
            logger.debug(f"Applied {len(cli_overrides)} CLI argument overrides")

        try:
            self._config = ZureBlobConfig(**config_dict)
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise
        self._log_configuration()
        return self._config

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yaml', '.yml']:
                return yaml.safe_load(f) or {}
            elif path.suffix == '.json':
                return json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        # Account
        if name := os.getenv("ZUREBLOB_ACCOUNT_NAME"):
            config.setdefault("account", {})["name"] = name
        if key := os.getenv("ZUREBLOB_ACCOUNT_KEY"):
            config.setdefault("account", {})["key"] = key
        if endpoint := os.getenv("ZUREBLOB_ENDPOINT"):
            config.setdefault("account", {})["endpoint"] = endpoint
        if path_style := os.getenv("ZUREBLOB_PATH_STYLE"):
            config.setdefault("account", {})["use_path_style_uri"] = path_style.lower() in ['true', '1', 'yes']
        if api_version := os.getenv("ZUREBLOB_API_VERSION"):
            config.setdefault("account", {})["api_version"] = api_version

        # Transfer
        if max_blob_size := os.getenv("ZUREBLOB_MAX_BLOB_SIZE"):
            config.setdefault("transfer", {})["max_blob_size"] = int(max_blob_size)
        if max_block_size := os.getenv("ZUREBLOB_MAX_BLOCK_SIZE"):
            config.setdefault("transfer", {})["max_block_size"] = int(max_block_size)
        if max_workers := os.getenv("ZUREBLOB_MAX_WORKERS"):
            config.setdefault("transfer", {})["max_workers"] = int(max_workers)

        # HTTP
        if timeout := os.getenv("ZUREBLOB_TIMEOUT"):
            config.setdefault("http", {})["timeout"] = float(timeout)

        # Logging
        if log_level := os.getenv("ZUREBLOB_LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level.upper()
        if log_file := os.getenv("ZUREBLOB_LOG_FILE"):
            config.setdefault("logging", {})["file"] = log_file

        return config

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def _log_configuration(self) -> None:
        """Log the loaded configuration (with the account key redacted)."""
        if not self._config:
            return

        config_dict = self._config.model_dump()
        config_dict["account"]["key"] = REDACTED

        logger.debug(f"Active configuration: {json.dumps(config_dict, indent=2)}")

    def get_config(self) -> ZureBlobConfig:
        """
        Get the loaded configuration.

        Raises:
            RuntimeError: If configuration hasn't been loaded
        """
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call load() first.")
        return self._config

    def reload(self) -> ZureBlobConfig:
        """Reload configuration from the same file and the current environment."""
        config_file = str(self._config_file) if self._config_file else None
        return self.load(config_file=config_file)
