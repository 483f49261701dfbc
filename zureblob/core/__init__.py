"""Core module initialization."""

from .config_manager import ConfigManager, ZureBlobConfig
from .logging_config import setup_logging

__all__ = [
    "ConfigManager",
    "ZureBlobConfig",
    "setup_logging",
]
