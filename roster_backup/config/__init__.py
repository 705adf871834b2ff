"""Configuration loading and validation."""

from .models import (
    SystemConfig,
    DatabaseConfig,
    StorageConfig,
    BackupConfig,
    PathsConfig,
)
from .loader import ConfigLoader, ConfigLoadError, ConfigValidationError

__all__ = [
    "SystemConfig",
    "DatabaseConfig",
    "StorageConfig",
    "BackupConfig",
    "PathsConfig",
    "ConfigLoader",
    "ConfigLoadError",
    "ConfigValidationError",
]
