"""Configuration loading and validation."""

from .models import AppConfig, ExportConfig, PlaceholderConfig
from .loader import ConfigLoader, ConfigLoadError, ConfigValidationError, DEFAULT_CONFIG_PATH

__all__ = [
    "AppConfig",
    "ExportConfig",
    "PlaceholderConfig",
    "ConfigLoader",
    "ConfigLoadError",
    "ConfigValidationError",
    "DEFAULT_CONFIG_PATH",
]
