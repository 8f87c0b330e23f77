"""
Configuration Management Module.

Handles loading and validation of:
- Xray/Jira connection settings from YAML/JSON files.
- Environment variable overrides for credentials and flags.
- JSON schemas for settings files and API responses.
"""

from xray_sync.config.loader import ConfigurationError, SettingsLoader, XraySettings
from xray_sync.config.schema_registry import SchemaRegistry, SchemaValidationError

__all__ = [
    "ConfigurationError",
    "SettingsLoader",
    "XraySettings",
    "SchemaRegistry",
    "SchemaValidationError",
]
