"""Configuration helpers."""

from .settings import ConfigurationError, IdentitySettings, Settings, get_settings

__all__ = ["ConfigurationError", "IdentitySettings", "Settings", "get_settings"]
