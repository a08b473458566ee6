"""Configuration parsing modules for surtur."""

from .project_config import (
    DESCRIPTOR_NAME,
    ConfigError,
    ConfigMalformedError,
    ConfigNotFoundError,
    CStandard,
    Dependency,
    ProjectConfig,
    load,
)
from .settings import Settings, SettingsError

__all__ = [
    "DESCRIPTOR_NAME",
    "ConfigError",
    "ConfigMalformedError",
    "ConfigNotFoundError",
    "CStandard",
    "Dependency",
    "ProjectConfig",
    "load",
    "Settings",
    "SettingsError",
]
