"""Configuration: engine settings, lookup tables and the YAML loader."""
from __future__ import annotations

from cms_access_control.config.defaults import default_access_config
from cms_access_control.config.loader import (
    AccessConfig,
    AccessConfigError,
    AccessConfigLoader,
    config_to_dict,
)
from cms_access_control.config.settings import EngineSettings
from cms_access_control.config.tables import (
    AccessTables,
    MenuItem,
    OperationPermission,
    PagePermission,
    RoleHierarchy,
)

__all__ = [
    "AccessConfig",
    "AccessConfigError",
    "AccessConfigLoader",
    "AccessTables",
    "EngineSettings",
    "MenuItem",
    "OperationPermission",
    "PagePermission",
    "RoleHierarchy",
    "config_to_dict",
    "default_access_config",
]
