"""cms-access-control: permission and access-control engine for a CMS admin console.

Public API
----------
The stable public surface is everything exported from this module.
Anything inside submodules not re-exported here is considered private
and may change without notice.

Example
-------
>>> import cms_access_control as cac
>>> cac.__version__
'0.1.0'
>>> manager = cac.PermissionManager()
>>> editor = cac.build_user_permissions("u-1", "editor", manager.hierarchy)
>>> manager.has_permission(editor, "articles", "update").allowed
True
>>> manager.can_perform_operation(editor, "delete_course").allowed
False
"""
from __future__ import annotations

__version__: str = "0.1.0"

from cms_access_control.manager import PermissionManager
from cms_access_control.session import PermissionSession, build_user_permissions, has_role

# ---------------------------------------------------------------------------
# Permissions
# ---------------------------------------------------------------------------
from cms_access_control.permissions.model import (
    WILDCARD,
    Condition,
    CustomPredicate,
    Permission,
    PermissionCheckOptions,
    PermissionCheckResult,
    Role,
    UserPermissions,
    merge_permissions,
    validate_role_permissions,
)
from cms_access_control.permissions.conditions import ConditionEvaluator
from cms_access_control.permissions.cache import DecisionCache
from cms_access_control.permissions.evaluator import PolicyEvaluator

# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------
from cms_access_control.audit.events import (
    PermissionEvent,
    PermissionEventBus,
    PermissionEventType,
)
from cms_access_control.audit.log import PermissionAuditEntry, PermissionAuditLog
from cms_access_control.audit.sink import JsonlAuditSink
from cms_access_control.audit.exporter import AuditExporter

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------
from cms_access_control.config.settings import EngineSettings
from cms_access_control.config.tables import (
    AccessTables,
    MenuItem,
    OperationPermission,
    PagePermission,
    RoleHierarchy,
)
from cms_access_control.config.loader import (
    AccessConfig,
    AccessConfigError,
    AccessConfigLoader,
)
from cms_access_control.config.defaults import default_access_config

# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------
from cms_access_control.adapters import MenuFilter, OperationAccess, PageAccess

__all__ = [
    "__version__",
    "PermissionManager",
    "PermissionSession",
    "build_user_permissions",
    "has_role",
    # Permissions
    "WILDCARD",
    "Condition",
    "ConditionEvaluator",
    "CustomPredicate",
    "DecisionCache",
    "Permission",
    "PermissionCheckOptions",
    "PermissionCheckResult",
    "PolicyEvaluator",
    "Role",
    "UserPermissions",
    "merge_permissions",
    "validate_role_permissions",
    # Audit
    "AuditExporter",
    "JsonlAuditSink",
    "PermissionAuditEntry",
    "PermissionAuditLog",
    "PermissionEvent",
    "PermissionEventBus",
    "PermissionEventType",
    # Configuration
    "AccessConfig",
    "AccessConfigError",
    "AccessConfigLoader",
    "AccessTables",
    "EngineSettings",
    "MenuItem",
    "OperationPermission",
    "PagePermission",
    "RoleHierarchy",
    "default_access_config",
    # Adapters
    "MenuFilter",
    "OperationAccess",
    "PageAccess",
]
