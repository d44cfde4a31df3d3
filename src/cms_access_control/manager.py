"""Permission manager: one object exposing the whole decision API.

Composes a :class:`PolicyEvaluator` with the page, operation and menu
adapters over one configuration.  Construct one manager per process (or
per tenant) and pass it to callers; each manager owns its own decision
cache, audit buffer and listeners.

Example
-------
::

    from cms_access_control import PermissionManager

    manager = PermissionManager()
    result = manager.has_permission(user, "articles", "update")
    page = manager.can_access_page(user, "/admin/articles/edit")
    menu = manager.get_accessible_menu_items(user)
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from cms_access_control.adapters.menus import MenuFilter
from cms_access_control.adapters.operations import OperationAccess
from cms_access_control.adapters.pages import PageAccess
from cms_access_control.audit.events import (
    PermissionEvent,
    PermissionEventListener,
    PermissionEventType,
)
from cms_access_control.audit.log import PermissionAuditEntry, PermissionAuditLog
from cms_access_control.audit.sink import JsonlAuditSink
from cms_access_control.config.loader import AccessConfig
from cms_access_control.config.settings import EngineSettings
from cms_access_control.config.tables import AccessTables, MenuItem, RoleHierarchy
from cms_access_control.permissions.evaluator import PolicyEvaluator
from cms_access_control.permissions.model import (
    Permission,
    PermissionCheckOptions,
    PermissionCheckResult,
    PermissionContext,
    UserPermissions,
    merge_permissions,
    validate_role_permissions,
)

logger = logging.getLogger(__name__)


class PermissionManager:
    """Entry point for permission decisions.

    Parameters
    ----------
    config:
        Roles and lookup tables.  The built-in admin console configuration
        is used when omitted.
    settings:
        Overrides ``config.settings`` when given.
    """

    def __init__(
        self,
        config: AccessConfig | None = None,
        settings: EngineSettings | None = None,
    ) -> None:
        if config is None:
            from cms_access_control.config.defaults import default_access_config

            config = default_access_config()
        self._config = config
        self._settings = settings or config.settings
        self._hierarchy = RoleHierarchy(config.roles)

        sinks = []
        if self._settings.audit_log_path is not None:
            sinks.append(JsonlAuditSink(self._settings.audit_log_path))
        audit_log = PermissionAuditLog(
            max_entries=self._settings.audit_max_entries,
            trim_to=self._settings.audit_trim_to,
            sinks=sinks,
        )

        self._evaluator = PolicyEvaluator(
            super_admin_role=self._settings.super_admin_role,
            cache_enabled=self._settings.cache_enabled,
            audit_log=audit_log,
        )
        self._pages = PageAccess(self._evaluator, config.tables)
        self._operations = OperationAccess(self._evaluator, config.tables)
        self._menus = MenuFilter(self._evaluator, self._hierarchy.is_higher_role)

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def has_permission(
        self,
        user_permissions: UserPermissions,
        resource: str,
        action: str,
        options: PermissionCheckOptions | None = None,
    ) -> PermissionCheckResult:
        return self._evaluator.has_permission(user_permissions, resource, action, options)

    def has_any_permission(
        self,
        user_permissions: UserPermissions,
        checks: Sequence[tuple[str, str]],
        options: PermissionCheckOptions | None = None,
    ) -> bool:
        return self._evaluator.has_any_permission(user_permissions, checks, options)

    def has_all_permissions(
        self,
        user_permissions: UserPermissions,
        checks: Sequence[tuple[str, str]],
        options: PermissionCheckOptions | None = None,
    ) -> bool:
        return self._evaluator.has_all_permissions(user_permissions, checks, options)

    def can_access_page(
        self,
        user_permissions: UserPermissions,
        page_path: str,
        options: PermissionCheckOptions | None = None,
    ) -> PermissionCheckResult:
        return self._pages.can_access_page(user_permissions, page_path, options)

    def can_perform_operation(
        self,
        user_permissions: UserPermissions,
        operation: str,
        context: PermissionContext | None = None,
    ) -> PermissionCheckResult:
        return self._operations.can_perform_operation(user_permissions, operation, context)

    def get_accessible_menu_items(
        self,
        user_permissions: UserPermissions,
        items: Sequence[MenuItem] | None = None,
    ) -> list[MenuItem]:
        """Filter ``items`` (the configured menu when omitted) for the user."""
        menu = items if items is not None else self._config.tables.menus
        return self._menus.get_accessible_menu_items(user_permissions, menu)

    def get_resource_permissions(
        self,
        user_permissions: UserPermissions,
        resource: str,
    ) -> list[str]:
        return self._evaluator.get_resource_permissions(user_permissions, resource)

    # ------------------------------------------------------------------
    # Model helpers
    # ------------------------------------------------------------------

    def validate_role_permissions(self, role: object) -> bool:
        return validate_role_permissions(role)

    def merge_permissions(
        self,
        first: Sequence[Permission],
        second: Sequence[Permission],
    ) -> list[Permission]:
        return merge_permissions(first, second)

    def is_higher_role(self, first: str, second: str) -> bool:
        return self._hierarchy.is_higher_role(first, second)

    # ------------------------------------------------------------------
    # Cache, audit and events
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        self._evaluator.clear_cache()

    def get_audit_logs(self, limit: int | None = None) -> list[PermissionAuditEntry]:
        return self._evaluator.get_audit_logs(limit)

    def add_event_listener(
        self,
        event_type: PermissionEventType | str,
        listener: PermissionEventListener,
    ) -> None:
        self._evaluator.add_event_listener(event_type, listener)

    def remove_event_listener(
        self,
        event_type: PermissionEventType | str,
        listener: PermissionEventListener,
    ) -> bool:
        return self._evaluator.remove_event_listener(event_type, listener)

    def emit_event(self, event: PermissionEvent) -> None:
        self._evaluator.emit_event(event)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def evaluator(self) -> PolicyEvaluator:
        return self._evaluator

    @property
    def audit_log(self) -> PermissionAuditLog:
        return self._evaluator.audit_log

    @property
    def config(self) -> AccessConfig:
        return self._config

    @property
    def settings(self) -> EngineSettings:
        return self._settings

    @property
    def hierarchy(self) -> RoleHierarchy:
        return self._hierarchy

    @property
    def tables(self) -> AccessTables:
        return self._config.tables
