"""Per-user permission session.

Turns an identity provider's role claim into a :class:`UserPermissions`
value and holds the current value for one signed-in user.  Replacing the
value clears the manager's decision cache first and then swaps the
reference under a lock, so no check can combine the new identity with
decisions cached for the old one.

Example
-------
::

    session = PermissionSession(manager)
    session.replace(build_user_permissions("u-1", "editor", manager.hierarchy))
    session.has_permission("articles", "update").allowed   # True
    session.clear()                                         # logout
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Sequence

from cms_access_control.audit.events import PermissionEvent, PermissionEventType
from cms_access_control.config.tables import MenuItem, RoleHierarchy
from cms_access_control.manager import PermissionManager
from cms_access_control.permissions.model import (
    Permission,
    PermissionCheckOptions,
    PermissionCheckResult,
    PermissionContext,
    Role,
    UserPermissions,
)

logger = logging.getLogger(__name__)

_NO_USER = PermissionCheckResult(allowed=False, reason="No authenticated user")


def build_user_permissions(
    user_id: str,
    role_name: str,
    hierarchy: RoleHierarchy,
    custom_permissions: Sequence[Permission] = (),
    denied_permissions: Sequence[Permission] = (),
    display_name: str | None = None,
) -> UserPermissions:
    """Resolve a role claim into a fresh :class:`UserPermissions`.

    An unknown role name yields a placeholder role with level 0 and no
    permissions.
    """
    role = hierarchy.get_role(role_name)
    if role is None:
        logger.warning("Unknown role %r for user %s; granting no role permissions", role_name, user_id)
        role = Role(
            id=role_name,
            name=role_name,
            display_name=display_name or role_name,
            level=0,
        )
    return UserPermissions(
        user_id=user_id,
        role=role,
        custom_permissions=tuple(custom_permissions),
        denied_permissions=tuple(denied_permissions),
    )


def has_role(user_permissions: UserPermissions | None, required: str | Sequence[str]) -> bool:
    """Return True if the user's role name is ``required`` (or one of them)."""
    if user_permissions is None:
        return False
    name = user_permissions.role.name
    if isinstance(required, str):
        return name == required
    return name in required


class PermissionSession:
    """Holds the current :class:`UserPermissions` for one user."""

    def __init__(self, manager: PermissionManager) -> None:
        self._manager = manager
        self._current: UserPermissions | None = None
        self._lock = threading.Lock()

    @property
    def current(self) -> UserPermissions | None:
        return self._current

    def replace(self, user_permissions: UserPermissions) -> None:
        """Swap in a new permission set (login, refresh or role change).

        Emits ``role_changed`` when the role name differs from the previous
        one, ``permission_updated`` otherwise.
        """
        with self._lock:
            previous = self._current
            self._manager.clear_cache()
            self._current = user_permissions

        old_role = previous.role.name if previous is not None else None
        new_role = user_permissions.role.name
        if old_role != new_role:
            event_type = PermissionEventType.ROLE_CHANGED
        else:
            event_type = PermissionEventType.PERMISSION_UPDATED
        logger.info(
            "Permissions replaced for user %s (role %s -> %s)",
            user_permissions.user_id,
            old_role,
            new_role,
        )
        self._manager.emit_event(
            PermissionEvent(
                type=event_type,
                user_id=user_permissions.user_id,
                details={"previous_role": old_role, "role": new_role},
            )
        )

    def clear(self) -> None:
        """Discard the permission set (logout)."""
        with self._lock:
            self._current = None
            self._manager.clear_cache()

    # ------------------------------------------------------------------
    # Delegating checks
    # ------------------------------------------------------------------

    def has_permission(
        self,
        resource: str,
        action: str,
        options: PermissionCheckOptions | None = None,
    ) -> PermissionCheckResult:
        current = self._current
        if current is None:
            return _NO_USER
        return self._manager.has_permission(current, resource, action, options)

    def can_access_page(
        self,
        page_path: str,
        options: PermissionCheckOptions | None = None,
    ) -> PermissionCheckResult:
        current = self._current
        if current is None:
            return _NO_USER
        return self._manager.can_access_page(current, page_path, options)

    def can_perform_operation(
        self,
        operation: str,
        context: PermissionContext | None = None,
    ) -> PermissionCheckResult:
        current = self._current
        if current is None:
            return _NO_USER
        return self._manager.can_perform_operation(current, operation, context)

    def get_resource_permissions(self, resource: str) -> list[str]:
        current = self._current
        if current is None:
            return []
        return self._manager.get_resource_permissions(current, resource)

    def get_accessible_menu_items(self, items: Sequence[MenuItem] | None = None) -> list[MenuItem]:
        current = self._current
        if current is None:
            return []
        return self._manager.get_accessible_menu_items(current, items)

    def has_role(self, required: str | Sequence[str]) -> bool:
        return has_role(self._current, required)
