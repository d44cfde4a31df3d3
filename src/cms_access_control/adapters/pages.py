"""Page-access adapter: URL path -> role gate -> (resource, action) check."""
from __future__ import annotations

import logging

from cms_access_control.config.tables import AccessTables
from cms_access_control.permissions.evaluator import PolicyEvaluator
from cms_access_control.permissions.model import (
    PermissionCheckOptions,
    PermissionCheckResult,
    UserPermissions,
)

logger = logging.getLogger(__name__)


class PageAccess:
    """Decides whether a user may open a page.

    Unmapped paths return ``options.fallback`` with reason
    ``"Page permission not configured"``.  A page's allowed/denied role
    lists are applied first and deny outright; otherwise the page's
    resource/action pair is checked by the evaluator.
    """

    def __init__(self, evaluator: PolicyEvaluator, tables: AccessTables) -> None:
        self._evaluator = evaluator
        self._tables = tables

    def can_access_page(
        self,
        user_permissions: UserPermissions,
        page_path: str,
        options: PermissionCheckOptions | None = None,
    ) -> PermissionCheckResult:
        opts = options or PermissionCheckOptions()
        page = self._tables.get_page_permission(page_path)
        if page is None:
            logger.debug("No page permission configured for %s", page_path)
            return PermissionCheckResult(
                allowed=bool(opts.fallback), reason="Page permission not configured"
            )

        role = getattr(user_permissions, "role", None)
        role_name = getattr(role, "name", None)
        if role_name is None:
            return PermissionCheckResult(allowed=False, reason="Invalid user permissions: no role")

        if page.allowed_roles is not None and role_name not in page.allowed_roles:
            return PermissionCheckResult(
                allowed=False, reason=f"Role {role_name} not in allowed roles"
            )
        if page.denied_roles is not None and role_name in page.denied_roles:
            return PermissionCheckResult(allowed=False, reason=f"Role {role_name} is denied")

        return self._evaluator.has_permission(user_permissions, page.resource, page.action, opts)
