"""Operation-access adapter: operation name -> strict (resource, action) check."""
from __future__ import annotations

from cms_access_control.config.tables import AccessTables
from cms_access_control.permissions.evaluator import PolicyEvaluator
from cms_access_control.permissions.model import (
    PermissionCheckOptions,
    PermissionCheckResult,
    PermissionContext,
    UserPermissions,
)


class OperationAccess:
    """Decides whether a user may perform a named operation.

    Operations are deny-by-default: the check always runs in strict mode,
    and unknown operation names are denied.
    """

    def __init__(self, evaluator: PolicyEvaluator, tables: AccessTables) -> None:
        self._evaluator = evaluator
        self._tables = tables

    def can_perform_operation(
        self,
        user_permissions: UserPermissions,
        operation: str,
        context: PermissionContext | None = None,
    ) -> PermissionCheckResult:
        mapping = self._tables.get_operation_permission(operation)
        if mapping is None:
            return PermissionCheckResult(
                allowed=False, reason="Operation permission not configured"
            )
        return self._evaluator.has_permission(
            user_permissions,
            mapping.resource,
            mapping.action,
            PermissionCheckOptions(strict=True, context=context),
        )
