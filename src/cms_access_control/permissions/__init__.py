"""Permission model, condition evaluation and the decision cache.

The policy evaluator itself lives in
:mod:`cms_access_control.permissions.evaluator`; it is re-exported from the
top-level package.

Example
-------
::

    from cms_access_control.permissions import Condition, Permission

    own_articles = Permission(
        id="articles.update.own",
        name="Edit own articles",
        resource="articles",
        action="update",
        conditions=(Condition(field="resource.owner_id", operator="eq", value="u-1"),),
    )
"""
from __future__ import annotations

from cms_access_control.permissions.cache import DecisionCache, hash_context, make_cache_key
from cms_access_control.permissions.conditions import ConditionEvaluator, resolve_field
from cms_access_control.permissions.model import (
    CRUD_ACTIONS,
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

__all__ = [
    # Model
    "CRUD_ACTIONS",
    "WILDCARD",
    "Condition",
    "CustomPredicate",
    "Permission",
    "PermissionCheckOptions",
    "PermissionCheckResult",
    "Role",
    "UserPermissions",
    "merge_permissions",
    "validate_role_permissions",
    # Conditions
    "ConditionEvaluator",
    "resolve_field",
    # Cache
    "DecisionCache",
    "hash_context",
    "make_cache_key",
]
