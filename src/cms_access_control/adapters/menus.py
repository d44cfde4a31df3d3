"""Menu filtering adapter.

Returns the part of a menu tree a user may see.  An item survives when its
``required_role`` (if any) is the user's role or is outranked by it, and
the evaluator allows its resource/action pair.  Children are filtered
recursively and only under a surviving parent; a parent whose children are
all removed still survives with an empty ``children`` tuple.  The input
tree is never modified.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from typing import Callable

from cms_access_control.config.tables import MenuItem
from cms_access_control.permissions.evaluator import PolicyEvaluator
from cms_access_control.permissions.model import PermissionCheckOptions, UserPermissions

RoleComparator = Callable[[str, str], bool]


class MenuFilter:
    """Filters menu trees for a user.

    Parameters
    ----------
    evaluator:
        Evaluator used for each item's resource/action check.
    is_higher_role:
        ``(a, b) -> bool`` returning True when role ``a`` outranks ``b``.
    """

    def __init__(self, evaluator: PolicyEvaluator, is_higher_role: RoleComparator) -> None:
        self._evaluator = evaluator
        self._is_higher_role = is_higher_role

    def get_accessible_menu_items(
        self,
        user_permissions: UserPermissions,
        items: Sequence[MenuItem],
    ) -> list[MenuItem]:
        visible: list[MenuItem] = []
        for item in items:
            if not self._is_visible(user_permissions, item):
                continue
            if item.children:
                item = replace(
                    item,
                    children=tuple(self.get_accessible_menu_items(user_permissions, item.children)),
                )
            visible.append(item)
        return visible

    def _is_visible(self, user_permissions: UserPermissions, item: MenuItem) -> bool:
        if item.required_role is not None and not self._meets_role(user_permissions, item.required_role):
            return False
        result = self._evaluator.has_permission(
            user_permissions,
            item.resource,
            item.action,
            PermissionCheckOptions(fallback=False),
        )
        return result.allowed

    def _meets_role(self, user_permissions: UserPermissions, required_role: str) -> bool:
        role_name = getattr(getattr(user_permissions, "role", None), "name", None)
        if role_name is None:
            return False
        return role_name == required_role or self._is_higher_role(role_name, required_role)
