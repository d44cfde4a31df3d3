"""Tests for OperationAccess."""
from __future__ import annotations

import pytest

from cms_access_control.adapters.operations import OperationAccess
from cms_access_control.config.tables import AccessTables, OperationPermission
from cms_access_control.permissions.evaluator import PolicyEvaluator
from cms_access_control.permissions.model import Condition, Permission, Role, UserPermissions


def _user(*permissions: Permission, role_name: str = "editor") -> UserPermissions:
    role = Role(id=role_name, name=role_name, display_name=role_name, level=60, permissions=permissions)
    return UserPermissions(user_id="u-1", role=role)


@pytest.fixture()
def evaluator() -> PolicyEvaluator:
    return PolicyEvaluator()


@pytest.fixture()
def operations(evaluator: PolicyEvaluator) -> OperationAccess:
    tables = AccessTables(
        operations=[
            OperationPermission("publish_article", "articles", "update"),
            OperationPermission("delete_course", "courses", "delete"),
        ]
    )
    return OperationAccess(evaluator, tables)


class TestOperationAccess:
    def test_unknown_operation_denied(self, operations: OperationAccess) -> None:
        result = operations.can_perform_operation(_user(), "launch_rocket")
        assert result.allowed is False
        assert result.reason == "Operation permission not configured"

    def test_granted_operation(self, operations: OperationAccess) -> None:
        user = _user(Permission(id="a.u", name="a.u", resource="articles", action="update"))
        assert operations.can_perform_operation(user, "publish_article").allowed is True

    def test_unmatched_operation_is_strict(self, operations: OperationAccess) -> None:
        result = operations.can_perform_operation(_user(), "delete_course")
        assert result.allowed is False
        assert "Strict mode" in result.reason

    def test_context_reaches_conditions(self, operations: OperationAccess) -> None:
        owner = Condition(field="resource.owner_id", operator="eq", value="u-1")
        user = _user(
            Permission(id="a.u.own", name="own", resource="articles", action="update", conditions=(owner,))
        )
        mine = operations.can_perform_operation(user, "publish_article", {"resource": {"owner_id": "u-1"}})
        theirs = operations.can_perform_operation(user, "publish_article", {"resource": {"owner_id": "u-2"}})
        assert mine.allowed is True
        assert theirs.allowed is False

    def test_super_admin_allowed(self, operations: OperationAccess) -> None:
        assert operations.can_perform_operation(_user(role_name="super_admin"), "delete_course").allowed

    def test_check_is_audited(self, operations: OperationAccess, evaluator: PolicyEvaluator) -> None:
        operations.can_perform_operation(_user(), "delete_course")
        assert evaluator.get_audit_logs()[-1].action == "courses:delete"
