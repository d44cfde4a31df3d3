#!/usr/bin/env python3
"""Example: Quickstart for cms-access-control

Minimal working example: sign a user in, check resources, pages and
operations, then read back the audit trail.

Usage:
    python examples/01_quickstart.py

Requirements:
    pip install cms-access-control
"""
from __future__ import annotations

import cms_access_control as cac


def main() -> None:
    print(f"cms-access-control version: {cac.__version__}")

    # Step 1: One manager per process, with the built-in admin console config
    manager = cac.PermissionManager()
    session = cac.PermissionSession(manager)
    session.replace(cac.build_user_permissions("u-42", "editor", manager.hierarchy))

    # Step 2: Resource checks
    for resource, action in [("articles", "update"), ("articles", "delete"), ("users", "read")]:
        result = session.has_permission(resource, action)
        status = "ALLOW" if result.allowed else "DENY "
        print(f"  [{status}] {resource}:{action}  ({result.reason})")

    # Step 3: Pages, operations and the menu
    print(f"  /admin/articles/edit -> {session.can_access_page('/admin/articles/edit').allowed}")
    print(f"  publish_article     -> {session.can_perform_operation('publish_article').allowed}")
    print(f"  menu                -> {[item.path for item in session.get_accessible_menu_items()]}")

    # Step 4: Audit trail
    print(f"\nAudit entries: {len(manager.get_audit_logs())}")
    for entry in manager.get_audit_logs(3):
        print(f"  {entry.timestamp:%H:%M:%S} {entry.user_id} {entry.action} {entry.result}")


if __name__ == "__main__":
    main()
