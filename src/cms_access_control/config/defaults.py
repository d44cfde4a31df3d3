"""Built-in configuration for the admin content-management console.

Ten resource types each get create/read/update/delete permissions.  Four
roles are defined, from ``super_admin`` (level 100) down to ``viewer``
(level 20), together with the page, operation and menu tables used by the
admin UI.

Example
-------
>>> config = default_access_config()
>>> [r.name for r in config.roles]
['super_admin', 'admin', 'editor', 'viewer']
"""
from __future__ import annotations

from cms_access_control.config.loader import AccessConfig
from cms_access_control.config.settings import EngineSettings
from cms_access_control.config.tables import (
    AccessTables,
    MenuItem,
    OperationPermission,
    PagePermission,
)
from cms_access_control.permissions.model import CRUD_ACTIONS, Permission, Role

RESOURCES: tuple[str, ...] = (
    "dashboard",
    "courses",
    "teachers",
    "articles",
    "student-cases",
    "page-configs",
    "media",
    "users",
    "roles",
    "content-management",
)

_RESOURCE_LABELS: dict[str, str] = {
    "dashboard": "dashboard",
    "courses": "courses",
    "teachers": "teachers",
    "articles": "articles",
    "student-cases": "student cases",
    "page-configs": "page configurations",
    "media": "media files",
    "users": "user accounts",
    "roles": "roles",
    "content-management": "managed content",
}

_ACTION_VERBS: dict[str, str] = {
    "create": "Create",
    "read": "View",
    "update": "Edit",
    "delete": "Delete",
}

_EDITOR_RESOURCES: frozenset[str] = frozenset(
    ["courses", "teachers", "articles", "student-cases", "media", "content-management"]
)

_ALL_ROLES: tuple[str, ...] = ("super_admin", "admin", "editor", "viewer")
_WRITE_ROLES: tuple[str, ...] = ("super_admin", "admin", "editor")
_ADMIN_ROLES: tuple[str, ...] = ("super_admin", "admin")


def default_permissions() -> tuple[Permission, ...]:
    """Return the CRUD permission catalogue.

    The dashboard is read-only; every other resource has all four actions.
    """
    permissions: list[Permission] = []
    for resource in RESOURCES:
        actions = ("read",) if resource == "dashboard" else CRUD_ACTIONS
        for action in actions:
            label = _RESOURCE_LABELS[resource]
            permissions.append(
                Permission(
                    id=f"{resource}.{action}",
                    name=f"{_ACTION_VERBS[action]} {label}",
                    resource=resource,
                    action=action,
                )
            )
    return tuple(permissions)


def default_roles(permissions: tuple[Permission, ...] | None = None) -> tuple[Role, ...]:
    catalogue = permissions if permissions is not None else default_permissions()
    return (
        Role(
            id="super_admin",
            name="super_admin",
            display_name="Super administrator",
            level=100,
            permissions=catalogue,
            description="Holds every permission.",
        ),
        Role(
            id="admin",
            name="admin",
            display_name="Administrator",
            level=80,
            permissions=tuple(
                p for p in catalogue if p.id not in ("users.delete", "roles.delete")
            ),
            description="Manages content, pages and users; cannot delete users or roles.",
        ),
        Role(
            id="editor",
            name="editor",
            display_name="Editor",
            level=60,
            permissions=tuple(
                p
                for p in catalogue
                if p.id == "dashboard.read"
                or (p.resource in _EDITOR_RESOURCES and p.action != "delete")
            ),
            description="Creates and edits content; cannot delete.",
        ),
        Role(
            id="viewer",
            name="viewer",
            display_name="Viewer",
            level=20,
            permissions=tuple(p for p in catalogue if p.action == "read"),
            description="Read-only access.",
        ),
    )


def _page(path: str, resource: str, action: str, roles: tuple[str, ...]) -> PagePermission:
    return PagePermission(path=path, resource=resource, action=action, allowed_roles=roles)


def default_pages() -> tuple[PagePermission, ...]:
    pages: list[PagePermission] = [
        _page("/admin", "dashboard", "read", _ALL_ROLES),
        _page("/admin/dashboard", "dashboard", "read", _ALL_ROLES),
    ]
    for resource in ("courses", "teachers", "articles", "student-cases"):
        pages.append(_page(f"/admin/{resource}", resource, "read", _ALL_ROLES))
        pages.append(_page(f"/admin/{resource}/create", resource, "create", _WRITE_ROLES))
        pages.append(_page(f"/admin/{resource}/edit", resource, "update", _WRITE_ROLES))
    pages.extend(
        [
            _page("/admin/page-configs", "page-configs", "read", _ADMIN_ROLES),
            _page("/admin/page-configs/edit", "page-configs", "update", _ADMIN_ROLES),
            _page("/admin/media", "media", "read", _ALL_ROLES),
            _page("/admin/users", "users", "read", _ADMIN_ROLES),
            _page("/admin/users/create", "users", "create", _ADMIN_ROLES),
            _page("/admin/users/edit", "users", "update", _ADMIN_ROLES),
            _page("/admin/roles", "roles", "read", ("super_admin",)),
            _page("/admin/content-management", "content-management", "read", _ALL_ROLES),
        ]
    )
    return tuple(pages)


def default_operations() -> tuple[OperationPermission, ...]:
    return (
        OperationPermission("create_course", "courses", "create"),
        OperationPermission("update_course", "courses", "update"),
        OperationPermission("delete_course", "courses", "delete"),
        OperationPermission("publish_article", "articles", "update"),
        OperationPermission("upload_media", "media", "create"),
        OperationPermission("delete_media", "media", "delete"),
    )


def _section(resource: str, title: str, required_role: str | None = None) -> MenuItem:
    return MenuItem(
        path=f"/admin/{resource}",
        resource=resource,
        action="read",
        title=title,
        required_role=required_role,
        children=(
            MenuItem(
                path=f"/admin/{resource}/create",
                resource=resource,
                action="create",
                title="New",
            ),
        ),
    )


def default_menus() -> tuple[MenuItem, ...]:
    return (
        MenuItem(path="/admin/dashboard", resource="dashboard", action="read", title="Dashboard"),
        _section("courses", "Courses"),
        _section("teachers", "Teachers"),
        _section("articles", "Articles"),
        _section("student-cases", "Student cases"),
        MenuItem(
            path="/admin/page-configs",
            resource="page-configs",
            action="read",
            title="Page configuration",
            required_role="admin",
        ),
        MenuItem(path="/admin/media", resource="media", action="read", title="Media"),
        _section("users", "Users", required_role="admin"),
        MenuItem(
            path="/admin/roles",
            resource="roles",
            action="read",
            title="Roles",
            required_role="super_admin",
        ),
        MenuItem(
            path="/admin/content-management",
            resource="content-management",
            action="read",
            title="Content",
        ),
    )


def default_access_config(settings: EngineSettings | None = None) -> AccessConfig:
    """Assemble the complete built-in configuration."""
    permissions = default_permissions()
    return AccessConfig(
        settings=settings or EngineSettings(),
        permissions=permissions,
        roles=default_roles(permissions),
        tables=AccessTables(
            pages=default_pages(),
            operations=default_operations(),
            menus=default_menus(),
        ),
    )
