"""YAML access-control configuration loader with Pydantic v2 validation.

Schema
------
::

    version: "1"
    settings:
      super_admin_role: super_admin
      audit_max_entries: 1000
      audit_trim_to: 500
    permissions:
      - id: "articles.update"
        name: "Edit articles"
        resource: "articles"
        action: "update"
        conditions:
          - field: "resource.status"
            operator: "eq"
            value: "draft"
          - custom: "is_owner"
    roles:
      - id: "editor"
        name: "editor"
        display_name: "Editor"
        level: 60
        permissions: ["articles.update"]   # or "*" for every declared permission
    pages:
      - path: "/admin/articles"
        resource: "articles"
        action: "read"
        allowed_roles: ["admin", "editor"]
    operations:
      - operation: "publish_article"
        resource: "articles"
        action: "update"
    menus:
      - path: "/admin/articles"
        resource: "articles"
        action: "read"
        children:
          - path: "/admin/articles/create"
            resource: "articles"
            action: "create"

Custom conditions are referenced by name and resolved against the
predicate registry handed to the loader.

Example
-------
::

    loader = AccessConfigLoader(predicates={"is_owner": IsOwner()})
    config = loader.load(Path("access.yaml"))
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from cms_access_control.config.settings import EngineSettings
from cms_access_control.config.tables import (
    AccessTables,
    MenuItem,
    OperationPermission,
    PagePermission,
    RoleHierarchy,
)
from cms_access_control.permissions.model import (
    WILDCARD,
    Condition,
    Permission,
    PredicateLike,
    Role,
)

logger = logging.getLogger(__name__)

_SUPPORTED_VERSIONS: frozenset[str] = frozenset(["1", "1.0"])


class AccessConfigError(ValueError):
    """Raised when an access-control config is malformed or invalid.

    Attributes
    ----------
    config_path:
        The path to the config file that caused the error, if known.
    """

    def __init__(self, message: str, config_path: str | None = None) -> None:
        self.config_path = config_path
        prefix = f"[{config_path}] " if config_path else ""
        super().__init__(f"{prefix}{message}")


# ---------------------------------------------------------------------------
# Loaded configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccessConfig:
    """A fully built access-control configuration."""

    settings: EngineSettings = field(default_factory=EngineSettings)
    permissions: tuple[Permission, ...] = ()
    roles: tuple[Role, ...] = ()
    tables: AccessTables = field(default_factory=AccessTables)

    @property
    def hierarchy(self) -> RoleHierarchy:
        return RoleHierarchy(self.roles)


# ---------------------------------------------------------------------------
# YAML schema
# ---------------------------------------------------------------------------

ScalarOrList = Union[str, int, float, bool, None, list[Union[str, int, float, bool, None]]]


class ConditionSpec(BaseModel):
    model_config = {"extra": "forbid"}

    field: str | None = None
    operator: str | None = None
    value: ScalarOrList = None
    custom: str | None = None


class PermissionSpec(BaseModel):
    model_config = {"extra": "allow"}

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    resource: str = Field(min_length=1)
    action: str = Field(min_length=1)
    description: str | None = None
    conditions: list[ConditionSpec] = Field(default_factory=list)


class RoleSpec(BaseModel):
    model_config = {"extra": "allow"}

    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    display_name: str = Field(min_length=1)
    level: int = 0
    permissions: Union[str, list[str]] = Field(default_factory=list)
    is_active: bool = True
    description: str | None = None


class PageSpec(BaseModel):
    path: str = Field(min_length=1)
    resource: str
    action: str
    allowed_roles: list[str] | None = None
    denied_roles: list[str] | None = None


class OperationSpec(BaseModel):
    operation: str = Field(min_length=1)
    resource: str
    action: str


class MenuSpec(BaseModel):
    path: str = Field(min_length=1)
    resource: str
    action: str
    required_role: str | None = None
    title: str | None = None
    children: list[MenuSpec] = Field(default_factory=list)


class AccessConfigSpec(BaseModel):
    """Top-level document schema; unknown top-level keys are ignored."""

    model_config = {"extra": "allow"}

    version: str = Field(default="1")
    settings: EngineSettings = Field(default_factory=EngineSettings)
    permissions: list[PermissionSpec] = Field(default_factory=list)
    roles: list[RoleSpec] = Field(default_factory=list)
    pages: list[PageSpec] = Field(default_factory=list)
    operations: list[OperationSpec] = Field(default_factory=list)
    menus: list[MenuSpec] = Field(default_factory=list)

    @field_validator("version", mode="before")
    @classmethod
    def coerce_version(cls, value: object) -> str:
        return str(value)


# ---------------------------------------------------------------------------
# Loader
# ---------------------------------------------------------------------------


class AccessConfigLoader:
    """Loads :class:`AccessConfig` objects from YAML files, strings or dicts.

    Parameters
    ----------
    predicates:
        Named custom predicates that ``custom: <name>`` conditions refer to.
    """

    def __init__(self, predicates: Mapping[str, PredicateLike] | None = None) -> None:
        self._predicates: dict[str, PredicateLike] = dict(predicates or {})

    def load(self, config_path: str | Path) -> AccessConfig:
        """Load a configuration file.

        Raises
        ------
        FileNotFoundError
            If the file does not exist.
        AccessConfigError
            If the YAML cannot be parsed or the document is invalid.
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Access config not found: {config_path}")

        try:
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise AccessConfigError(f"Failed to parse YAML: {exc}", str(config_path)) from exc

        return self._build(raw, config_path=str(config_path))

    def load_string(self, yaml_content: str, config_path: str | None = None) -> AccessConfig:
        try:
            raw = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as exc:
            raise AccessConfigError(f"Failed to parse YAML string: {exc}", config_path) from exc
        return self._build(raw, config_path=config_path)

    def load_from_dict(
        self,
        config: Mapping[str, object],
        config_path: str | None = None,
    ) -> AccessConfig:
        return self._build(config, config_path=config_path)

    def defaults(self) -> AccessConfig:
        """Return the built-in admin CMS configuration."""
        from cms_access_control.config.defaults import default_access_config

        return default_access_config()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _build(self, raw: object, config_path: str | None) -> AccessConfig:
        if not isinstance(raw, Mapping):
            raise AccessConfigError("Access config must be a YAML mapping (dict).", config_path)

        try:
            spec = AccessConfigSpec.model_validate(dict(raw))
        except ValidationError as exc:
            raise AccessConfigError(f"Invalid access config: {exc}", config_path) from exc

        if spec.version not in _SUPPORTED_VERSIONS:
            raise AccessConfigError(
                f"Unsupported config version {spec.version!r}. "
                f"Supported: {sorted(_SUPPORTED_VERSIONS)}.",
                config_path,
            )

        permissions: dict[str, Permission] = {}
        for index, permission_spec in enumerate(spec.permissions):
            try:
                permissions[permission_spec.id] = self._build_permission(permission_spec)
            except ValueError as exc:
                raise AccessConfigError(
                    f"Error in permission at index {index} ({permission_spec.id}): {exc}",
                    config_path,
                ) from exc

        roles = tuple(self._build_role(r, permissions, config_path) for r in spec.roles)
        tables = AccessTables(
            pages=(
                PagePermission(
                    path=p.path,
                    resource=p.resource,
                    action=p.action,
                    allowed_roles=tuple(p.allowed_roles) if p.allowed_roles is not None else None,
                    denied_roles=tuple(p.denied_roles) if p.denied_roles is not None else None,
                )
                for p in spec.pages
            ),
            operations=(
                OperationPermission(operation=o.operation, resource=o.resource, action=o.action)
                for o in spec.operations
            ),
            menus=(self._build_menu(m) for m in spec.menus),
        )

        logger.info(
            "Loaded access config from %s: %d permissions, %d roles, %d pages, %d operations",
            config_path or "<dict>",
            len(permissions),
            len(roles),
            len(tables.pages),
            len(tables.operations),
        )
        return AccessConfig(
            settings=spec.settings,
            permissions=tuple(permissions.values()),
            roles=roles,
            tables=tables,
        )

    def _build_permission(self, spec: PermissionSpec) -> Permission:
        return Permission(
            id=spec.id,
            name=spec.name,
            resource=spec.resource,
            action=spec.action,
            conditions=tuple(self._build_condition(c) for c in spec.conditions),
            description=spec.description,
        )

    def _build_condition(self, spec: ConditionSpec) -> Condition:
        if spec.custom is not None:
            if spec.field is not None or spec.operator is not None:
                raise ValueError("Condition must be field-based or custom, not both.")
            predicate = self._predicates.get(spec.custom)
            if predicate is None:
                raise ValueError(
                    f"Unknown custom predicate {spec.custom!r}. "
                    f"Registered: {sorted(self._predicates)}."
                )
            return Condition(custom=predicate, name=spec.custom)
        return Condition(field=spec.field, operator=spec.operator, value=spec.value)  # type: ignore[arg-type]

    def _build_role(
        self,
        spec: RoleSpec,
        permissions: Mapping[str, Permission],
        config_path: str | None,
    ) -> Role:
        if isinstance(spec.permissions, str):
            if spec.permissions != WILDCARD:
                raise AccessConfigError(
                    f"Role {spec.name!r}: permissions must be a list of ids or '*'.",
                    config_path,
                )
            resolved = tuple(permissions.values())
        else:
            missing = [pid for pid in spec.permissions if pid not in permissions]
            if missing:
                raise AccessConfigError(
                    f"Role {spec.name!r} references unknown permissions: {missing}.",
                    config_path,
                )
            resolved = tuple(permissions[pid] for pid in spec.permissions)

        return Role(
            id=spec.id,
            name=spec.name,
            display_name=spec.display_name,
            level=spec.level,
            permissions=resolved,
            is_active=spec.is_active,
            description=spec.description,
        )

    def _build_menu(self, spec: MenuSpec) -> MenuItem:
        return MenuItem(
            path=spec.path,
            resource=spec.resource,
            action=spec.action,
            required_role=spec.required_role,
            title=spec.title,
            children=tuple(self._build_menu(child) for child in spec.children),
        )


# ---------------------------------------------------------------------------
# Serialisation
# ---------------------------------------------------------------------------


def _condition_to_dict(condition: Condition) -> dict[str, object]:
    if condition.custom is not None:
        return {"custom": condition.label}
    value = list(condition.value) if isinstance(condition.value, tuple) else condition.value
    return {"field": condition.field, "operator": condition.operator, "value": value}


def _menu_to_dict(item: MenuItem) -> dict[str, object]:
    data: dict[str, object] = {"path": item.path, "resource": item.resource, "action": item.action}
    if item.title is not None:
        data["title"] = item.title
    if item.required_role is not None:
        data["required_role"] = item.required_role
    if item.children:
        data["children"] = [_menu_to_dict(child) for child in item.children]
    return data


def config_to_dict(config: AccessConfig) -> dict[str, object]:
    """Return a YAML-ready dict that :class:`AccessConfigLoader` can read back."""
    permissions: list[dict[str, object]] = []
    for p in config.permissions:
        entry: dict[str, object] = {
            "id": p.id,
            "name": p.name,
            "resource": p.resource,
            "action": p.action,
        }
        if p.description:
            entry["description"] = p.description
        if p.conditions:
            entry["conditions"] = [_condition_to_dict(c) for c in p.conditions]
        permissions.append(entry)

    roles: list[dict[str, object]] = []
    for r in config.roles:
        roles.append(
            {
                "id": r.id,
                "name": r.name,
                "display_name": r.display_name,
                "level": r.level,
                "permissions": [p.id for p in r.permissions],
                "is_active": r.is_active,
                **({"description": r.description} if r.description else {}),
            }
        )

    pages: list[dict[str, object]] = []
    for page in config.tables.pages:
        page_entry: dict[str, object] = {
            "path": page.path,
            "resource": page.resource,
            "action": page.action,
        }
        if page.allowed_roles is not None:
            page_entry["allowed_roles"] = list(page.allowed_roles)
        if page.denied_roles is not None:
            page_entry["denied_roles"] = list(page.denied_roles)
        pages.append(page_entry)

    return {
        "version": "1",
        "settings": config.settings.model_dump(mode="json", exclude_none=True),
        "permissions": permissions,
        "roles": roles,
        "pages": pages,
        "operations": [
            {"operation": o.operation, "resource": o.resource, "action": o.action}
            for o in config.tables.operations
        ],
        "menus": [_menu_to_dict(m) for m in config.tables.menus],
    }
