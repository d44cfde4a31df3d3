"""Tests for AccessConfigLoader and config serialisation."""
from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from cms_access_control.config.defaults import default_access_config
from cms_access_control.config.loader import (
    AccessConfig,
    AccessConfigError,
    AccessConfigLoader,
    config_to_dict,
)
from cms_access_control.permissions.model import PermissionContext

_VALID_CONFIG: dict[str, object] = {
    "version": "1",
    "settings": {"super_admin_role": "root", "audit_max_entries": 50, "audit_trim_to": 10},
    "permissions": [
        {"id": "articles.read", "name": "Read articles", "resource": "articles", "action": "read"},
        {
            "id": "articles.update.own",
            "name": "Edit own articles",
            "resource": "articles",
            "action": "update",
            "conditions": [
                {"field": "resource.owner_id", "operator": "eq", "value": "u-1"},
                {"field": "resource.status", "operator": "in", "value": ["draft", "review"]},
            ],
        },
    ],
    "roles": [
        {"id": "root", "name": "root", "display_name": "Root", "level": 100, "permissions": "*"},
        {
            "id": "editor",
            "name": "editor",
            "display_name": "Editor",
            "level": 60,
            "permissions": ["articles.read", "articles.update.own"],
        },
    ],
    "pages": [
        {"path": "/admin/articles", "resource": "articles", "action": "read", "allowed_roles": ["editor"]},
    ],
    "operations": [{"operation": "publish_article", "resource": "articles", "action": "update"}],
    "menus": [
        {
            "path": "/admin/articles",
            "resource": "articles",
            "action": "read",
            "title": "Articles",
            "children": [{"path": "/admin/articles/edit", "resource": "articles", "action": "update"}],
        }
    ],
}


class IsOwner:
    def evaluate(self, context: PermissionContext) -> bool:
        return True


@pytest.fixture()
def loader() -> AccessConfigLoader:
    return AccessConfigLoader(predicates={"is_owner": IsOwner()})


# ---------------------------------------------------------------------------
# load_from_dict
# ---------------------------------------------------------------------------


class TestLoadFromDict:
    def test_returns_access_config(self, loader: AccessConfigLoader) -> None:
        assert isinstance(loader.load_from_dict(_VALID_CONFIG), AccessConfig)

    def test_settings_applied(self, loader: AccessConfigLoader) -> None:
        config = loader.load_from_dict(_VALID_CONFIG)
        assert config.settings.super_admin_role == "root"
        assert config.settings.audit_max_entries == 50

    def test_wildcard_role_gets_all_permissions(self, loader: AccessConfigLoader) -> None:
        config = loader.load_from_dict(_VALID_CONFIG)
        root = config.hierarchy.get_role("root")
        assert root is not None
        assert len(root.permissions) == 2

    def test_role_references_resolved(self, loader: AccessConfigLoader) -> None:
        editor = loader.load_from_dict(_VALID_CONFIG).hierarchy.get_role("editor")
        assert editor is not None
        assert [p.id for p in editor.permissions] == ["articles.read", "articles.update.own"]

    def test_conditions_built(self, loader: AccessConfigLoader) -> None:
        config = loader.load_from_dict(_VALID_CONFIG)
        own = next(p for p in config.permissions if p.id == "articles.update.own")
        assert len(own.conditions) == 2
        assert own.conditions[1].value == ("draft", "review")

    def test_tables_built(self, loader: AccessConfigLoader) -> None:
        config = loader.load_from_dict(_VALID_CONFIG)
        assert config.tables.get_page_permission("/admin/articles") is not None
        assert config.tables.get_operation_permission("publish_article") is not None
        assert config.tables.menus[0].children[0].path == "/admin/articles/edit"

    def test_numeric_version_accepted(self, loader: AccessConfigLoader) -> None:
        config = loader.load_from_dict({**_VALID_CONFIG, "version": 1})
        assert len(config.roles) == 2

    def test_empty_document(self, loader: AccessConfigLoader) -> None:
        config = loader.load_from_dict({})
        assert config.roles == ()
        assert config.settings.super_admin_role == "super_admin"

    def test_custom_predicate_resolved(self, loader: AccessConfigLoader) -> None:
        data = {
            "permissions": [
                {
                    "id": "p",
                    "name": "p",
                    "resource": "articles",
                    "action": "update",
                    "conditions": [{"custom": "is_owner"}],
                }
            ]
        }
        condition = loader.load_from_dict(data).permissions[0].conditions[0]
        assert condition.is_custom is True
        assert condition.label == "is_owner"


class TestLoadErrors:
    def test_unsupported_version(self, loader: AccessConfigLoader) -> None:
        with pytest.raises(AccessConfigError, match="Unsupported config version"):
            loader.load_from_dict({"version": "2"})

    def test_unknown_permission_reference(self, loader: AccessConfigLoader) -> None:
        data = {"roles": [{"id": "r", "name": "r", "display_name": "R", "permissions": ["missing"]}]}
        with pytest.raises(AccessConfigError, match="unknown permissions"):
            loader.load_from_dict(data)

    def test_bad_permission_string(self, loader: AccessConfigLoader) -> None:
        data = {"roles": [{"id": "r", "name": "r", "display_name": "R", "permissions": "all"}]}
        with pytest.raises(AccessConfigError):
            loader.load_from_dict(data)

    def test_unknown_custom_predicate(self) -> None:
        data = {
            "permissions": [
                {"id": "p", "name": "p", "resource": "a", "action": "read", "conditions": [{"custom": "nope"}]}
            ]
        }
        with pytest.raises(AccessConfigError, match="Unknown custom predicate"):
            AccessConfigLoader().load_from_dict(data)

    def test_unknown_operator(self, loader: AccessConfigLoader) -> None:
        data = {
            "permissions": [
                {
                    "id": "p",
                    "name": "p",
                    "resource": "a",
                    "action": "read",
                    "conditions": [{"field": "x", "operator": "like", "value": "a"}],
                }
            ]
        }
        with pytest.raises(AccessConfigError, match="Unknown condition operator"):
            loader.load_from_dict(data)

    def test_missing_required_field(self, loader: AccessConfigLoader) -> None:
        with pytest.raises(AccessConfigError, match="Invalid access config"):
            loader.load_from_dict({"permissions": [{"id": "p", "resource": "a", "action": "read"}]})

    def test_invalid_settings(self, loader: AccessConfigLoader) -> None:
        data = {"settings": {"audit_max_entries": 10, "audit_trim_to": 10}}
        with pytest.raises(AccessConfigError):
            loader.load_from_dict(data)

    def test_error_is_value_error(self) -> None:
        assert issubclass(AccessConfigError, ValueError)

    def test_error_carries_path(self) -> None:
        error = AccessConfigError("bad", config_path="/tmp/access.yaml")
        assert error.config_path == "/tmp/access.yaml"
        assert "[/tmp/access.yaml]" in str(error)


# ---------------------------------------------------------------------------
# load / load_string
# ---------------------------------------------------------------------------


class TestLoadFile:
    def test_load_file(self, loader: AccessConfigLoader, tmp_path: Path) -> None:
        path = tmp_path / "access.yaml"
        path.write_text(yaml.safe_dump(_VALID_CONFIG), encoding="utf-8")
        config = loader.load(path)
        assert len(config.permissions) == 2

    def test_missing_file(self, loader: AccessConfigLoader, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            loader.load(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, loader: AccessConfigLoader, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("roles: [unclosed", encoding="utf-8")
        with pytest.raises(AccessConfigError) as excinfo:
            loader.load(path)
        assert excinfo.value.config_path == str(path)

    def test_non_mapping_document(self, loader: AccessConfigLoader) -> None:
        with pytest.raises(AccessConfigError, match="mapping"):
            loader.load_string("- just\n- a list\n")

    def test_empty_string(self, loader: AccessConfigLoader) -> None:
        assert loader.load_string("").roles == ()

    def test_defaults(self, loader: AccessConfigLoader) -> None:
        assert len(loader.defaults().roles) == 4


# ---------------------------------------------------------------------------
# config_to_dict
# ---------------------------------------------------------------------------


class TestConfigToDict:
    def test_default_config_survives_yaml(self, loader: AccessConfigLoader) -> None:
        original = default_access_config()
        text = yaml.safe_dump(config_to_dict(original))
        reloaded = loader.load_string(text)
        assert [p.id for p in reloaded.permissions] == [p.id for p in original.permissions]
        assert [r.name for r in reloaded.roles] == [r.name for r in original.roles]
        assert reloaded.tables.pages == original.tables.pages
        assert reloaded.tables.menus == original.tables.menus

    def test_custom_condition_serialised_by_name(self, loader: AccessConfigLoader) -> None:
        data = {
            "permissions": [
                {"id": "p", "name": "p", "resource": "a", "action": "read", "conditions": [{"custom": "is_owner"}]}
            ]
        }
        dumped = config_to_dict(loader.load_from_dict(data))
        assert dumped["permissions"][0]["conditions"] == [{"custom": "is_owner"}]  # type: ignore[index]
