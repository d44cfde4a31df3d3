"""Lookup tables that map UI concepts onto (resource, action) pairs.

Pages (URL paths), operations (named user actions) and menu entries are
configured statically and consulted by the access adapters.  The role
hierarchy answers "does role A outrank role B" from role levels.
"""
from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from cms_access_control.permissions.model import Role

# ---------------------------------------------------------------------------
# Table rows
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PagePermission:
    """Access requirements for one page path.

    ``allowed_roles`` / ``denied_roles`` gate the page by role name before
    the resource/action check runs.  ``None`` means "no role gate".
    """

    path: str
    resource: str
    action: str
    allowed_roles: tuple[str, ...] | None = None
    denied_roles: tuple[str, ...] | None = None

    def __post_init__(self) -> None:
        for attr in ("allowed_roles", "denied_roles"):
            value = getattr(self, attr)
            if value is not None and not isinstance(value, tuple):
                object.__setattr__(self, attr, tuple(value))

    def covers(self, path: str) -> bool:
        """Return True for the exact path or any sub-path below it."""
        if path == self.path:
            return True
        prefix = self.path.rstrip("/")
        return path.startswith(prefix + "/")


@dataclass(frozen=True)
class OperationPermission:
    """Maps a named operation (e.g. ``"publish_article"``) to a pair."""

    operation: str
    resource: str
    action: str


@dataclass(frozen=True)
class MenuItem:
    """One node of the navigation menu tree."""

    path: str
    resource: str
    action: str
    required_role: str | None = None
    children: tuple[MenuItem, ...] = field(default_factory=tuple)
    title: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.children, tuple):
            object.__setattr__(self, "children", tuple(self.children))


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


class AccessTables:
    """Page, operation and menu configuration.

    Parameters
    ----------
    pages:
        Page permission rows.  Lookup prefers an exact path, then the
        longest configured prefix.
    operations:
        Operation rows keyed by ``operation`` name; later rows win.
    menus:
        The top-level menu tree.
    """

    def __init__(
        self,
        pages: Iterable[PagePermission] = (),
        operations: Iterable[OperationPermission] = (),
        menus: Iterable[MenuItem] = (),
    ) -> None:
        self._pages: tuple[PagePermission, ...] = tuple(pages)
        self._operations: dict[str, OperationPermission] = {
            op.operation: op for op in operations
        }
        self._menus: tuple[MenuItem, ...] = tuple(menus)

    def get_page_permission(self, path: str) -> PagePermission | None:
        """Return the page row governing ``path``, or None if unmapped."""
        best: PagePermission | None = None
        for page in self._pages:
            if page.path == path:
                return page
            if page.covers(path) and (best is None or len(page.path) > len(best.path)):
                best = page
        return best

    def get_operation_permission(self, operation: str) -> OperationPermission | None:
        return self._operations.get(operation)

    @property
    def pages(self) -> tuple[PagePermission, ...]:
        return self._pages

    @property
    def operations(self) -> tuple[OperationPermission, ...]:
        return tuple(self._operations.values())

    @property
    def menus(self) -> tuple[MenuItem, ...]:
        return self._menus


class RoleHierarchy:
    """Role lookup and level comparison.

    Example
    -------
    >>> hierarchy = RoleHierarchy(roles)
    >>> hierarchy.is_higher_role("admin", "editor")
    True
    """

    def __init__(self, roles: Sequence[Role] = ()) -> None:
        self._roles: dict[str, Role] = {role.name: role for role in roles}

    def get_role(self, name: str) -> Role | None:
        return self._roles.get(name)

    def level_of(self, name: str) -> int | None:
        role = self._roles.get(name)
        return role.level if role is not None else None

    def is_higher_role(self, first: str, second: str) -> bool:
        """Return True if ``first`` strictly outranks ``second``.

        Unknown role names never outrank anything.
        """
        first_level = self.level_of(first)
        second_level = self.level_of(second)
        if first_level is None or second_level is None:
            return False
        return first_level > second_level

    @property
    def roles(self) -> tuple[Role, ...]:
        return tuple(self._roles.values())

    def __contains__(self, name: object) -> bool:
        return name in self._roles
