"""Value types for the permission model.

Permissions, roles and a user's resolved permission set are plain frozen
dataclasses.  They carry no decision logic; the policy evaluator interprets
them.  Collections are stored as tuples so a value can be shared between
concurrent readers without anyone mutating it in place.

Example
-------
::

    read_articles = Permission(
        id="articles.read",
        name="Read articles",
        resource="articles",
        action="read",
    )
    editor = Role(
        id="editor",
        name="editor",
        display_name="Editor",
        level=60,
        permissions=(read_articles,),
    )
    user = UserPermissions(user_id="u-1", role=editor)
"""
from __future__ import annotations

import itertools
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Callable, Literal, Protocol, Sequence, Union, runtime_checkable

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

WILDCARD: str = "*"

PermissionAction = Literal["create", "read", "update", "delete", "*"]

CRUD_ACTIONS: tuple[str, ...] = ("create", "read", "update", "delete")

ConditionOperator = Literal["eq", "ne", "in", "nin", "gt", "lt", "gte", "lte"]

_KNOWN_OPERATORS: frozenset[str] = frozenset(
    ["eq", "ne", "in", "nin", "gt", "lt", "gte", "lte"]
)

ScalarValue = Union[str, int, float, bool, None]
ConditionValue = Union[ScalarValue, tuple[ScalarValue, ...]]

PermissionContext = Mapping[str, object]
"""Request-scoped data passed to condition evaluation only."""


@runtime_checkable
class CustomPredicate(Protocol):
    """A named, caller-supplied condition.

    Implementations must return a ``bool`` and should not raise; a raised
    exception or a non-bool return is treated as a failed condition.
    """

    def evaluate(self, context: PermissionContext) -> bool:
        ...


PredicateLike = Union[CustomPredicate, Callable[[PermissionContext], bool]]

_revisions = itertools.count(1)


def _is_scalar(value: object) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def _normalise_value(value: object) -> ConditionValue:
    """Coerce a condition value into the supported tagged union."""
    if _is_scalar(value):
        return value  # type: ignore[return-value]
    if isinstance(value, (list, tuple)):
        if not all(_is_scalar(item) for item in value):
            raise ValueError(
                f"Condition list values must hold scalars only; got {value!r}."
            )
        return tuple(value)
    raise ValueError(
        f"Condition value must be str, int, float, bool, None or a list of those; "
        f"got {type(value).__name__}."
    )


# ---------------------------------------------------------------------------
# Condition
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Condition:
    """A contextual predicate attached to a permission.

    Exactly one form is populated: either ``field``/``operator``/``value``
    or ``custom``.

    Attributes
    ----------
    field:
        Dot-separated path into the request context (e.g. ``"resource.owner_id"``).
    operator:
        One of ``eq``, ``ne``, ``in``, ``nin``, ``gt``, ``lt``, ``gte``, ``lte``.
    value:
        The expected value.  Lists are stored as tuples.
    custom:
        A :class:`CustomPredicate` or a plain ``(context) -> bool`` callable.
    name:
        Optional label used in reasons and logs for custom predicates.
    """

    field: str | None = None
    operator: ConditionOperator | None = None
    value: ConditionValue = None
    custom: PredicateLike | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        has_field_rule = self.field is not None or self.operator is not None
        if has_field_rule and self.custom is not None:
            raise ValueError("Condition must be field-based or custom, not both.")
        if not has_field_rule and self.custom is None:
            raise ValueError("Condition needs either field/operator or custom.")
        if self.custom is not None:
            if not callable(self.custom) and not isinstance(self.custom, CustomPredicate):
                raise ValueError("Condition.custom must be callable or define evaluate().")
            return
        if not self.field:
            raise ValueError("Condition.field must not be empty.")
        if self.operator not in _KNOWN_OPERATORS:
            raise ValueError(
                f"Unknown condition operator {self.operator!r}. "
                f"Known operators: {sorted(_KNOWN_OPERATORS)}."
            )
        object.__setattr__(self, "value", _normalise_value(self.value))

    @property
    def is_custom(self) -> bool:
        return self.custom is not None

    @property
    def label(self) -> str:
        """Short identifier used in decision reasons."""
        if self.custom is not None:
            return self.name or "custom"
        return str(self.field)


# ---------------------------------------------------------------------------
# Permission / Role / UserPermissions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Permission:
    """A grantable capability on a resource type.

    ``resource`` and ``action`` may each be :data:`WILDCARD`.
    """

    id: str
    name: str
    resource: str
    action: str
    conditions: tuple[Condition, ...] = field(default_factory=tuple)
    description: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.conditions, tuple):
            object.__setattr__(self, "conditions", tuple(self.conditions))

    def matches(self, resource: str, action: str) -> bool:
        """Return True when this permission covers ``(resource, action)``.

        Conditions are not consulted here.
        """
        resource_match = self.resource == resource or self.resource == WILDCARD
        action_match = self.action == action or self.action == WILDCARD
        return resource_match and action_match


@dataclass(frozen=True)
class Role:
    """A named bundle of permissions with a hierarchy level."""

    id: str
    name: str
    display_name: str
    level: int
    permissions: tuple[Permission, ...] = field(default_factory=tuple)
    is_active: bool = True
    description: str | None = None

    def __post_init__(self) -> None:
        if isinstance(self.permissions, list):
            object.__setattr__(self, "permissions", tuple(self.permissions))


@dataclass(frozen=True)
class UserPermissions:
    """The resolved permission set for one user.

    A new instance replaces the old one on every refresh; it is never
    mutated in place.  Every instance gets a process-unique ``revision``
    that the decision cache uses to keep decisions from different
    permission sets apart.
    """

    user_id: str
    role: Role
    custom_permissions: tuple[Permission, ...] = field(default_factory=tuple)
    denied_permissions: tuple[Permission, ...] = field(default_factory=tuple)
    revision: int = field(init=False, compare=False, repr=False, default=0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "revision", next(_revisions))
        for attr in ("custom_permissions", "denied_permissions"):
            value = getattr(self, attr)
            if isinstance(value, list):
                object.__setattr__(self, attr, tuple(value))


# ---------------------------------------------------------------------------
# Check options / result
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PermissionCheckOptions:
    """Configuration for a single permission check.

    Attributes
    ----------
    cache:
        Opt in to memoisation of the decision.
    strict:
        When no rule matches, deny regardless of ``fallback``.
    fallback:
        Outcome when no rule matches and ``strict`` is off.
    context:
        Request context for condition evaluation.
    """

    cache: bool = False
    strict: bool = False
    fallback: bool = False
    context: PermissionContext | None = None


@dataclass(frozen=True)
class PermissionCheckResult:
    """Outcome of a permission check.

    ``reason`` is meant for humans (audit, UI messages) and is not parsed.
    """

    allowed: bool
    reason: str = ""
    conditions: tuple[Condition, ...] = field(default_factory=tuple)

    def __bool__(self) -> bool:
        return self.allowed


# ---------------------------------------------------------------------------
# Validation / merging
# ---------------------------------------------------------------------------


def _validate_permission(permission: object) -> bool:
    return all(
        bool(getattr(permission, attr, None))
        for attr in ("id", "name", "resource", "action")
    )


def validate_role_permissions(role: object) -> bool:
    """Return True if ``role`` is structurally usable.

    Checks that the role has ``id``, ``name`` and ``display_name``, that
    ``permissions`` is a list or tuple, and that every permission has
    ``id``, ``name``, ``resource`` and ``action`` populated.  Never raises.
    """
    try:
        if not (
            getattr(role, "id", None)
            and getattr(role, "name", None)
            and getattr(role, "display_name", None)
        ):
            return False
        permissions = getattr(role, "permissions", None)
        if not isinstance(permissions, (list, tuple)):
            return False
        return all(_validate_permission(p) for p in permissions)
    except Exception:  # noqa: BLE001 - validation must not raise
        logger.exception("Role validation failed unexpectedly")
        return False


def merge_permissions(
    first: Sequence[Permission],
    second: Sequence[Permission],
) -> list[Permission]:
    """Return the union of two permission lists keyed by ``id``.

    Entries from ``second`` replace same-id entries from ``first`` in place;
    new ids from ``second`` are appended in their original order.
    """
    merged: dict[str, Permission] = {}
    for permission in first:
        merged[permission.id] = permission
    for permission in second:
        merged[permission.id] = permission
    return list(merged.values())
