"""Condition evaluator for contextual permission predicates.

A :class:`~cms_access_control.permissions.model.Condition` is either a
field comparison (``field``/``operator``/``value``) resolved against the
request context, or a caller-supplied custom predicate.  Evaluation is
fail-closed: a missing field, an incomparable value, a raising predicate or
a non-bool predicate result all count as a failed condition.

Example
-------
>>> evaluator = ConditionEvaluator()
>>> owner_only = Condition(field="resource.owner_id", operator="eq", value="u-1")
>>> evaluator.evaluate(owner_only, {"resource": {"owner_id": "u-1"}})
True
"""
from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from cms_access_control.permissions.model import (
    Condition,
    CustomPredicate,
    PermissionCheckResult,
    PermissionContext,
)

logger = logging.getLogger(__name__)


class _Missing:
    """Marker for a context path that does not resolve."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "<missing>"


MISSING = _Missing()


def resolve_field(context: object, field_path: str) -> object:
    """Resolve a dot-separated path from a nested mapping.

    Returns :data:`MISSING` when any segment is absent or a non-mapping is
    reached before the path ends.
    """
    current: object = context
    for part in field_path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return MISSING
        current = current[part]
    return current


def _strict_equal(actual: object, expected: object) -> bool:
    """Equality without cross-type coercion (``1`` is not ``True``)."""
    if actual is MISSING:
        return False
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if isinstance(actual, (int, float)) and isinstance(expected, (int, float)):
        return actual == expected
    return type(actual) is type(expected) and actual == expected


def _comparable(actual: object, expected: object) -> bool:
    """Return True when ``actual`` and ``expected`` have a defined ordering."""
    if isinstance(actual, bool) or isinstance(expected, bool):
        return False
    if isinstance(actual, (int, float)) and isinstance(expected, (int, float)):
        return True
    return isinstance(actual, str) and isinstance(expected, str)


class ConditionEvaluator:
    """Evaluates single conditions and condition lists against a context."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def evaluate(self, condition: Condition, context: PermissionContext) -> bool:
        """Return True if ``condition`` holds for ``context``.

        Never raises.
        """
        if condition.custom is not None:
            return self._evaluate_custom(condition, context)
        if condition.field is None or condition.operator is None:
            logger.warning("Condition without field or operator treated as failed")
            return False
        actual = resolve_field(context, condition.field)
        return self._apply(condition.operator, actual, condition.value)

    def check_conditions(
        self,
        conditions: Sequence[Condition] | None,
        context: PermissionContext | None,
    ) -> PermissionCheckResult:
        """Evaluate a condition list with AND semantics.

        An empty list always passes.  A non-empty list with no context fails
        closed.
        """
        if not conditions:
            return PermissionCheckResult(allowed=True, reason="No conditions to check")

        if context is None:
            return PermissionCheckResult(
                allowed=False,
                reason="Context required for condition check",
                conditions=tuple(conditions),
            )

        for condition in conditions:
            if not self.evaluate(condition, context):
                return PermissionCheckResult(
                    allowed=False,
                    reason=f"Condition failed: {condition.label}",
                    conditions=(condition,),
                )

        return PermissionCheckResult(
            allowed=True,
            reason="All conditions passed",
            conditions=tuple(conditions),
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _evaluate_custom(self, condition: Condition, context: PermissionContext) -> bool:
        predicate = condition.custom
        try:
            if isinstance(predicate, CustomPredicate):
                outcome = predicate.evaluate(context)
            else:
                outcome = predicate(context)  # type: ignore[misc]
        except Exception:  # noqa: BLE001 - predicates are caller code
            logger.exception("Custom condition %r raised; treating as failed", condition.label)
            return False

        if not isinstance(outcome, bool):
            logger.warning(
                "Custom condition %r returned %s instead of bool; treating as failed",
                condition.label,
                type(outcome).__name__,
            )
            return False
        return outcome

    def _apply(self, operator: str, actual: object, expected: object) -> bool:
        """Apply a comparison operator to a resolved value."""
        match operator:
            case "eq":
                return _strict_equal(actual, expected)
            case "ne":
                return not _strict_equal(actual, expected)
            case "in":
                if not isinstance(expected, (list, tuple)):
                    return False
                return any(_strict_equal(actual, item) for item in expected)
            case "nin":
                if not isinstance(expected, (list, tuple)):
                    return False
                return not any(_strict_equal(actual, item) for item in expected)
            case "gt" | "lt" | "gte" | "lte":
                if not _comparable(actual, expected):
                    return False
                return self._compare(operator, actual, expected)
            case _:
                logger.warning("Unknown condition operator: %s", operator)
                return False

    def _compare(self, operator: str, actual: object, expected: object) -> bool:
        try:
            match operator:
                case "gt":
                    return actual > expected  # type: ignore[operator]
                case "lt":
                    return actual < expected  # type: ignore[operator]
                case "gte":
                    return actual >= expected  # type: ignore[operator]
                case _:
                    return actual <= expected  # type: ignore[operator]
        except TypeError:
            return False
