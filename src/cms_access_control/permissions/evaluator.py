"""Policy evaluator: the allow/deny decision for (user, resource, action).

Resolution order, first decisive step wins:

1. Super-admin shortcut: the super-admin role is allowed everything,
   explicit denials included.
2. Explicit denials: a matching denied permission whose conditions pass
   denies immediately.
3. Direct grants: role permissions, then custom permissions.
4. Wildcard grants: resource-wildcard permissions, then action-wildcard
   permissions.
5. No match: ``strict`` denies; otherwise ``fallback`` decides.

A permission matches ``(resource, action)`` when each field is equal or
``"*"``, and only counts once its own conditions pass against the context.

The evaluator owns its decision cache, audit log and event bus.  Every
check is recorded in the audit log and published as a
``permission_granted`` / ``permission_denied`` event, cached or not.
Decision operations never raise: malformed input and internal faults
degrade to ``allowed=False``.

Example
-------
::

    evaluator = PolicyEvaluator()
    result = evaluator.has_permission(user, "articles", "update")
    if not result:
        print(result.reason)
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from cms_access_control.audit.events import (
    PermissionEvent,
    PermissionEventBus,
    PermissionEventListener,
    PermissionEventType,
)
from cms_access_control.audit.log import PermissionAuditEntry, PermissionAuditLog
from cms_access_control.permissions.cache import DecisionCache, make_cache_key
from cms_access_control.permissions.conditions import ConditionEvaluator
from cms_access_control.permissions.model import (
    CRUD_ACTIONS,
    WILDCARD,
    Permission,
    PermissionCheckOptions,
    PermissionCheckResult,
    PermissionContext,
    UserPermissions,
)

logger = logging.getLogger(__name__)

DEFAULT_SUPER_ADMIN_ROLE: str = "super_admin"

_DEFAULT_OPTIONS = PermissionCheckOptions()


class PolicyEvaluator:
    """Decides permission checks over :class:`UserPermissions` values.

    Parameters
    ----------
    super_admin_role:
        Role name that bypasses every other rule.
    cache_enabled:
        When ``False`` the per-check ``cache`` option is ignored.
    audit_log:
        Audit buffer; a default-sized one is created when omitted.
    event_bus:
        Listener registry; a fresh one is created when omitted.
    condition_evaluator:
        Evaluator used for permission conditions.
    """

    def __init__(
        self,
        super_admin_role: str = DEFAULT_SUPER_ADMIN_ROLE,
        cache_enabled: bool = True,
        audit_log: PermissionAuditLog | None = None,
        event_bus: PermissionEventBus | None = None,
        condition_evaluator: ConditionEvaluator | None = None,
    ) -> None:
        self._super_admin_role = super_admin_role
        self._cache_enabled = cache_enabled
        self._cache = DecisionCache()
        self._audit_log = audit_log if audit_log is not None else PermissionAuditLog()
        self._events = event_bus if event_bus is not None else PermissionEventBus()
        self._conditions = condition_evaluator or ConditionEvaluator()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def has_permission(
        self,
        user_permissions: UserPermissions,
        resource: str,
        action: str,
        options: PermissionCheckOptions | None = None,
    ) -> PermissionCheckResult:
        """Decide whether ``user_permissions`` may perform ``action`` on ``resource``.

        Parameters
        ----------
        user_permissions:
            The user's resolved permission set.
        resource:
            Resource type tag, e.g. ``"articles"``.
        action:
            ``create``/``read``/``update``/``delete`` (or ``"*"``).
        options:
            Per-check options; defaults to non-strict, fallback deny, no cache.

        Returns
        -------
        PermissionCheckResult
        """
        opts = options if options is not None else _DEFAULT_OPTIONS
        user_id = str(getattr(user_permissions, "user_id", None) or "unknown")

        revision = int(getattr(user_permissions, "revision", 0) or 0)
        cache_key = self._cache_key(user_id, revision, resource, action, opts)
        generation = self._cache.generation
        result = self._cache.get(cache_key) if cache_key is not None else None
        if result is not None:
            logger.debug("Permission cache hit: %s", cache_key)
        else:
            result = self._evaluate_safely(user_permissions, resource, action, opts)
            if cache_key is not None:
                self._cache.set(cache_key, result, generation)

        self._record_decision(user_id, resource, action, result, opts.context)
        return result

    def get_resource_permissions(
        self,
        user_permissions: UserPermissions,
        resource: str,
    ) -> list[str]:
        """Return the CRUD actions the user may perform on ``resource``."""
        no_fallback = PermissionCheckOptions(fallback=False)
        return [
            action
            for action in CRUD_ACTIONS
            if self.has_permission(user_permissions, resource, action, no_fallback).allowed
        ]

    def has_any_permission(
        self,
        user_permissions: UserPermissions,
        checks: Sequence[tuple[str, str]],
        options: PermissionCheckOptions | None = None,
    ) -> bool:
        """Return True if at least one ``(resource, action)`` pair is allowed."""
        return any(
            self.has_permission(user_permissions, resource, action, options).allowed
            for resource, action in checks
        )

    def has_all_permissions(
        self,
        user_permissions: UserPermissions,
        checks: Sequence[tuple[str, str]],
        options: PermissionCheckOptions | None = None,
    ) -> bool:
        """Return True only if every ``(resource, action)`` pair is allowed."""
        return all(
            self.has_permission(user_permissions, resource, action, options).allowed
            for resource, action in checks
        )

    def clear_cache(self) -> None:
        """Drop every cached decision.

        Must be called whenever a user's permission set is replaced.
        """
        self._cache.clear()

    def get_audit_logs(self, limit: int | None = None) -> list[PermissionAuditEntry]:
        """Return recorded decisions, optionally only the last ``limit``."""
        return self._audit_log.get_entries(limit)

    def add_event_listener(
        self,
        event_type: PermissionEventType | str,
        listener: PermissionEventListener,
    ) -> None:
        self._events.add_listener(event_type, listener)

    def remove_event_listener(
        self,
        event_type: PermissionEventType | str,
        listener: PermissionEventListener,
    ) -> bool:
        return self._events.remove_listener(event_type, listener)

    def emit_event(self, event: PermissionEvent) -> None:
        self._events.emit(event)

    @property
    def cache(self) -> DecisionCache:
        return self._cache

    @property
    def audit_log(self) -> PermissionAuditLog:
        return self._audit_log

    @property
    def super_admin_role(self) -> str:
        return self._super_admin_role

    # ------------------------------------------------------------------
    # Decision logic
    # ------------------------------------------------------------------

    def _cache_key(
        self,
        user_id: str,
        revision: int,
        resource: str,
        action: str,
        options: PermissionCheckOptions,
    ) -> str | None:
        if not (options.cache and self._cache_enabled):
            return None
        try:
            return make_cache_key(user_id, resource, action, options, revision)
        except (TypeError, ValueError) as exc:
            logger.warning(
                "Context for %s:%s cannot be cached (%s); skipping cache", resource, action, exc
            )
            return None
        except Exception:  # noqa: BLE001 - decisions never raise
            logger.exception("Cache key for %s:%s failed; skipping cache", resource, action)
            return None

    def _record_decision(
        self,
        user_id: str,
        resource: str,
        action: str,
        result: PermissionCheckResult,
        context: PermissionContext | None,
    ) -> None:
        """Write the audit entry and publish the granted/denied event."""
        try:
            self._audit_log.record(
                user_id=user_id,
                resource=resource,
                action=action,
                allowed=result.allowed,
                reason=result.reason,
                context=context,
            )
        except Exception:  # noqa: BLE001 - decisions never raise
            logger.exception("Audit record failed for %s:%s", resource, action)

        self.emit_event(
            PermissionEvent(
                type=(
                    PermissionEventType.PERMISSION_GRANTED
                    if result.allowed
                    else PermissionEventType.PERMISSION_DENIED
                ),
                user_id=user_id,
                resource=resource,
                action=action,
                details={"reason": result.reason},
            )
        )

    def _evaluate_safely(
        self,
        user_permissions: UserPermissions,
        resource: str,
        action: str,
        options: PermissionCheckOptions,
    ) -> PermissionCheckResult:
        try:
            result = self._evaluate(user_permissions, resource, action, options)
        except Exception as exc:  # noqa: BLE001 - decisions fail closed
            logger.exception("Permission evaluation failed for %s:%s", resource, action)
            return PermissionCheckResult(
                allowed=False, reason=f"Evaluation error: {type(exc).__name__}"
            )

        logger.debug(
            "Permission %s: user=%s resource=%s action=%s reason=%s",
            "ALLOW" if result.allowed else "DENY",
            getattr(user_permissions, "user_id", None),
            resource,
            action,
            result.reason,
        )
        return result

    def _evaluate(
        self,
        user_permissions: UserPermissions,
        resource: str,
        action: str,
        options: PermissionCheckOptions,
    ) -> PermissionCheckResult:
        role = getattr(user_permissions, "role", None)
        if role is None:
            return PermissionCheckResult(allowed=False, reason="Invalid user permissions: no role")

        if role.name == self._super_admin_role:
            return PermissionCheckResult(allowed=True, reason="Super admin has all permissions")

        role_permissions = self._as_sequence(role.permissions, "role.permissions")
        custom_permissions = self._as_sequence(
            user_permissions.custom_permissions, "custom_permissions"
        )
        denied_permissions = self._as_sequence(
            user_permissions.denied_permissions, "denied_permissions"
        )
        if role_permissions is None or custom_permissions is None or denied_permissions is None:
            return PermissionCheckResult(
                allowed=False, reason="Invalid user permissions: malformed permission list"
            )

        context = options.context

        denied = self._find_match(denied_permissions, resource, action, context)
        if denied is not None:
            return PermissionCheckResult(
                allowed=False,
                reason="Permission explicitly denied",
                conditions=denied.conditions,
            )

        granted = self._find_match(role_permissions, resource, action, context)
        if granted is not None:
            return PermissionCheckResult(
                allowed=True,
                reason=f"Role permission '{granted.id}' granted",
                conditions=granted.conditions,
            )
        granted = self._find_match(custom_permissions, resource, action, context)
        if granted is not None:
            return PermissionCheckResult(
                allowed=True,
                reason=f"Custom permission '{granted.id}' granted",
                conditions=granted.conditions,
            )

        wildcard = self._find_wildcard(
            [*role_permissions, *custom_permissions], resource, action, context
        )
        if wildcard is not None:
            return PermissionCheckResult(
                allowed=True,
                reason=f"Wildcard permission '{wildcard.id}' granted",
                conditions=wildcard.conditions,
            )

        if options.strict:
            return PermissionCheckResult(
                allowed=False, reason="Strict mode: permission not explicitly granted"
            )

        if options.fallback:
            return PermissionCheckResult(allowed=True, reason="Fallback permission granted")
        return PermissionCheckResult(allowed=False, reason="Permission not found")

    def _find_match(
        self,
        permissions: Sequence[Permission],
        resource: str,
        action: str,
        context: PermissionContext | None,
    ) -> Permission | None:
        """Return the first permission matching the pair whose conditions pass."""
        for permission in permissions:
            if not permission.matches(resource, action):
                continue
            if self._conditions.check_conditions(permission.conditions, context).allowed:
                return permission
        return None

    def _find_wildcard(
        self,
        permissions: Sequence[Permission],
        resource: str,
        action: str,
        context: PermissionContext | None,
    ) -> Permission | None:
        """Look for resource-wildcard grants, then action-wildcard grants."""
        # Step 3 already accepts wildcards, so this never matches; it holds the documented order.
        resource_wildcards = [
            p
            for p in permissions
            if p.resource == WILDCARD and (p.action == action or p.action == WILDCARD)
        ]
        action_wildcards = [
            p for p in permissions if p.resource == resource and p.action == WILDCARD
        ]
        for permission in (*resource_wildcards, *action_wildcards):
            if self._conditions.check_conditions(permission.conditions, context).allowed:
                return permission
        return None

    @staticmethod
    def _as_sequence(value: object, label: str) -> Sequence[Permission] | None:
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return value
        logger.warning("UserPermissions.%s is %s, expected a list", label, type(value).__name__)
        return None
