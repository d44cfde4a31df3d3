"""Bounded in-memory audit log of permission decisions.

Every evaluated check appends one immutable :class:`PermissionAuditEntry`.
The buffer is capped: once it grows past ``max_entries`` it is trimmed to
the most recent ``trim_to`` entries.  Append and trim happen under one lock
so concurrent writers never lose entries or observe a half-trimmed buffer.

Example
-------
>>> log = PermissionAuditLog(max_entries=1000, trim_to=500)
>>> entry = log.record(
...     user_id="u-1",
...     resource="articles",
...     action="update",
...     allowed=True,
...     reason="Role permission 'articles.update' granted",
... )
>>> entry.action
'articles:update'
"""
from __future__ import annotations

import datetime
import json
import logging
import threading
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Callable, Literal

from cms_access_control.permissions.conditions import MISSING, resolve_field
from cms_access_control.permissions.model import PermissionContext

logger = logging.getLogger(__name__)

AuditResult = Literal["granted", "denied"]

AuditSinkCallable = Callable[["PermissionAuditEntry"], None]


# ---------------------------------------------------------------------------
# Audit entry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PermissionAuditEntry:
    """A single recorded permission decision.

    Attributes
    ----------
    entry_id:
        Unique identifier for this entry.
    user_id:
        The user whose permission was checked.
    action:
        ``"<resource>:<action>"`` label.
    resource:
        The resource type that was checked.
    result:
        ``"granted"`` or ``"denied"``.
    reason:
        Human-readable explanation copied from the decision.
    ip / user_agent:
        Pulled from ``context["environment"]`` when present.
    timestamp:
        UTC time of the check.
    context:
        Shallow snapshot of the request context, or None.
    """

    entry_id: str
    user_id: str
    action: str
    resource: str
    result: AuditResult
    reason: str
    timestamp: datetime.datetime
    ip: str | None = None
    user_agent: str | None = None
    context: dict[str, object] | None = field(default=None, compare=False)

    def to_dict(self) -> dict[str, object]:
        """Serialise this entry to a JSON-friendly dict."""
        return {
            "entry_id": self.entry_id,
            "user_id": self.user_id,
            "action": self.action,
            "resource": self.resource,
            "result": self.result,
            "reason": self.reason,
            "ip": self.ip,
            "user_agent": self.user_agent,
            "timestamp": self.timestamp.isoformat(),
            "context": self.context,
        }

    def to_jsonl(self) -> str:
        """Return this entry as a single JSON Lines line."""
        return json.dumps(self.to_dict(), default=str) + "\n"


def _environment_value(context: PermissionContext | None, *paths: str) -> str | None:
    if context is None:
        return None
    for path in paths:
        value = resolve_field(context, path)
        if value is not MISSING and value is not None:
            return str(value)
    return None


# ---------------------------------------------------------------------------
# Audit log
# ---------------------------------------------------------------------------


class PermissionAuditLog:
    """Append-only, size-capped buffer of :class:`PermissionAuditEntry`.

    Parameters
    ----------
    max_entries:
        Size at which the buffer is trimmed.
    trim_to:
        Number of most recent entries kept after a trim.
    sinks:
        Optional callables that receive every new entry (e.g. a
        :class:`~cms_access_control.audit.sink.JsonlAuditSink`).  Sink
        failures are logged and never propagate.
    """

    def __init__(
        self,
        max_entries: int = 1000,
        trim_to: int = 500,
        sinks: list[AuditSinkCallable] | None = None,
    ) -> None:
        if max_entries < 1:
            raise ValueError(f"max_entries must be positive; got {max_entries!r}.")
        if not 0 < trim_to < max_entries:
            raise ValueError(
                f"trim_to must be at least 1 and lower than max_entries ({max_entries}); "
                f"got {trim_to!r}."
            )
        self._max_entries = max_entries
        self._trim_to = trim_to
        self._entries: list[PermissionAuditEntry] = []
        self._sinks: list[AuditSinkCallable] = list(sinks or [])
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    def record(
        self,
        user_id: str,
        resource: str,
        action: str,
        allowed: bool,
        reason: str,
        context: PermissionContext | None = None,
    ) -> PermissionAuditEntry:
        """Append one decision and return the created entry."""
        entry = PermissionAuditEntry(
            entry_id=uuid.uuid4().hex,
            user_id=user_id,
            action=f"{resource}:{action}",
            resource=resource,
            result="granted" if allowed else "denied",
            reason=reason,
            timestamp=datetime.datetime.now(datetime.timezone.utc),
            ip=_environment_value(context, "environment.ip", "ip"),
            user_agent=_environment_value(
                context, "environment.userAgent", "environment.user_agent", "user_agent"
            ),
            context=dict(context) if isinstance(context, Mapping) else None,
        )
        self.append(entry)
        return entry

    def append(self, entry: PermissionAuditEntry) -> None:
        """Append an entry, trimming the buffer if it exceeds the cap."""
        with self._lock:
            self._entries.append(entry)
            if len(self._entries) > self._max_entries:
                del self._entries[: len(self._entries) - self._trim_to]
            sinks = list(self._sinks)

        for sink in sinks:
            try:
                sink(entry)
            except Exception:  # noqa: BLE001 - audit sinks must not break checks
                logger.exception("Audit sink %r failed", sink)

    def add_sink(self, sink: AuditSinkCallable) -> None:
        with self._lock:
            self._sinks.append(sink)

    def clear(self) -> None:
        """Drop all buffered entries."""
        with self._lock:
            self._entries.clear()

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def get_entries(self, limit: int | None = None) -> list[PermissionAuditEntry]:
        """Return a copy of the buffer, optionally only the last ``limit`` entries.

        A ``limit`` below 1 returns an empty list.
        """
        with self._lock:
            if limit is not None:
                return self._entries[-limit:] if limit > 0 else []
            return list(self._entries)

    def query(
        self,
        user_id: str | None = None,
        result: AuditResult | None = None,
        resource: str | None = None,
    ) -> list[PermissionAuditEntry]:
        """Return entries matching every supplied filter."""
        return [
            e
            for e in self.get_entries()
            if (user_id is None or e.user_id == user_id)
            and (result is None or e.result == result)
            and (resource is None or e.resource == resource)
        ]

    def count(self) -> int:
        with self._lock:
            return len(self._entries)

    def to_jsonl(self) -> str:
        """Export the buffer as JSON Lines."""
        return "".join(e.to_jsonl() for e in self.get_entries())

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def trim_to(self) -> int:
        return self._trim_to
