"""Typed permission events and their listener registry.

Listeners subscribe to one :class:`PermissionEventType`.  Registration with
an unknown event name raises ``ValueError`` instead of creating a
subscription that would never fire.  A listener that raises is logged and
skipped; it never affects the decision that produced the event or the
other listeners.
"""
from __future__ import annotations

import datetime
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

logger = logging.getLogger(__name__)


class PermissionEventType(str, Enum):
    """Kinds of events published by the permission manager."""

    PERMISSION_GRANTED = "permission_granted"
    PERMISSION_DENIED = "permission_denied"
    ROLE_CHANGED = "role_changed"
    PERMISSION_UPDATED = "permission_updated"


@dataclass(frozen=True)
class PermissionEvent:
    """A single published event."""

    type: PermissionEventType
    user_id: str
    resource: str | None = None
    action: str | None = None
    timestamp: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )
    details: Mapping[str, object] = field(default_factory=dict)


PermissionEventListener = Callable[[PermissionEvent], None]


class PermissionEventBus:
    """Registry of listeners keyed by event type."""

    def __init__(self) -> None:
        self._listeners: dict[PermissionEventType, list[PermissionEventListener]] = {
            event_type: [] for event_type in PermissionEventType
        }
        self._lock = threading.Lock()

    def add_listener(
        self,
        event_type: PermissionEventType | str,
        listener: PermissionEventListener,
    ) -> None:
        """Subscribe ``listener`` to ``event_type``.

        Raises
        ------
        ValueError
            If ``event_type`` is not a known event kind.
        """
        kind = PermissionEventType(event_type)
        with self._lock:
            self._listeners[kind].append(listener)

    def remove_listener(
        self,
        event_type: PermissionEventType | str,
        listener: PermissionEventListener,
    ) -> bool:
        """Unsubscribe ``listener``.  Returns True if it was registered."""
        kind = PermissionEventType(event_type)
        with self._lock:
            try:
                self._listeners[kind].remove(listener)
            except ValueError:
                return False
        return True

    def emit(self, event: PermissionEvent) -> None:
        """Deliver ``event`` to every listener of its type."""
        with self._lock:
            listeners = list(self._listeners[event.type])

        for listener in listeners:
            try:
                listener(event)
            except Exception:  # noqa: BLE001 - observers must not break authorisation
                logger.exception(
                    "Permission event listener %r failed for %s",
                    listener,
                    event.type.value,
                )

    def listener_count(self, event_type: PermissionEventType | str | None = None) -> int:
        with self._lock:
            if event_type is None:
                return sum(len(v) for v in self._listeners.values())
            return len(self._listeners[PermissionEventType(event_type)])
