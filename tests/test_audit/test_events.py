"""Tests for PermissionEventBus."""
from __future__ import annotations

import logging

import pytest

from cms_access_control.audit.events import PermissionEvent, PermissionEventBus, PermissionEventType


@pytest.fixture()
def bus() -> PermissionEventBus:
    return PermissionEventBus()


def _event(kind: PermissionEventType = PermissionEventType.PERMISSION_GRANTED) -> PermissionEvent:
    return PermissionEvent(type=kind, user_id="u-1", resource="articles", action="read")


class TestEventType:
    def test_values(self) -> None:
        assert {t.value for t in PermissionEventType} == {
            "permission_granted",
            "permission_denied",
            "role_changed",
            "permission_updated",
        }

    def test_event_timestamp_is_utc(self) -> None:
        assert _event().timestamp.tzinfo is not None


class TestRegistration:
    def test_add_by_enum(self, bus: PermissionEventBus) -> None:
        bus.add_listener(PermissionEventType.ROLE_CHANGED, lambda e: None)
        assert bus.listener_count(PermissionEventType.ROLE_CHANGED) == 1

    def test_add_by_string(self, bus: PermissionEventBus) -> None:
        bus.add_listener("permission_denied", lambda e: None)
        assert bus.listener_count("permission_denied") == 1

    def test_unknown_string_rejected(self, bus: PermissionEventBus) -> None:
        with pytest.raises(ValueError):
            bus.add_listener("permission_grant", lambda e: None)
        assert bus.listener_count() == 0

    def test_remove_unknown_listener(self, bus: PermissionEventBus) -> None:
        assert bus.remove_listener(PermissionEventType.PERMISSION_GRANTED, lambda e: None) is False

    def test_remove_registered_listener(self, bus: PermissionEventBus) -> None:
        def listener(event: PermissionEvent) -> None:
            pass

        bus.add_listener(PermissionEventType.PERMISSION_GRANTED, listener)
        assert bus.remove_listener(PermissionEventType.PERMISSION_GRANTED, listener) is True
        assert bus.listener_count() == 0


class TestEmit:
    def test_only_matching_type_receives(self, bus: PermissionEventBus) -> None:
        granted: list[PermissionEvent] = []
        denied: list[PermissionEvent] = []
        bus.add_listener(PermissionEventType.PERMISSION_GRANTED, granted.append)
        bus.add_listener(PermissionEventType.PERMISSION_DENIED, denied.append)
        bus.emit(_event())
        assert len(granted) == 1
        assert denied == []

    def test_listener_order_preserved(self, bus: PermissionEventBus) -> None:
        calls: list[str] = []
        bus.add_listener(PermissionEventType.PERMISSION_GRANTED, lambda e: calls.append("first"))
        bus.add_listener(PermissionEventType.PERMISSION_GRANTED, lambda e: calls.append("second"))
        bus.emit(_event())
        assert calls == ["first", "second"]

    def test_failing_listener_isolated(
        self, bus: PermissionEventBus, caplog: pytest.LogCaptureFixture
    ) -> None:
        received: list[PermissionEvent] = []

        def broken(event: PermissionEvent) -> None:
            raise RuntimeError("boom")

        bus.add_listener(PermissionEventType.PERMISSION_GRANTED, broken)
        bus.add_listener(PermissionEventType.PERMISSION_GRANTED, received.append)
        with caplog.at_level(logging.ERROR):
            bus.emit(_event())
        assert len(received) == 1
        assert "permission_granted" in caplog.text
