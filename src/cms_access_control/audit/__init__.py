"""Audit and event package for cms-access-control.

Provides the bounded in-memory decision log, typed permission events, a
JSONL file sink and CSV/JSON export.
"""
from __future__ import annotations

from cms_access_control.audit.events import (
    PermissionEvent,
    PermissionEventBus,
    PermissionEventType,
)
from cms_access_control.audit.exporter import AuditExporter
from cms_access_control.audit.log import PermissionAuditEntry, PermissionAuditLog
from cms_access_control.audit.sink import JsonlAuditSink

__all__ = [
    "AuditExporter",
    "JsonlAuditSink",
    "PermissionAuditEntry",
    "PermissionAuditLog",
    "PermissionEvent",
    "PermissionEventBus",
    "PermissionEventType",
]
