"""Permission audit exporter.

Exports audit entries to CSV or JSON for external analysis or compliance
evidence.

Example
-------
>>> from pathlib import Path
>>> exporter = AuditExporter(manager.audit_log)
>>> exporter.to_csv(Path("/tmp/permission_audit.csv"))
>>> exporter.to_json(Path("/tmp/permission_audit.json"))
"""
from __future__ import annotations

import csv
import json
from pathlib import Path

from cms_access_control.audit.log import PermissionAuditEntry, PermissionAuditLog

_CSV_COLUMNS: tuple[str, ...] = (
    "entry_id",
    "timestamp",
    "user_id",
    "action",
    "resource",
    "result",
    "reason",
    "ip",
    "user_agent",
    "context",
)


class AuditExporter:
    """Exports entries held by a :class:`PermissionAuditLog`.

    Parameters
    ----------
    audit_log:
        The log to export from.
    """

    def __init__(self, audit_log: PermissionAuditLog) -> None:
        self._audit_log = audit_log

    def to_csv(
        self,
        output_path: Path,
        entries: list[PermissionAuditEntry] | None = None,
    ) -> int:
        """Write entries to a CSV file and return the number written.

        The ``context`` column holds the snapshot as a JSON string.
        """
        data = entries if entries is not None else self._audit_log.get_entries()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", newline="", encoding="utf-8") as fh:
            writer = csv.DictWriter(fh, fieldnames=list(_CSV_COLUMNS))
            writer.writeheader()
            for entry in data:
                row = entry.to_dict()
                row["context"] = (
                    json.dumps(row["context"], default=str) if row["context"] is not None else ""
                )
                writer.writerow(row)
        return len(data)

    def to_json(
        self,
        output_path: Path,
        entries: list[PermissionAuditEntry] | None = None,
        indent: int = 2,
    ) -> int:
        """Write entries to a JSON array file and return the number written."""
        data = entries if entries is not None else self._audit_log.get_entries()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with output_path.open("w", encoding="utf-8") as fh:
            json.dump([e.to_dict() for e in data], fh, indent=indent, default=str)
        return len(data)
