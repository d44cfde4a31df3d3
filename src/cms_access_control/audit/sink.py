"""Append-only JSONL file sink for permission audit entries.

Attach a sink to :class:`~cms_access_control.audit.log.PermissionAuditLog`
to keep decisions beyond the in-memory buffer.  Each entry is written as
one JSON object per line, stamped with the sink's session identifier.

Thread-safety is achieved with a threading.Lock so one sink can be shared
by every thread in the process.

Example
-------
>>> from pathlib import Path
>>> sink = JsonlAuditSink(Path("/tmp/permission_audit.jsonl"))
>>> audit_log = PermissionAuditLog(sinks=[sink])
"""
from __future__ import annotations

import json
import threading
import uuid
from pathlib import Path
from typing import Iterator

from cms_access_control.audit.log import PermissionAuditEntry


class JsonlAuditSink:
    """Writes audit entries to a ``.jsonl`` file.

    Parameters
    ----------
    log_path:
        Destination file.  Parent directories are created on first write.
    session_id:
        Identifier stamped on every record.  A random UUID is generated if
        not supplied.
    """

    def __init__(self, log_path: Path, session_id: str | None = None) -> None:
        self._log_path = Path(log_path)
        self._session_id: str = session_id or str(uuid.uuid4())
        self._lock = threading.Lock()

    def __call__(self, entry: PermissionAuditEntry) -> None:
        record: dict[str, object] = {"session_id": self._session_id, **entry.to_dict()}
        with self._lock:
            self._log_path.parent.mkdir(parents=True, exist_ok=True)
            with self._log_path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(record, default=str) + "\n")

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    def read_all(self) -> list[dict[str, object]]:
        """Return every record in the file; empty if it does not exist."""
        return list(self._iter_records())

    def last_n(self, n: int) -> list[dict[str, object]]:
        records = self.read_all()
        return records[-n:] if n < len(records) else records

    def _iter_records(self) -> Iterator[dict[str, object]]:
        if not self._log_path.exists():
            return
        with self._lock:
            with self._log_path.open("r", encoding="utf-8") as fh:
                lines = fh.readlines()
        for line in lines:
            line = line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError:
                continue

    @property
    def log_path(self) -> Path:
        return self._log_path

    @property
    def session_id(self) -> str:
        return self._session_id
