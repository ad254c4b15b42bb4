"""
Append-only NDJSON record of every hook event received.

Write-only: nothing in the tracker reads this file back, and it plays no
part in the merge pipeline. A failed append is logged and dropped.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog

from shared_helpers import Clock, utc_now

log = structlog.get_logger(__name__)


class AuditLog:
    def __init__(self, path: Path, *, clock: Clock = utc_now) -> None:
        self.path = Path(path)
        self._clock = clock

    def append(self, event: str, **fields: Any) -> bool:
        """Append one line. Returns False when the line could not be written."""
        record = {"timestamp": self._clock().isoformat(), "event": event, **fields}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as fh:
                fh.write(json.dumps(record, ensure_ascii=True) + "\n")
        except OSError as exc:
            log.warning("audit_log.append.failed", path=str(self.path), event_name=event, error=str(exc))
            return False
        return True
