"""
Durable single-slot store for the current session.

Each hook invocation is a fresh process, so nothing is cached in memory:
every operation reads the slot, changes it, and publishes it back with an
atomic replace. Readers therefore never see a half-written record.

Concurrency:
  With lock_state enabled (the default) each load-modify-save cycle runs
  under an exclusive advisory lock, so two overlapping tool events both
  land. With it disabled the last writer wins and the other append is
  silently lost.
"""
from __future__ import annotations

import secrets
from pathlib import Path

import structlog
from pydantic import ValidationError

from categorizer import categorize
from models import SessionRecord, TaskRecord, ToolUsage
from shared_helpers import Clock, atomic_write_json, ordered_union, read_json, state_lock, utc_now

log = structlog.get_logger(__name__)


def new_session_id(now_ms: int | None = None) -> str:
    """Return 'session_<epoch-ms>_<random>'. Advisory metadata, not a join key."""
    if now_ms is None:
        now_ms = int(utc_now().timestamp() * 1000)
    return f"session_{now_ms}_{secrets.token_hex(4)}"


class SessionStateStore:
    """
    load / save / add_task / add_tool_usage / clear over one JSON file.

        store = SessionStateStore(settings.state_path)
        store.add_task("fix the login redirect")
        store.add_tool_usage("Edit", "src/auth.py", ["src/auth.py"])
    """

    def __init__(
        self,
        path: Path,
        *,
        clock: Clock = utc_now,
        lock: bool = True,
        lock_dir: Path | None = None,
    ) -> None:
        self.path = Path(path)
        self._clock = clock
        self._lock = lock
        self._lock_dir = lock_dir

    # ------------------------------------------------------------------
    # Slot I/O
    # ------------------------------------------------------------------

    def fresh_record(self) -> SessionRecord:
        now = self._clock()
        return SessionRecord(
            session_id=new_session_id(int(now.timestamp() * 1000)),
            start_time=now,
            tasks=[],
        )

    def load(self) -> SessionRecord:
        """
        Return the stored session, or a newly minted empty one.

        A missing, unreadable, or structurally invalid file is never an
        error here; it is logged and treated as absent.
        """
        raw = read_json(self.path)
        if raw is None:
            return self.fresh_record()
        try:
            return SessionRecord.model_validate(raw)
        except ValidationError as exc:
            log.warning(
                "session_store.load.invalid",
                path=str(self.path),
                errors=len(exc.errors()),
                first_error=exc.errors()[0]["msg"],
            )
            return self.fresh_record()

    def save(self, record: SessionRecord) -> None:
        """Publish record atomically. Raises StateWriteError on failure."""
        atomic_write_json(self.path, record.to_json_dict())
        log.debug(
            "session_store.save",
            session_id=record.session_id,
            tasks=len(record.tasks),
            tools=len(record.tool_usage),
            files=len(record.files_modified),
        )

    # ------------------------------------------------------------------
    # Appends (each one a full load → modify → save cycle)
    # ------------------------------------------------------------------

    def add_task(
        self,
        prompt: str,
        *,
        tools: list[str] | None = None,
        files: list[str] | None = None,
    ) -> SessionRecord:
        """Categorize prompt, append it as a TaskRecord, and persist. Returns the saved session."""
        with state_lock(self.path, self._lock, self._lock_dir):
            record = self.load()
            task = TaskRecord(
                prompt=prompt,
                category=categorize(prompt),
                timestamp=self._clock(),
                tools_used=list(tools or []),
                files_modified=ordered_union(files or []),
            )
            record.tasks.append(task)
            self.save(record)

        log.info(
            "session_store.add_task",
            session_id=record.session_id,
            category=task.category,
            prompt_chars=len(prompt),
            task_count=len(record.tasks),
        )
        return record

    def add_tool_usage(self, tool: str, details: str = "", files: list[str] | None = None) -> None:
        """Append a timestamped tool event and merge files into the session's file set."""
        with state_lock(self.path, self._lock, self._lock_dir):
            record = self.load()
            record.tool_usage.append(ToolUsage(tool=tool, details=details, timestamp=self._clock()))
            if files:
                record.files_modified = ordered_union(record.files_modified, files)
            self.save(record)

        log.info(
            "session_store.add_tool_usage",
            session_id=record.session_id,
            tool=tool,
            new_files=len(files or []),
            file_count=len(record.files_modified),
        )

    def ensure(self) -> SessionRecord:
        """Load the slot, persisting a fresh record if none was stored."""
        with state_lock(self.path, self._lock, self._lock_dir):
            existed = self.path.exists()
            record = self.load()
            if not existed:
                self.save(record)
                log.info("session_store.created", session_id=record.session_id)
        return record

    def clear(self) -> None:
        """Reset the slot to a fresh empty session. Missing file is a no-op."""
        if not self.path.exists():
            return
        with state_lock(self.path, self._lock, self._lock_dir):
            fresh = self.fresh_record()
            self.save(fresh)
        log.info("session_store.clear", session_id=fresh.session_id)
