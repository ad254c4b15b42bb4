"""
Shared helpers for the tracker modules.

Contains:
  - Typed exceptions (write failures, malformed merge input)
  - Clock / timezone helpers
  - Display formatting (truncation, durations)
  - Atomic file publishing and the advisory state lock

No component-specific logic belongs in this file.
"""
from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Any

import structlog

try:
    import fcntl
except ImportError:  # pragma: no cover  (no flock on Windows; locking is skipped)
    fcntl = None  # type: ignore[assignment]

log = structlog.get_logger(__name__)

Clock = Callable[[], datetime]


# ---------------------------------------------------------------------------
# Typed exceptions
# ---------------------------------------------------------------------------


class DevlogError(Exception):
    """Base class for all tracker errors."""


class StateWriteError(DevlogError):
    """
    Raised when a record cannot be persisted.

    Never swallowed: losing an append is worse than failing loudly, so the
    hook caller decides whether to retry.
    """

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class MergeInputError(DevlogError):
    """Raised when LogMerger is handed a summary missing required fields."""


# ---------------------------------------------------------------------------
# Clock / timezone
# ---------------------------------------------------------------------------


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_date(moment: datetime, tz: tzinfo | None):
    """Calendar date of moment in tz (None = host local zone)."""
    return moment.astimezone(tz).date()


# ---------------------------------------------------------------------------
# Display formatting
# ---------------------------------------------------------------------------


def one_line(text: str) -> str:
    """Collapse every whitespace run, newlines included, to a single space."""
    return " ".join(text.split())


def truncate(text: str, limit: int = 100) -> str:
    """Cut text to at most limit chars, marking the cut with a trailing '...'."""
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."


def format_duration(start: datetime, end: datetime) -> str:
    """Format elapsed wall-clock time as e.g. '2h 5m' or '45m'. Negative spans show as 0m."""
    total_min = max(0, int((end - start).total_seconds() // 60))
    hrs, mins = divmod(total_min, 60)
    if hrs >= 1:
        return f"{hrs}h {mins}m"
    return f"{mins}m"


def ordered_union(*groups: Iterable[str]) -> list[str]:
    """Union of groups as a list, first occurrence wins, empty strings dropped."""
    seen: dict[str, None] = {}
    for group in groups:
        for item in group:
            if item:
                seen.setdefault(item, None)
    return list(seen)


# ---------------------------------------------------------------------------
# Durable storage
# ---------------------------------------------------------------------------


def atomic_write_text(path: Path, text: str) -> None:
    """
    Publish text at path so readers see either the old or the new file, never half.

    Writes a temp file in the same directory, fsyncs it, then os.replace()s it
    over path. Raises StateWriteError on any OS failure; the temp file is
    removed on the way out.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    except OSError as exc:
        raise StateWriteError(f"Cannot prepare {path}: {exc}", path=path) from exc

    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except OSError as exc:
        try:
            os.unlink(tmp_name)
        except OSError:
            pass
        raise StateWriteError(f"Cannot write {path}: {exc}", path=path) from exc


def atomic_write_json(path: Path, data: Any) -> None:
    atomic_write_text(path, json.dumps(data, ensure_ascii=False, indent=2) + "\n")


def read_json(path: Path) -> Any | None:
    """
    Parse JSON at path. Missing, unreadable, or unparseable files return None.

    Callers treat None as "absent"; the reason is logged here.
    """
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as exc:
        log.warning("storage.read.unreadable", path=str(path), error=str(exc))
        return None
    except UnicodeDecodeError as exc:
        # cut off inside a multi-byte character
        log.warning("storage.read.corrupt", path=str(path), error=str(exc))
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as exc:
        log.warning("storage.read.corrupt", path=str(path), error=str(exc))
        return None


@contextmanager
def state_lock(target: Path, enabled: bool = True, lock_dir: Path | None = None) -> Iterator[None]:
    """
    Hold an exclusive advisory lock for one read-modify-write cycle on target.

    The lock lives on a separate '<name>.lock' file, in lock_dir when given
    and next to target otherwise, so the atomic replace of target itself is
    unaffected. Lock files are left in place: unlinking one while another
    process waits on it would hand out two locks. No-op when disabled or on
    platforms without flock.
    """
    if not enabled or fcntl is None:
        yield
        return

    lock_path = (lock_dir or target.parent) / (target.name + ".lock")
    try:
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        lock_fh = lock_path.open("a+", encoding="utf-8")
    except OSError as exc:
        raise StateWriteError(f"Cannot open lock file {lock_path}: {exc}", path=lock_path) from exc

    with lock_fh:
        fcntl.flock(lock_fh.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(lock_fh.fileno(), fcntl.LOCK_UN)
