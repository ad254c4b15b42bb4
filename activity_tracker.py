"""
Hook event façade: one call per Claude Code hook invocation.

Events handled:
  SessionStart       — make sure the session slot exists
  UserPromptSubmit   — record the prompt as a task
  PostToolUse        — record the tool call and any file it touched
  Stop / SessionEnd  — summarize, merge into the day's report, reset the slot

Every handler returns a HookResult. Faults become ok=False results, except
StateWriteError, which propagates so the caller's retry policy applies.
"""
from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog
from pydantic import ValidationError

from audit_log import AuditLog
from config import Settings
from log_merger import LogMerger
from models import HookResult
from session_store import SessionStateStore
from shared_helpers import Clock, DevlogError, StateWriteError, truncate, utc_now
from summary_builder import build_daily_summary

log = structlog.get_logger(__name__)

_FILE_TOOLS = frozenset({"Write", "Edit", "MultiEdit", "NotebookEdit"})
_PATH_KEYS = ("file_path", "notebook_path", "path")
_MAX_BASH_DETAIL = 180


def extract_tool_event(tool_name: str, tool_input: Any) -> tuple[str, list[str]]:
    """Return (details, touched_files) for one tool call."""
    tool_input = tool_input if isinstance(tool_input, dict) else {}

    if tool_name in _FILE_TOOLS:
        for key in _PATH_KEYS:
            value = tool_input.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip(), [value.strip()]
        return tool_name, []

    if tool_name == "Bash":
        command = tool_input.get("command")
        if isinstance(command, str) and command.strip():
            return truncate(" ".join(command.split()), _MAX_BASH_DETAIL), []
        return tool_name, []

    for key in ("file_path", "path", "pattern", "url", "query"):
        value = tool_input.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip(), []
    return tool_name, []


def describe_error(exc: Exception) -> str:
    """Short, non-leaking description of a handler fault."""
    if isinstance(exc, ValidationError):
        first = exc.errors()[0]
        return f"Invalid data: {first['msg']}"
    if isinstance(exc, (DevlogError, ValueError)):
        return str(exc)
    return f"Unexpected {type(exc).__name__}"


class ActivityTracker:
    """Wires the session store, summary builder, and merger to hook events."""

    def __init__(
        self,
        settings: Settings,
        *,
        clock: Clock = utc_now,
        store: SessionStateStore | None = None,
        merger: LogMerger | None = None,
        audit: AuditLog | None = None,
    ) -> None:
        self.settings = settings
        self._clock = clock
        self.store = store or SessionStateStore(
            settings.state_path,
            clock=clock,
            lock=settings.lock_state,
            lock_dir=settings.lock_path,
        )
        self.merger = merger or LogMerger(
            settings.reports_path,
            clock=clock,
            lock=settings.lock_state,
            lock_dir=settings.lock_path,
            max_tools=settings.max_tools_displayed,
        )
        self.audit = audit or AuditLog(settings.audit_log_path, clock=clock)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def handle(self, payload: dict[str, Any]) -> HookResult:
        """Route a raw hook payload to its handler."""
        event = str(payload.get("hook_event_name") or "")
        self.audit.append(
            event or "unknown",
            session_id=payload.get("session_id"),
            tool_name=payload.get("tool_name"),
            prompt_chars=len(payload.get("prompt") or ""),
        )

        if event == "SessionStart":
            return self.on_session_start()
        if event == "UserPromptSubmit":
            return self.on_prompt(str(payload.get("prompt") or ""))
        if event == "PostToolUse":
            return self.on_tool_use(str(payload.get("tool_name") or ""), payload.get("tool_input"))
        if event in ("Stop", "SessionEnd"):
            return self.on_stop()

        log.debug("activity_tracker.ignored", hook_event=event)
        return HookResult(ok=True, action="ignored")

    def _guard(self, action: str, fn: Callable[[], HookResult]) -> HookResult:
        try:
            return fn()
        except StateWriteError as exc:
            log.error("activity_tracker.write_failed", action=action, path=str(exc.path), error=str(exc))
            raise
        except Exception as exc:
            log.error("activity_tracker.failed", action=action, error_type=type(exc).__name__, exc_info=True)
            return HookResult(ok=False, action=action, error=describe_error(exc))

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def on_session_start(self) -> HookResult:
        def _run() -> HookResult:
            record = self.store.ensure()
            return HookResult(ok=True, action="session_started", session_id=record.session_id)

        return self._guard("session_start", _run)

    def on_prompt(self, prompt: str) -> HookResult:
        def _run() -> HookResult:
            if not prompt.strip():
                return HookResult(ok=True, action="skipped_empty_prompt")
            record = self.store.add_task(prompt)
            return HookResult(ok=True, action="task_added", session_id=record.session_id)

        return self._guard("prompt", _run)

    def on_tool_use(self, tool_name: str, tool_input: Any = None) -> HookResult:
        def _run() -> HookResult:
            if not tool_name.strip():
                return HookResult(ok=False, action="tool_used", error="Missing tool_name")
            details, files = extract_tool_event(tool_name.strip(), tool_input)
            self.store.add_tool_usage(tool_name.strip(), details, files)
            return HookResult(ok=True, action="tool_recorded")

        return self._guard("tool_use", _run)

    def on_stop(self) -> HookResult:
        def _run() -> HookResult:
            record = self.store.load()
            if record.is_empty:
                self.store.clear()
                log.info("activity_tracker.stop.empty", session_id=record.session_id)
                return HookResult(ok=True, action="cleared_empty", session_id=record.session_id)

            summary = build_daily_summary(
                record,
                tz=self.settings.tzinfo(),
                now=self._clock(),
                display_length=self.settings.task_display_length,
            )
            report = self.merger.merge_session(summary)
            self.store.clear()
            return HookResult(
                ok=True,
                action="report_written",
                session_id=record.session_id,
                report_path=str(report),
            )

        return self._guard("stop", _run)
