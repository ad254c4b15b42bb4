#!/usr/bin/env python3
"""
Hook: Activity Capture (SessionStart, UserPromptSubmit, PostToolUse, Stop)
Purpose: Record prompts, tool calls and touched files into the session slot,
         and fold the finished session into today's report on Stop.
Trigger: Register this script for each of the four events in .claude/settings.json.

Always exits 0. A failed write is logged and the event is dropped; hooks
must never break the Claude session.
"""
from __future__ import annotations

import json
import sys
from pathlib import Path

# hooks/ sits at the project root next to the tracker modules
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import structlog

from activity_tracker import ActivityTracker
from runtime_config import bootstrap
from shared_helpers import StateWriteError


def main() -> int:
    hook_input = sys.stdin.read() if not sys.stdin.isatty() else ""
    if not hook_input.strip():
        return 0

    try:
        payload = json.loads(hook_input)
    except json.JSONDecodeError:
        return 0
    if not isinstance(payload, dict):
        return 0

    try:
        settings = bootstrap(payload.get("cwd"))
    except Exception as exc:
        # Bad DEVLOG_ settings: nothing is configured yet, so report on stderr
        print(f"activity_capture: configuration error: {exc}", file=sys.stderr)
        return 0

    log = structlog.get_logger("hooks.activity_capture")
    try:
        result = ActivityTracker(settings).handle(payload)
    except StateWriteError as exc:
        log.error("activity_capture.dropped_event", hook_event=payload.get("hook_event_name"), error=str(exc))
        return 0

    if not result.ok:
        log.warning("activity_capture.failed", action=result.action, error=result.error)
    return 0


if __name__ == "__main__":
    sys.exit(main())
