"""
Fold session summaries into the day's cumulative aggregate.

Per date D the reports directory holds a pair:
  D.json — the DailyAggregate sidecar, input to the next merge
  D.md   — the rendered report, regenerated in full from the sidecar

Merge rules (existing aggregate present):
  title, session_start_time  kept from the existing aggregate
  tasks                      existing then new
  technical_work             per category: existing items then new; new categories appended
  files_modified             ordered set union
  tools_used                 counts summed; existing keys first, then new keys
  summary                    recomputed from the merged totals, never inherited

Counts and sets are independent of merge order; list order reflects it.
"""
from __future__ import annotations

from datetime import date, datetime
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from markdown_renderer import render
from models import DailyAggregate, DailySummary, TechnicalWorkItem
from shared_helpers import (
    Clock,
    MergeInputError,
    atomic_write_json,
    atomic_write_text,
    ordered_union,
    read_json,
    state_lock,
    utc_now,
)

log = structlog.get_logger(__name__)


def cumulative_summary(task_count: int, file_count: int) -> str:
    return f"Completed {task_count} task(s), modified {file_count} file(s)"


def _coerce_summary(summary: DailySummary | dict[str, Any]) -> DailySummary:
    if isinstance(summary, DailySummary):
        return summary
    try:
        return DailySummary.model_validate(summary)
    except ValidationError as exc:
        first = exc.errors()[0]
        loc = ".".join(str(part) for part in first["loc"])
        raise MergeInputError(f"Invalid daily summary ({loc}): {first['msg']}") from exc


def aggregate_from_summary(summary: DailySummary) -> DailyAggregate:
    return DailyAggregate(
        title=summary.title,
        summary=summary.one_liner,
        tasks=list(summary.tasks_completed),
        technical_work={
            category: [item.model_copy() for item in items]
            for category, items in summary.technical_work.items()
        },
        files_modified=list(summary.files_modified),
        tools_used={entry.tool: entry.count for entry in summary.tools_used},
        session_start_time=summary.session_start_time,
    )


def merge(existing: DailyAggregate | None, summary: DailySummary | dict[str, Any]) -> DailyAggregate:
    """
    Return a new aggregate with summary folded in. Neither input is modified.

    Raises:
        MergeInputError: summary is a dict missing required fields.
    """
    summary = _coerce_summary(summary)
    if existing is None:
        return aggregate_from_summary(summary)

    technical_work: dict[str, list[TechnicalWorkItem]] = {
        category: [item.model_copy() for item in items]
        for category, items in existing.technical_work.items()
    }
    for category, items in summary.technical_work.items():
        technical_work.setdefault(category, []).extend(item.model_copy() for item in items)

    tools_used = dict(existing.tools_used)
    for entry in summary.tools_used:
        tools_used[entry.tool] = tools_used.get(entry.tool, 0) + entry.count

    tasks = [*existing.tasks, *summary.tasks_completed]
    files = ordered_union(existing.files_modified, summary.files_modified)

    return DailyAggregate(
        title=existing.title,
        summary=cumulative_summary(len(tasks), len(files)),
        tasks=tasks,
        technical_work=technical_work,
        files_modified=files,
        tools_used=tools_used,
        session_start_time=existing.session_start_time,
    )


class LogMerger:
    """
    Sidecar and report I/O for one reports directory.

        merger = LogMerger(settings.reports_path, lock_dir=settings.lock_path)
        report = merger.merge_session(build_daily_summary(record))
    """

    def __init__(
        self,
        reports_dir: Path,
        *,
        clock: Clock = utc_now,
        lock: bool = True,
        lock_dir: Path | None = None,
        max_tools: int = 10,
    ) -> None:
        self.reports_dir = Path(reports_dir)
        self._clock = clock
        self._lock = lock
        self._lock_dir = lock_dir
        self._max_tools = max_tools

    def sidecar_path(self, day: date) -> Path:
        return self.reports_dir / f"{day.isoformat()}.json"

    def report_path(self, day: date) -> Path:
        return self.reports_dir / f"{day.isoformat()}.md"

    def load_aggregate(self, day: date) -> DailyAggregate | None:
        """Return the stored aggregate for day, or None if missing or invalid."""
        path = self.sidecar_path(day)
        raw = read_json(path)
        if raw is None:
            return None
        try:
            return DailyAggregate.model_validate(raw)
        except ValidationError as exc:
            log.warning(
                "log_merger.load.invalid",
                path=str(path),
                errors=len(exc.errors()),
                first_error=exc.errors()[0]["msg"],
            )
            return None

    def write(self, aggregate: DailyAggregate, day: date, *, now: datetime | None = None) -> Path:
        """
        Persist the sidecar, then regenerate the report from that same aggregate.

        Both files are published atomically. If the report write fails after
        the sidecar landed, the next merge regenerates it. Raises
        StateWriteError. Returns the report path.
        """
        text = render(aggregate, day, now=now or self._clock(), max_tools=self._max_tools)
        atomic_write_json(self.sidecar_path(day), aggregate.to_json_dict())
        report = self.report_path(day)
        atomic_write_text(report, text)
        log.info(
            "log_merger.write.done",
            date=day.isoformat(),
            tasks=len(aggregate.tasks),
            files=len(aggregate.files_modified),
            categories=len(aggregate.technical_work),
        )
        return report

    def merge_session(self, summary: DailySummary | dict[str, Any]) -> Path:
        """Load the day's sidecar, merge summary into it, and write both artifacts."""
        summary = _coerce_summary(summary)
        sidecar = self.sidecar_path(summary.date)
        with state_lock(sidecar, self._lock, self._lock_dir):
            existing = self.load_aggregate(summary.date)
            merged = merge(existing, summary)
            report = self.write(merged, summary.date)
        log.info(
            "log_merger.merge_session",
            date=summary.date.isoformat(),
            first_of_day=existing is None,
            new_tasks=len(summary.tasks_completed),
        )
        return report
