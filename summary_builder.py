"""
Turn a completed SessionRecord into a DailySummary.

Pure: the clock and the day-bucketing timezone are parameters, so the same
record and arguments always give the same summary.
"""
from __future__ import annotations

from collections import Counter
from datetime import datetime, tzinfo

from models import DailySummary, SessionRecord, TechnicalWorkItem, ToolCount
from shared_helpers import format_duration, local_date, one_line, truncate, utc_now

EMPTY_TITLE = "Development Session"
EMPTY_ONE_LINER = "Session completed with no tasks recorded"

# (substring in the joined prompts, title suffix); first hit wins.
# Extend by adding rows; build_title() does not need to change.
TITLE_REFINEMENTS: tuple[tuple[str, str], ...] = (
    ("test", "Testing"),
    ("conflict", "Merge Conflicts"),
    ("auth", "Authentication"),
    ("database", "Database"),
    ("migration", "Migrations"),
    ("performance", "Performance"),
    ("api", "API"),
)


def _display(prompt: str, display_length: int) -> str:
    # report items are single lines
    return truncate(one_line(prompt), display_length)


def build_title(record: SessionRecord) -> str:
    if not record.tasks:
        return EMPTY_TITLE

    # most_common keeps first-seen order among equal counts
    category = Counter(task.category for task in record.tasks).most_common(1)[0][0]
    prompts = " ".join(task.prompt for task in record.tasks).lower()
    for needle, suffix in TITLE_REFINEMENTS:
        if needle in prompts:
            return f"{category} - {suffix}"
    return category


def build_one_liner(record: SessionRecord, display_length: int = 100) -> str:
    n_tasks = len(record.tasks)
    if n_tasks == 0:
        return EMPTY_ONE_LINER
    if n_tasks == 1:
        return f"Completed: {_display(record.tasks[0].prompt, display_length)}"
    return f"Completed {n_tasks} task(s), modified {len(record.files_modified)} file(s)"


def group_by_category(record: SessionRecord, display_length: int = 100) -> dict[str, list[TechnicalWorkItem]]:
    """Tasks keyed by category, first-seen order. Files are tracked per session, not per task."""
    grouped: dict[str, list[TechnicalWorkItem]] = {}
    for task in record.tasks:
        grouped.setdefault(task.category, []).append(
            TechnicalWorkItem(task=_display(task.prompt, display_length), files=[])
        )
    return grouped


def count_tools(record: SessionRecord) -> list[ToolCount]:
    """Per-tool counts, highest first; equal counts stay in first-seen order."""
    counts: dict[str, int] = {}
    for usage in record.tool_usage:
        counts[usage.tool] = counts.get(usage.tool, 0) + 1
    ranked = sorted(counts.items(), key=lambda kv: -kv[1])
    return [ToolCount(tool=tool, count=count) for tool, count in ranked]


def build_daily_summary(
    record: SessionRecord,
    *,
    tz: tzinfo | None = None,
    now: datetime | None = None,
    display_length: int = 100,
) -> DailySummary:
    """
    Summarize one session.

    Args:
        record:         the session to summarize (not modified).
        tz:             day-bucketing zone; None means host local time.
        now:            "build time" for the duration; defaults to the current UTC time.
        display_length: max characters kept from each prompt, after its
                        whitespace is collapsed to single spaces.
    """
    now = now or utc_now()
    return DailySummary(
        date=local_date(record.start_time, tz),
        title=build_title(record),
        one_liner=build_one_liner(record, display_length),
        tasks_completed=[_display(task.prompt, display_length) for task in record.tasks],
        technical_work=group_by_category(record, display_length),
        files_modified=list(record.files_modified),
        tools_used=count_tools(record),
        duration=format_duration(record.start_time, now),
        session_start_time=record.start_time,
    )
