"""
Render a DailyAggregate as the day's markdown report.

The report is a disposable projection of the sidecar: it is rebuilt from
scratch on every merge and never read back. Given the same aggregate, date
and render time the output is byte-identical.
"""
from __future__ import annotations

from datetime import date, datetime

from models import DailyAggregate
from shared_helpers import format_duration, one_line, utc_now

_SEP = "---"

# (bucket, substrings), evaluated in order against the lower-cased path; a
# path lands in the first bucket it matches, else "Other".
FILE_BUCKETS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("Tests", ("test", "spec")),
    ("Components", ("component",)),
    ("Hooks", ("hook",)),
    ("Services", ("service",)),
    ("Config", ("config", ".json", ".yaml", ".yml", ".toml", ".ini", ".env")),
)
OTHER_BUCKET = "Other"


def bucket_files(files: list[str]) -> dict[str, list[str]]:
    """Group paths into the fixed buckets, keeping bucket order and path order. Empty buckets are dropped."""
    buckets: dict[str, list[str]] = {name: [] for name, _ in FILE_BUCKETS}
    buckets[OTHER_BUCKET] = []
    for path in files:
        lowered = path.lower()
        for name, needles in FILE_BUCKETS:
            if any(needle in lowered for needle in needles):
                buckets[name].append(path)
                break
        else:
            buckets[OTHER_BUCKET].append(path)
    return {name: paths for name, paths in buckets.items() if paths}


def top_tools(tools_used: dict[str, int], limit: int = 10) -> list[tuple[str, int]]:
    """Highest counts first; ties keep the aggregate's key order."""
    return sorted(tools_used.items(), key=lambda kv: -kv[1])[:limit]


def render(
    aggregate: DailyAggregate,
    day: date,
    *,
    now: datetime | None = None,
    max_tools: int = 10,
) -> str:
    """Return the full report text for day."""
    now = now or utc_now()

    lines = [
        f"# {day.isoformat()} — {aggregate.title}",
        "",
        "## Session Summary",
        one_line(aggregate.summary),
        "",
        "## Tasks Completed",
    ]
    if aggregate.tasks:
        lines.extend(f"- [x] {one_line(task)}" for task in aggregate.tasks)
    else:
        lines.append("_No tasks recorded._")
    lines.append("")

    if aggregate.technical_work:
        lines.append("## Technical Work")
        for category, items in aggregate.technical_work.items():
            lines.append(f"### {category}")
            lines.extend(f"- {one_line(item.task)}" for item in items)
            lines.append("")

    buckets = bucket_files(aggregate.files_modified)
    if buckets:
        lines.append("## Files Modified")
        for name, paths in buckets.items():
            lines.append(f"### {name}")
            lines.extend(f"- `{path}`" for path in paths)
            lines.append("")

    ranked = top_tools(aggregate.tools_used, max_tools)
    if ranked:
        lines.append("## Tools Used")
        lines.extend(f"- **{tool}**: {count}" for tool, count in ranked)
        lines.append("")

    lines.extend(
        [
            f"**Duration:** {format_duration(aggregate.session_start_time, now)}",
            "",
            _SEP,
            "",
        ]
    )
    return "\n".join(lines)
