"""
Persisted and exchanged data shapes.

All models serialize with camelCase keys (sessionId, startTime, toolsUsed, ...)
so the JSON on disk keeps stable field names for other tooling and for
manual inspection. Construct them in Python with snake_case names.

Timestamps are always timezone-aware; naive values read from a hand-edited
file are taken as UTC.
"""
from __future__ import annotations

from datetime import date as Date
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _aware(v: datetime) -> datetime:
    return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)


def _unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(item for item in items if item))


class _Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """Return the on-disk representation (camelCase keys, ISO timestamps)."""
        return self.model_dump(mode="json", by_alias=True)


# ---------------------------------------------------------------------------
# Session slot
# ---------------------------------------------------------------------------


class TaskRecord(_Record):
    """One user prompt and the category it was filed under. Immutable."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    prompt: str
    category: str
    timestamp: datetime
    tools_used: list[str] = Field(default_factory=list)
    files_modified: list[str] = Field(default_factory=list)

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, v: datetime) -> datetime:
        return _aware(v)


class ToolUsage(_Record):
    tool: str = Field(..., min_length=1)
    details: str = ""
    timestamp: datetime

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, v: datetime) -> datetime:
        return _aware(v)


class SessionRecord(_Record):
    """
    The single "current session" slot.

    session_id and tasks are required: a stored record missing either is
    structurally invalid and is discarded by SessionStateStore.load().
    """

    session_id: str = Field(..., min_length=1)
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    tasks: list[TaskRecord]
    files_modified: list[str] = Field(default_factory=list)
    tool_usage: list[ToolUsage] = Field(default_factory=list)

    @field_validator("start_time")
    @classmethod
    def _aware_start(cls, v: datetime) -> datetime:
        return _aware(v)

    @field_validator("files_modified")
    @classmethod
    def _unique_files(cls, v: list[str]) -> list[str]:
        return _unique(v)

    @property
    def is_empty(self) -> bool:
        return not self.tasks and not self.tool_usage and not self.files_modified


# ---------------------------------------------------------------------------
# Summaries and aggregates
# ---------------------------------------------------------------------------


class TechnicalWorkItem(_Record):
    task: str
    files: list[str] = Field(default_factory=list)


class ToolCount(_Record):
    tool: str
    count: int = Field(..., ge=0)


class DailySummary(_Record):
    """
    Output of build_daily_summary() for one completed session.

    Every field is required so a partially built summary is rejected by
    LogMerger before anything is merged.
    """

    date: Date
    title: str = Field(..., min_length=1)
    one_liner: str
    tasks_completed: list[str]
    technical_work: dict[str, list[TechnicalWorkItem]]
    files_modified: list[str]
    tools_used: list[ToolCount]
    duration: str
    session_start_time: datetime

    @field_validator("session_start_time")
    @classmethod
    def _aware_start(cls, v: datetime) -> datetime:
        return _aware(v)

    @field_validator("files_modified")
    @classmethod
    def _unique_files(cls, v: list[str]) -> list[str]:
        return _unique(v)


class DailyAggregate(_Record):
    """
    Cumulative state for one calendar day, stored as the sidecar next to the report.

    Category and tool key order is insertion order and is preserved through
    the JSON round trip.
    """

    title: str
    summary: str
    tasks: list[str] = Field(default_factory=list)
    technical_work: dict[str, list[TechnicalWorkItem]] = Field(default_factory=dict)
    files_modified: list[str] = Field(default_factory=list)
    tools_used: dict[str, int] = Field(default_factory=dict)
    session_start_time: datetime

    @field_validator("session_start_time")
    @classmethod
    def _aware_start(cls, v: datetime) -> datetime:
        return _aware(v)

    @field_validator("files_modified")
    @classmethod
    def _unique_files(cls, v: list[str]) -> list[str]:
        return _unique(v)


# ---------------------------------------------------------------------------
# Hook boundary
# ---------------------------------------------------------------------------


class HookResult(_Record):
    """What ActivityTracker hands back for one event; never raises past the tracker."""

    ok: bool
    action: str
    session_id: str | None = None
    error: str | None = None
    report_path: str | None = None
