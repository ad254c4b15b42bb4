"""
Application configuration loaded from environment variables.

Every value can be overridden with a DEVLOG_-prefixed variable or a .env
entry. Nothing here is secret; the state file, reports and audit log all
live inside the project working tree.

Environment variables (all optional):
  DEVLOG_PROJECT_DIR          — working tree root (hooks pass CLAUDE_PROJECT_DIR)
  DEVLOG_STATE_FILE           — current-session slot (default: .claude/session-state.json)
  DEVLOG_REPORTS_DIR          — daily reports + sidecars (default: docs/daily-logs)
  DEVLOG_AUDIT_LOG_FILE       — raw per-event NDJSON sink
  DEVLOG_TIMEZONE             — "local" or an IANA zone name, used for day bucketing
  DEVLOG_LOCK_STATE           — advisory lock around read-modify-write cycles
  DEVLOG_LOCK_DIR             — where the .lock files live (default: .claude/locks)
  DEVLOG_LOG_LEVEL / DEVLOG_LOG_FILE
"""
from __future__ import annotations

from datetime import tzinfo
from functools import lru_cache
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Tracker settings. Loaded once per hook process; never mutated at runtime."""

    model_config = SettingsConfigDict(
        env_prefix="DEVLOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # -------------------------------------------------------------------------
    # Storage locations (relative paths resolve against project_dir)
    # -------------------------------------------------------------------------
    project_dir: Path = Field(default_factory=Path.cwd)
    state_file: str = Field(default=".claude/session-state.json")
    reports_dir: str = Field(default="docs/daily-logs")
    audit_log_file: str = Field(default=".claude/logs/activity-audit.ndjson")
    lock_dir: str = Field(default=".claude/locks")

    # -------------------------------------------------------------------------
    # Behavior
    # -------------------------------------------------------------------------
    timezone: str = Field(default="local", description='"local" or IANA zone name')
    lock_state: bool = Field(default=True)
    task_display_length: int = Field(default=100, ge=10, le=500)
    max_tools_displayed: int = Field(default=10, ge=1, le=50)

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------
    log_level: str = Field(default="INFO")
    log_file: str = Field(default=".claude/logs/devlog.log")

    # -------------------------------------------------------------------------
    # Validators
    # -------------------------------------------------------------------------

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return upper

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, v: str) -> str:
        v = v.strip()
        if not v or v.lower() == "local":
            return "local"
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown timezone {v!r}: use 'local' or an IANA name")
        return v

    @field_validator("state_file", "reports_dir", "audit_log_file", "lock_dir", "log_file")
    @classmethod
    def _require_path(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Path settings cannot be empty")
        return v.strip()

    # -------------------------------------------------------------------------
    # Computed properties
    # -------------------------------------------------------------------------

    def resolve_path(self, value: str) -> Path:
        """Return value as an absolute path, anchored at project_dir when relative."""
        path = Path(value).expanduser()
        return path if path.is_absolute() else self.project_dir / path

    @property
    def state_path(self) -> Path:
        return self.resolve_path(self.state_file)

    @property
    def reports_path(self) -> Path:
        return self.resolve_path(self.reports_dir)

    @property
    def audit_log_path(self) -> Path:
        return self.resolve_path(self.audit_log_file)

    @property
    def lock_path(self) -> Path:
        return self.resolve_path(self.lock_dir)

    def tzinfo(self) -> tzinfo | None:
        """
        The day-bucketing timezone.

        None means the host's local zone (datetime.astimezone() with no
        argument converts to local time).
        """
        if self.timezone == "local":
            return None
        return ZoneInfo(self.timezone)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return the singleton Settings instance.

    Cached after first call. Raises ValidationError if any DEVLOG_ variable
    is invalid, so hooks fail fast at startup rather than mid-merge.
    """
    return Settings()
