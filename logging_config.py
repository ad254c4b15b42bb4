"""
Structured logging configuration using structlog.

Hook events carry whatever the user typed and whatever Claude passed to a
tool, so the processor chain enforces:
  - Prompt text, tool payloads and tool-event details are REDACTED before
    any output; events log lengths, counts and categories instead
  - Credential-looking fields are REDACTED as well, since Bash commands and
    tool inputs can carry them
  - JSON lines go to the project's log file; stderr only sees warnings and
    above by default, so a healthy hook run stays silent in the transcript
"""
from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Any

import structlog

# ---------------------------------------------------------------------------
# Fields that must never appear in logs in plaintext
# Checked case-insensitively against all log event_dict keys
# ---------------------------------------------------------------------------
_REDACTED_FIELDS: frozenset[str] = frozenset(
    {
        # UserPromptSubmit / SessionRecord text
        "prompt",
        "task",
        # PostToolUse payloads and what extract_tool_event() keeps of them
        "tool_input",
        "tool_response",
        "details",
        "command",
        "content",
        "old_string",
        "new_string",
        # Credentials that can ride along in a Bash command
        "api_key",
        "authorization",
        "password",
        "secret",
        "token",
    }
)
_REDACTED = "[REDACTED]"


def _scrub_sensitive(
    logger: Any,  # noqa: ANN401 (structlog typing requirement)
    method: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """
    structlog processor: replace sensitive field values with [REDACTED].

    Empty values are left alone so "no details" stays distinguishable.
    """
    for key, value in event_dict.items():
        if key.lower() in _REDACTED_FIELDS and value not in (None, ""):
            event_dict[key] = _REDACTED
    return event_dict


def configure_logging(
    log_level: str = "INFO",
    log_file: str | Path | None = None,
    *,
    stderr_level: str = "WARNING",
) -> None:
    """
    Configure structlog for JSON logging from one hook process.

    Args:
        log_level:    root threshold; everything at or above it reaches log_file.
        log_file:     optional path, parent directories created on demand.
                      When it cannot be created only stderr is used.
        stderr_level: separate, usually higher, threshold for stderr.
    """
    if log_file:
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            log_file = None

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _scrub_sensitive,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.ExceptionRenderer(),
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.JSONRenderer(),
        ],
    )

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setFormatter(formatter)
    stderr_handler.setLevel(getattr(logging, stderr_level, logging.WARNING))
    handlers: list[logging.Handler] = [stderr_handler]

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    root = logging.getLogger()
    root.handlers = handlers
    root.setLevel(getattr(logging, log_level, logging.INFO))
