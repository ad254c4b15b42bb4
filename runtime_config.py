"""
Hook process bootstrap: .env, settings, and logging.

Imported by hook entry points only. It handles:
  - Loading .env from the project directory (absolute path)
  - Pointing the settings at the project Claude Code is running in
  - Configuring structlog JSON logging into the project's log file

No circular imports: this module depends only on config.py and logging_config.py.
"""
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

from config import Settings, get_settings
from logging_config import configure_logging


def bootstrap(project_dir: str | None = None) -> Settings:
    """
    Prepare one hook process and return its settings.

    project_dir comes from the hook payload's cwd or CLAUDE_PROJECT_DIR; an
    explicit DEVLOG_PROJECT_DIR in the environment still wins.
    """
    project_dir = project_dir or os.environ.get("CLAUDE_PROJECT_DIR")
    if project_dir:
        # Claude Code does not guarantee the hook's working directory.
        load_dotenv(Path(project_dir) / ".env")
        os.environ.setdefault("DEVLOG_PROJECT_DIR", project_dir)

    get_settings.cache_clear()
    settings = get_settings()
    configure_logging(settings.log_level, settings.resolve_path(settings.log_file), stderr_level="WARNING")
    return settings
