"""Root conftest: ensures project root is on sys.path for pytest.

Also provides settings pointed at a temporary project directory and a
controllable clock, so no test touches the real working tree or depends on
the wall clock.
"""
from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Must happen before any local imports so the tracker modules can be collected.
sys.path.insert(0, str(Path(__file__).parent))

from config import Settings  # noqa: E402


class FakeClock:
    """Callable clock that only moves when a test advances it."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(project_dir=tmp_path, timezone="UTC", log_level="DEBUG")
