"""
Keyword classifier for user prompts.

Patterns are tested in order against the lower-cased prompt and the first
hit wins, so a prompt that mentions both a fix and a feature is a Bug Fix.
Classification is best-effort; nothing downstream depends on it being right.
"""
from __future__ import annotations

import re

DEFAULT_CATEGORY = "Task"

# Order is precedence. Keep Bug Fix first.
_CATEGORY_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("Bug Fix", re.compile(r"\b(fix\w*|bugs?|error|errors|issue|broken|crash\w*|fail\w*)\b")),
    ("Feature", re.compile(r"\b(add|adds|adding|implement\w*|create\w*|new feature|build|support)\b")),
    ("Refactor", re.compile(r"\b(refactor\w*|clean ?up|restructur\w*|rename\w*|simplif\w*|reorganiz\w*)\b")),
    ("Testing", re.compile(r"\b(test\w*|spec|specs|coverage|assert\w*)\b")),
    ("Documentation", re.compile(r"\b(docs?|document\w*|readme|comments?|docstrings?)\b")),
    ("Investigation", re.compile(r"\b(investigat\w*|debug\w*|why|explain\w*|analy[sz]\w*|look into|understand)\b")),
    ("Deployment", re.compile(r"\b(deploy\w*|release\w*|publish\w*|ship|rollout|ci/cd)\b")),
)

CATEGORIES: tuple[str, ...] = tuple(name for name, _ in _CATEGORY_PATTERNS) + (DEFAULT_CATEGORY,)


def categorize(text: str) -> str:
    """Return the first category whose pattern matches text, or 'Task'."""
    lowered = (text or "").lower()
    for name, pattern in _CATEGORY_PATTERNS:
        if pattern.search(lowered):
            return name
    return DEFAULT_CATEGORY
