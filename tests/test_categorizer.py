import pytest

from categorizer import CATEGORIES, DEFAULT_CATEGORY, categorize


@pytest.mark.parametrize(
    ("prompt", "expected"),
    [
        ("fix the login redirect", "Bug Fix"),
        ("the build is broken again", "Bug Fix"),
        ("add a CSV export button", "Feature"),
        ("implement pagination for the jobs list", "Feature"),
        ("refactor the parser module", "Refactor"),
        ("write unit tests for the parser", "Testing"),
        ("update the README", "Documentation"),
        ("why is the cache so slow", "Investigation"),
        ("deploy to staging", "Deployment"),
        ("hello there", "Task"),
    ],
)
def test_categorize_keywords(prompt, expected):
    assert categorize(prompt) == expected


def test_bug_fix_wins_over_feature_and_testing():
    # Mentions a fix, a test and a feature; Bug Fix has top precedence
    assert categorize("fix the test for the new feature") == "Bug Fix"


def test_feature_wins_over_testing():
    assert categorize("add tests for the exporter") == "Feature"


def test_categorize_is_case_insensitive():
    assert categorize("FIX THE LOGIN PAGE") == "Bug Fix"


def test_empty_and_none_fall_back_to_default():
    assert categorize("") == DEFAULT_CATEGORY
    assert categorize(None) == DEFAULT_CATEGORY  # type: ignore[arg-type]


def test_category_order_ends_with_default():
    assert CATEGORIES == (
        "Bug Fix",
        "Feature",
        "Refactor",
        "Testing",
        "Documentation",
        "Investigation",
        "Deployment",
        "Task",
    )
