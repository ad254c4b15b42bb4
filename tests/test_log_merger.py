import json
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime, timedelta, timezone

import pytest

import shared_helpers
from categorizer import categorize
from log_merger import LogMerger, merge
from models import SessionRecord, TaskRecord, ToolUsage
from shared_helpers import MergeInputError, StateWriteError
from summary_builder import build_daily_summary

DAY = date(2026, 3, 14)
MORNING = datetime(2026, 3, 14, 9, 0, tzinfo=timezone.utc)
AFTERNOON = datetime(2026, 3, 14, 14, 0, tzinfo=timezone.utc)


def summarize(prompts, tools=(), files=(), start=MORNING):
    record = SessionRecord(
        session_id=f"session_{int(start.timestamp())}_test",
        start_time=start,
        tasks=[TaskRecord(prompt=p, category=categorize(p), timestamp=start) for p in prompts],
        files_modified=list(files),
        tool_usage=[ToolUsage(tool=t, timestamp=start) for t in tools],
    )
    return build_daily_summary(record, tz=timezone.utc, now=start + timedelta(minutes=30))


@pytest.fixture
def s1():
    return summarize(
        ["fix the login redirect", "add remember-me checkbox"],
        tools=["Edit", "Edit", "Bash"],
        files=["src/auth.py", "src/login.html"],
    )


@pytest.fixture
def s2():
    return summarize(
        ["write tests for auth", "fix session timeout"],
        tools=["Bash", "Read", "Edit"],
        files=["tests/test_auth.py", "src/auth.py"],
        start=AFTERNOON,
    )


def test_first_merge_takes_summary_verbatim(s1):
    aggregate = merge(None, s1)

    assert aggregate.title == s1.title
    assert aggregate.summary == s1.one_liner
    assert aggregate.tasks == s1.tasks_completed
    assert aggregate.technical_work == s1.technical_work
    assert aggregate.files_modified == s1.files_modified
    assert aggregate.tools_used == {"Edit": 2, "Bash": 1}
    assert aggregate.session_start_time == MORNING


def test_merge_into_existing(s1, s2):
    aggregate = merge(merge(None, s1), s2)

    # title and anchoring start time belong to the first session of the day
    assert aggregate.title == s1.title
    assert aggregate.session_start_time == MORNING

    assert aggregate.tasks == s1.tasks_completed + s2.tasks_completed
    assert list(aggregate.technical_work) == ["Bug Fix", "Feature", "Testing"]
    assert [i.task for i in aggregate.technical_work["Bug Fix"]] == [
        "fix the login redirect",
        "fix session timeout",
    ]
    assert aggregate.files_modified == ["src/auth.py", "src/login.html", "tests/test_auth.py"]
    assert aggregate.tools_used == {"Edit": 3, "Bash": 2, "Read": 1}
    assert list(aggregate.tools_used) == ["Edit", "Bash", "Read"]
    assert aggregate.summary == "Completed 4 task(s), modified 3 file(s)"


def test_merge_does_not_mutate_inputs(s1, s2):
    first = merge(None, s1)
    snapshot = first.model_copy(deep=True)

    merge(first, s2)

    assert first == snapshot
    assert len(s1.technical_work["Bug Fix"]) == 1


def test_merge_counts_and_sets_are_order_independent(s1, s2):
    forward = merge(merge(None, s1), s2)
    backward = merge(merge(None, s2), s1)

    assert set(forward.files_modified) == set(backward.files_modified)
    assert forward.tools_used == backward.tools_used
    assert sorted(forward.tasks) == sorted(backward.tasks)

    def membership(agg):
        return {cat: sorted(i.task for i in items) for cat, items in agg.technical_work.items()}

    assert membership(forward) == membership(backward)


def test_summary_is_recomputed_not_inherited():
    one = summarize(["fix the header"], files=["a.css"])
    assert one.one_liner.startswith("Completed: ")

    aggregate = merge(merge(None, one), summarize(["add footer"], start=AFTERNOON))
    assert aggregate.summary == "Completed 2 task(s), modified 1 file(s)"


def test_malformed_summary_is_rejected():
    with pytest.raises(MergeInputError):
        merge(None, {"title": "Feature", "oneLiner": "half a summary"})


def test_dict_summary_is_accepted(s1):
    assert merge(None, s1.to_json_dict()) == merge(None, s1)


def test_sidecar_round_trip(tmp_path, s1, s2):
    merger = LogMerger(tmp_path / "reports")
    before = merge(None, s1)

    merger.write(before, DAY, now=AFTERNOON)
    reloaded = merger.load_aggregate(DAY)

    assert reloaded == before
    assert merge(reloaded, s2) == merge(before, s2)


def test_sidecar_pairs_with_report(tmp_path, s1):
    merger = LogMerger(tmp_path / "reports")
    report = merger.write(merge(None, s1), DAY, now=AFTERNOON)

    assert report == tmp_path / "reports" / "2026-03-14.md"
    sidecar = json.loads((tmp_path / "reports" / "2026-03-14.json").read_text(encoding="utf-8"))
    assert set(sidecar) == {
        "title",
        "summary",
        "tasks",
        "technicalWork",
        "filesModified",
        "toolsUsed",
        "sessionStartTime",
    }


def test_load_aggregate_missing_or_corrupt(tmp_path):
    merger = LogMerger(tmp_path)
    assert merger.load_aggregate(DAY) is None

    merger.sidecar_path(DAY).write_text('{"title": "x"', encoding="utf-8")
    assert merger.load_aggregate(DAY) is None

    merger.sidecar_path(DAY).write_text('{"title": "x"}', encoding="utf-8")
    assert merger.load_aggregate(DAY) is None

    # ends on the first byte of a two-byte character
    merger.sidecar_path(DAY).write_bytes(b'{"title": "caf\xc3')
    assert merger.load_aggregate(DAY) is None


def test_merge_session_accumulates_across_calls(tmp_path, clock, s1, s2):
    merger = LogMerger(tmp_path / "reports", clock=clock)

    merger.merge_session(s1)
    report = merger.merge_session(s2)

    text = report.read_text(encoding="utf-8")
    assert "- [x] fix the login redirect" in text
    assert "- [x] write tests for auth" in text
    assert "Completed 4 task(s), modified 3 file(s)" in text
    assert merger.load_aggregate(DAY).tools_used == {"Edit": 3, "Bash": 2, "Read": 1}


def test_report_is_fully_regenerated(tmp_path, clock, s1):
    merger = LogMerger(tmp_path, clock=clock)
    report = merger.merge_session(s1)
    report.write_text("hand edits are not preserved", encoding="utf-8")

    merger.merge_session(summarize(["add footer"], start=AFTERNOON))

    text = report.read_text(encoding="utf-8")
    assert "hand edits" not in text
    assert text.startswith("# 2026-03-14 — ")


def test_write_failure_is_raised(tmp_path, s1):
    blocker = tmp_path / "blocker"
    blocker.write_text("", encoding="utf-8")
    merger = LogMerger(blocker / "reports", lock=False)

    with pytest.raises(StateWriteError):
        merger.merge_session(s1)


@pytest.mark.skipif(shared_helpers.fcntl is None, reason="flock is POSIX-only")
def test_overlapping_merges_on_one_day_keep_every_session(tmp_path):
    reports = tmp_path / "reports"
    lock_dir = tmp_path / ".claude" / "locks"
    sessions = [
        summarize(
            [f"fix bug {i}"],
            tools=["Edit", "Bash"],
            files=[f"src/f{i}.py"],
            start=MORNING + timedelta(minutes=i),
        )
        for i in range(12)
    ]

    def merge_one(summary):
        LogMerger(reports, lock_dir=lock_dir).merge_session(summary)

    with ThreadPoolExecutor(max_workers=6) as pool:
        list(pool.map(merge_one, sessions))

    aggregate = LogMerger(reports).load_aggregate(DAY)
    assert sorted(aggregate.tasks) == sorted(f"fix bug {i}" for i in range(12))
    assert aggregate.tools_used == {"Edit": 12, "Bash": 12}
    assert len(aggregate.files_modified) == 12
    assert aggregate.summary == "Completed 12 task(s), modified 12 file(s)"


def test_reports_dir_holds_only_report_pairs(tmp_path, clock, s1, s2):
    reports = tmp_path / "docs" / "daily-logs"
    merger = LogMerger(reports, clock=clock, lock_dir=tmp_path / ".claude" / "locks")

    merger.merge_session(s1)
    merger.merge_session(s2)

    assert sorted(p.name for p in reports.iterdir()) == ["2026-03-14.json", "2026-03-14.md"]
