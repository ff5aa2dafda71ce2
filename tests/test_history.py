"""Tests for the append-only run history."""

from __future__ import annotations

from autopilot.history import RunHistory


def _result(repo: str, status: str, statuses: list[str]) -> dict:
    return {
        "repo": repo,
        "status": status,
        "project": "DOT",
        "error": None,
        "outcomes": [{"summary": f"s{i}", "status": s} for i, s in enumerate(statuses)],
    }


def test_record_appends_jsonl(tmp_path):
    history = RunHistory(tmp_path / "logs")
    history.record(_result("acme/a", "reconciled", ["created", "created", "abandoned"]))
    history.record(_result("acme/b", "healthy", []))

    lines = history.history_file.read_text().splitlines()
    assert len(lines) == 2

    entries = history.get_all()
    assert entries[0]["repo"] == "acme/a"
    assert entries[0]["outcomes_summary"] == {"created": 2, "updated": 0, "abandoned": 1}
    assert entries[1]["status"] == "healthy"


def test_get_recent_returns_tail(tmp_path):
    history = RunHistory(tmp_path)
    for i in range(5):
        history.record(_result(f"acme/r{i}", "healthy", []))

    recent = history.get_recent(2)
    assert [e["repo"] for e in recent] == ["acme/r3", "acme/r4"]
    assert history.get_recent(0) == []


def test_corrupt_lines_are_skipped(tmp_path):
    history = RunHistory(tmp_path)
    history.record(_result("acme/a", "healthy", []))
    with open(history.history_file, "a") as f:
        f.write("{not json\n")
    history.record(_result("acme/b", "healthy", []))

    assert [e["repo"] for e in history.get_all()] == ["acme/a", "acme/b"]


def test_stats(tmp_path):
    history = RunHistory(tmp_path)
    assert history.get_stats() == {"total_runs": 0}

    history.record(_result("acme/a", "reconciled", ["created", "updated"]))
    history.record(_result("acme/a", "reconciled", ["updated", "updated"]))
    history.record(_result("acme/b", "halted", ["abandoned"]))

    stats = history.get_stats()
    assert stats["total_runs"] == 3
    assert stats["statuses"] == {"reconciled": 2, "halted": 1}
    assert stats["repos"] == ["acme/a", "acme/b"]
    assert stats["tickets_created"] == 1
    assert stats["tickets_updated"] == 3
    assert stats["findings_abandoned"] == 1
