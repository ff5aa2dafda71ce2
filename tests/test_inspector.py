"""Tests for the inspector run: access gate, reconciliation, reporting, history."""

from __future__ import annotations

import io

import httpx
from rich.console import Console

from autopilot.github import GitHubClient, RepoRef
from autopilot.history import RunHistory
from autopilot.inspector import Inspector
from autopilot.resolver import FixedResolver, InteractiveResolver
from autopilot.store import Collection

from conftest import FakeGitHub, FakeStore


def _inspector(config, github, store, tmp_path, resolver=None) -> tuple[Inspector, io.StringIO]:
    out = io.StringIO()
    inspector = Inspector(
        config=config,
        github=github,
        store=store,
        resolver=resolver or FixedResolver(store),
        history=RunHistory(tmp_path / "logs"),
        console=Console(file=out, width=200),
    )
    return inspector, out


def test_reconciles_findings(config, store, tmp_path):
    github = FakeGitHub(root_files=["app.js", ".gitignore"])
    inspector, out = _inspector(config, github, store, tmp_path)

    result = inspector.run("acme/widget")

    assert result["status"] == "reconciled"
    assert [o["status"] for o in result["outcomes"]] == ["created"] * 3
    assert [o["key"] for o in result["outcomes"]] == ["DOT-1", "DOT-2", "DOT-3"]
    text = out.getvalue()
    assert "Missing README" in text
    assert ".gitignore found" in text
    assert "3 created" in text


def test_healthy_repo(config, store, tmp_path):
    github = FakeGitHub(root_files=["README.md", "LICENSE", ".gitignore"], workflow_files=["ci.yml"])
    inspector, out = _inspector(config, github, store, tmp_path)

    result = inspector.run("acme/widget")

    assert result["status"] == "healthy"
    assert store.calls == []
    assert "looks healthy" in out.getvalue()


def test_access_denied_never_reconciles(config, store, tmp_path):
    github = FakeGitHub(accessible=False)
    inspector, _ = _inspector(config, github, store, tmp_path)

    result = inspector.run("acme/secret")

    assert result["status"] == "access_denied"
    assert "acme/secret" in result["error"]
    assert store.calls == []
    assert github.listed == []


def test_invalid_repo_name(config, store, tmp_path):
    inspector, _ = _inspector(config, FakeGitHub(), store, tmp_path)

    result = inspector.run("not a repo")

    assert result["status"] == "invalid_repo"
    assert store.calls == []


def test_project_override_and_recovery(config, tmp_path):
    store = FakeStore(valid_projects=["OPS"], projects=[Collection("OPS")])
    github = FakeGitHub(root_files=["README.md", "LICENSE"], workflow_files=["ci.yml"])
    inspector, _ = _inspector(config, github, store, tmp_path)

    result = inspector.run("acme/widget", project_key="BAD")

    assert result["status"] == "reconciled"
    assert result["project"] == "OPS"
    assert result["outcomes"][0]["key"] == "OPS-1"


def test_halted_run(config, tmp_path):
    store = FakeStore(valid_projects=[], projects=[])
    inspector, out = _inspector(config, FakeGitHub(), store, tmp_path)

    result = inspector.run("acme/widget")

    assert result["status"] == "halted"
    assert len(result["outcomes"]) == 4
    assert all(o["status"] == "abandoned" for o in result["outcomes"])
    assert "Run halted" in out.getvalue()


def test_every_run_is_recorded(config, store, tmp_path):
    inspector, _ = _inspector(config, FakeGitHub(root_files=["README"]), store, tmp_path)
    inspector.run("acme/widget")
    inspector.run("bad name")

    entries = RunHistory(tmp_path / "logs").get_all()
    assert [e["status"] for e in entries] == ["reconciled", "invalid_repo"]
    assert entries[0]["outcomes_summary"]["created"] == 3


def test_repo_selection_by_number(config, store, tmp_path, monkeypatch):
    github = FakeGitHub(
        root_files=["README.md", "LICENSE", ".gitignore"],
        workflow_files=["ci.yml"],
        repos=[RepoRef("acme/one"), RepoRef("acme/two", private=True)],
    )
    monkeypatch.setattr("autopilot.inspector.Prompt.ask", lambda *a, **k: "2")
    inspector, out = _inspector(config, github, store, tmp_path)

    result = inspector.run()

    assert result["repo"] == "acme/two"
    assert github.listed == ["acme/two"]
    assert "Private" in out.getvalue()


def test_repo_selection_by_name_when_none_listed(config, store, tmp_path, monkeypatch):
    github = FakeGitHub(root_files=["README.md", "LICENSE", ".gitignore"], workflow_files=["ci.yml"])
    monkeypatch.setattr("autopilot.inspector.Prompt.ask", lambda *a, **k: " acme/typed ")
    inspector, _ = _inspector(config, github, store, tmp_path)

    assert inspector.run()["repo"] == "acme/typed"


def test_empty_repository_is_reconciled_not_denied(config, store, tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/repos/acme/empty":
            return httpx.Response(200, json={"full_name": "acme/empty"})
        return httpx.Response(404, json={"message": "This repository is empty."})

    github = GitHubClient("tkn", transport=httpx.MockTransport(handler))
    inspector, _ = _inspector(config, github, store, tmp_path)

    result = inspector.run("acme/empty")

    assert result["status"] == "reconciled"
    assert [o["kind"] for o in result["outcomes"]] == ["readme", "license", "gitignore", "workflows"]
    assert all(o["status"] == "created" for o in result["outcomes"])


def test_closed_terminal_during_project_prompt_halts_and_records(config, tmp_path, monkeypatch):
    def _eof(*args, **kwargs):
        raise EOFError

    store = FakeStore(valid_projects=["OPS"])
    monkeypatch.setattr("autopilot.resolver.Prompt.ask", _eof)
    out = io.StringIO()
    console = Console(file=out, width=200)
    inspector = Inspector(
        config=config,
        github=FakeGitHub(),
        store=store,
        resolver=InteractiveResolver(store, console),
        history=RunHistory(tmp_path / "logs"),
        console=console,
    )

    result = inspector.run("acme/widget")

    assert result["status"] == "halted"
    assert "project selection failed" in result["error"]
    assert [e["status"] for e in RunHistory(tmp_path / "logs").get_all()] == ["halted"]
