"""Shared test fixtures for AUTOPILOT tests."""

from __future__ import annotations

from typing import Any, Sequence

import pytest

from autopilot.config_loader import AutopilotConfig
from autopilot.github import AccessDenied, RepoAccess, RepoRef
from autopilot.store import ApiError, Collection, InvalidCollection, Ticket, TicketStoreError


class FakeStore:
    """In-memory ticket store with substring search, like Jira's `summary ~`."""

    def __init__(
        self,
        valid_projects: Sequence[str] = ("DOT",),
        projects: Sequence[Collection] | None = None,
    ):
        self.valid_projects = set(valid_projects)
        self.projects = list(projects) if projects is not None else [
            Collection(key=p, name=f"Project {p}") for p in sorted(self.valid_projects)
        ]
        self.tickets: dict[str, tuple[str, Ticket]] = {}  # key -> (project, ticket)
        self.calls: list[tuple[str, ...]] = []
        # summary -> error, raised once on the next call for that summary
        self.fail_create: dict[str, Exception] = {}
        self.fail_search: dict[str, Exception] = {}
        self.fail_update: dict[str, Exception] = {}
        self.fail_list_projects: TicketStoreError | None = None
        self.comments: list[tuple[str, str]] = []
        self._counters: dict[str, int] = {}

    def _check(self, collection: str) -> None:
        if collection not in self.valid_projects:
            raise InvalidCollection(collection, "HTTP 400: project: valid project is required", 400)

    def search(self, collection: str, summary: str) -> list[Ticket]:
        self.calls.append(("search", collection, summary))
        if summary in self.fail_search:
            raise self.fail_search.pop(summary)
        self._check(collection)
        return [
            t for project, t in self.tickets.values()
            if project == collection and summary.lower() in t.summary.lower()
        ]

    def create(self, collection: str, summary: str, description: str, kind: str) -> Ticket:
        self.calls.append(("create", collection, summary))
        if summary in self.fail_create:
            raise self.fail_create.pop(summary)
        self._check(collection)
        n = self._counters.get(collection, 0) + 1
        self._counters[collection] = n
        ticket = Ticket(key=f"{collection}-{n}", summary=summary, description=description)
        self.tickets[ticket.key] = (collection, ticket)
        return ticket

    def update(self, key: str, fields: dict[str, Any]) -> Ticket:
        self.calls.append(("update", key, fields.get("summary", "")))
        if fields.get("summary") in self.fail_update:
            raise self.fail_update.pop(fields["summary"])
        project, _ = self.tickets[key]
        ticket = Ticket(key=key, summary=fields["summary"], description=fields["description"])
        self.tickets[key] = (project, ticket)
        return ticket

    def seed(self, collection: str, summary: str, description: str = "") -> Ticket:
        n = self._counters.get(collection, 0) + 1
        self._counters[collection] = n
        ticket = Ticket(key=f"{collection}-{n}", summary=summary, description=description)
        self.tickets[ticket.key] = (collection, ticket)
        return ticket

    def list_projects(self) -> list[Collection]:
        if self.fail_list_projects is not None:
            raise self.fail_list_projects
        return list(self.projects)

    def add_comment(self, key: str, body: str) -> dict[str, Any]:
        if key not in self.tickets:
            raise ApiError("HTTP 404: Issue does not exist", 404)
        self.comments.append((key, body))
        return {"id": str(len(self.comments))}


class ScriptedResolver:
    """Resolver that answers from a fixed script and records what it was offered."""

    def __init__(self, collections: Sequence[Collection], choices: Sequence[str | None] = ()):
        self.collections = list(collections)
        self.choices = list(choices)
        self.offered: list[list[str]] = []
        self.list_calls = 0

    def list_collections(self) -> list[Collection]:
        self.list_calls += 1
        return list(self.collections)

    def choose_collection(self, candidates: Sequence[Collection]) -> str | None:
        self.offered.append([c.key for c in candidates])
        return self.choices.pop(0) if self.choices else None


class FakeGitHub:
    def __init__(
        self,
        root_files: Sequence[str] = (),
        workflow_files: Sequence[str] = (),
        accessible: bool = True,
        repos: Sequence[RepoRef] = (),
    ):
        self.root_files = list(root_files)
        self.workflow_files = list(workflow_files)
        self.accessible = accessible
        self.repos = list(repos)
        self.listed: list[str] = []

    def list_accessible_repos(self) -> list[RepoRef]:
        return list(self.repos)

    def check_repo_access(self, repo_name: str) -> RepoAccess:
        if self.accessible:
            return RepoAccess(accessible=True)
        return RepoAccess(accessible=False, error="404 Not Found")

    def get_root_files(self, repo_name: str) -> list[str]:
        if not self.accessible:
            raise AccessDenied(repo_name, "404 Not Found")
        self.listed.append(repo_name)
        return list(self.root_files)

    def get_directory_files(self, repo_name: str, path: str) -> list[str]:
        return list(self.workflow_files)


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def config() -> AutopilotConfig:
    return AutopilotConfig.model_validate({
        "jira": {"base_url": "https://jira.example.com", "project_key": "DOT"},
        "github": {"token": "test-token"},
    })
