"""
AUTOPILOT GitHub Client

Everything the inspector and the tool server need from GitHub:
  - repo discovery and access checks
  - root / directory listings (the detector's input)
  - pull request helpers: check status, undraft, merge, branch cleanup

Access problems on listings (401/403) raise AccessDenied. A 404 listing is
empty: a missing directory, or a repository with no commits. The PR
helpers return result dicts instead, so tool callers can report failures
without a traceback.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import httpx
from loguru import logger

from autopilot.config_loader import GitHubSettings

REPO_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9-]+/[a-zA-Z0-9-._]+$")
MERGE_METHODS = ("merge", "squash", "rebase")

_READY_FOR_REVIEW_MUTATION = """
mutation($id: ID!) {
  markPullRequestReadyForReview(input: {pullRequestId: $id}) {
    pullRequest { number isDraft }
  }
}
"""


class AccessDenied(Exception):
    """Repository not found, or the token cannot see it."""

    def __init__(self, repo_name: str, status: str):
        super().__init__(f"Repository {repo_name} not accessible: {status}")
        self.repo_name = repo_name
        self.status = status


class GitHubError(Exception):
    """Unexpected GitHub API failure."""


@dataclass(frozen=True)
class RepoRef:
    full_name: str
    private: bool = False


@dataclass(frozen=True)
class RepoAccess:
    accessible: bool
    error: str | None = None


def validate_repo_name(name: str) -> bool:
    return bool(REPO_NAME_PATTERN.match(name))


class GitHubClient:
    def __init__(
        self,
        token: str = "",
        api_base: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "repo-autopilot",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            logger.warning("[GITHUB] No token configured. Private repos will be invisible.")
        self._client = httpx.Client(
            base_url=api_base.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: GitHubSettings,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> "GitHubClient":
        return cls(settings.token, settings.api_base, timeout, transport)

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Repositories
    # ------------------------------------------------------------------

    def list_accessible_repos(self, max_pages: int = 10) -> list[RepoRef]:
        """List repos visible to the token. Empty list on failure."""
        repos: list[RepoRef] = []
        for page in range(1, max_pages + 1):
            try:
                response = self._client.get(
                    "/user/repos",
                    params={"per_page": 100, "page": page, "sort": "updated"},
                )
            except httpx.HTTPError as e:
                logger.warning(f"[GITHUB] Failed to list repositories: {e}")
                return repos
            if not response.is_success:
                logger.warning(f"[GITHUB] Failed to list repositories: HTTP {response.status_code}")
                return repos

            batch = response.json()
            repos.extend(
                RepoRef(full_name=r["full_name"], private=bool(r.get("private")))
                for r in batch
            )
            if len(batch) < 100:
                break
        return repos

    def check_repo_access(self, repo_name: str) -> RepoAccess:
        try:
            response = self._client.get(f"/repos/{repo_name}")
        except httpx.HTTPError as e:
            return RepoAccess(accessible=False, error=str(e))
        if response.is_success:
            return RepoAccess(accessible=True)
        return RepoAccess(accessible=False, error=f"{response.status_code} {response.reason_phrase}")

    def get_root_files(self, repo_name: str) -> list[str]:
        """
        Names at the repository root.

        GitHub answers 404 "This repository is empty." for a repo with no
        commits, so a 404 here is an empty listing. Callers establish access
        with check_repo_access first; 401/403 still raise AccessDenied.
        """
        return self._list_contents(repo_name, "")

    def get_directory_files(self, repo_name: str, path: str) -> list[str]:
        """Names in a directory. A missing directory is an empty listing."""
        return self._list_contents(repo_name, path)

    def _list_contents(self, repo_name: str, path: str) -> list[str]:
        try:
            response = self._client.get(f"/repos/{repo_name}/contents/{path}")
        except httpx.HTTPError as e:
            raise GitHubError(f"Listing {repo_name}/{path} failed: {e}") from e

        if response.status_code == 404:
            return []
        if response.status_code in (401, 403):
            raise AccessDenied(repo_name, f"{response.status_code} {response.reason_phrase}")
        if not response.is_success:
            raise GitHubError(f"Listing {repo_name}/{path} failed: HTTP {response.status_code}")

        data = response.json()
        if not isinstance(data, list):
            # Path is a file, not a directory
            return []
        return [entry["name"] for entry in data]

    # ------------------------------------------------------------------
    # Pull requests
    # ------------------------------------------------------------------

    def get_pull_request_checks(self, repo_name: str, ref: str) -> dict[str, Any]:
        """Summarize check runs for a branch or commit."""
        response = self._client.get(f"/repos/{repo_name}/commits/{ref}/check-runs")
        if not response.is_success:
            raise GitHubError(
                f"Could not fetch checks for {repo_name}@{ref}: HTTP {response.status_code}"
            )

        runs = response.json().get("check_runs", [])
        checks = [
            {
                "name": run.get("name"),
                "status": run.get("status"),
                "conclusion": run.get("conclusion"),
                "url": run.get("html_url"),
            }
            for run in runs
        ]
        return {
            "ref": ref,
            "total": len(checks),
            "state": _overall_state(checks),
            "checks": checks,
        }

    def delete_branch(self, repo_name: str, branch_name: str) -> dict[str, Any]:
        response = self._client.delete(f"/repos/{repo_name}/git/refs/heads/{branch_name}")
        if response.status_code == 204:
            logger.info(f"[GITHUB] Deleted branch {branch_name} in {repo_name}")
            return {"deleted": True, "error": None}
        return {"deleted": False, "error": _github_message(response)}

    def mark_ready_for_review(self, repo_name: str, pull_number: int) -> dict[str, Any]:
        pr = self._client.get(f"/repos/{repo_name}/pulls/{pull_number}")
        if not pr.is_success:
            return {"success": False, "error": _github_message(pr)}

        pr_data = pr.json()
        if not pr_data.get("draft"):
            return {"success": True, "error": None}

        response = self._client.post("/graphql", json={
            "query": _READY_FOR_REVIEW_MUTATION,
            "variables": {"id": pr_data["node_id"]},
        })
        if not response.is_success:
            return {"success": False, "error": _github_message(response)}
        errors = response.json().get("errors")
        if errors:
            return {"success": False, "error": "; ".join(e.get("message", "") for e in errors)}

        logger.info(f"[GITHUB] PR #{pull_number} in {repo_name} marked ready for review")
        return {"success": True, "error": None}

    def merge_pull_request(
        self, repo_name: str, pull_number: int, method: str = "squash"
    ) -> dict[str, Any]:
        if method not in MERGE_METHODS:
            raise ValueError(f"Unknown merge method: {method}. Use one of {MERGE_METHODS}")

        response = self._client.put(
            f"/repos/{repo_name}/pulls/{pull_number}/merge",
            json={"merge_method": method},
        )
        if response.is_success:
            data = response.json()
            logger.info(f"[GITHUB] Merged PR #{pull_number} in {repo_name}")
            return {"merged": bool(data.get("merged")), "message": data.get("message"), "sha": data.get("sha")}
        return {"merged": False, "message": _github_message(response), "sha": None}


def _overall_state(checks: list[dict[str, Any]]) -> str:
    if not checks:
        return "none"
    if any(c["status"] != "completed" for c in checks):
        return "pending"
    if all(c["conclusion"] in ("success", "neutral", "skipped") for c in checks):
        return "success"
    return "failure"


def _github_message(response: httpx.Response) -> str:
    try:
        message = response.json().get("message")
    except (ValueError, AttributeError):
        message = None
    return f"{response.status_code}: {message or response.reason_phrase}"
