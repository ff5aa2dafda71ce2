"""
AUTOPILOT MCP Tools — One Handler per Action

Handlers behind tools/call, one per action:
  - generate_workflow_yaml: CI pipeline for a repo
  - check_pr_status / undraft_pr / merge_pr / delete_branch: PR helpers
  - add_jira_comment: comment on an existing ticket
  - audit_repo: detect + reconcile, never prompts

Bad arguments raise ToolError and come back as an isError result.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from loguru import logger

from autopilot.config_loader import AutopilotConfig
from autopilot.detector import detect
from autopilot.github import MERGE_METHODS, AccessDenied, GitHubClient, GitHubError, validate_repo_name
from autopilot.jira import JiraStore
from autopilot.reconciler import reconcile
from autopilot.resolver import FixedResolver
from autopilot.store import TicketStoreError
from autopilot.workflow import DEPLOY_TARGETS, LANGUAGES, generate_workflow_yaml


class ToolError(Exception):
    """Reported to the caller as an isError tool result."""


@dataclass
class ToolContext:
    """Config plus lazily-built API clients. Tests pass their own clients."""

    config: AutopilotConfig
    github: GitHubClient | None = None
    jira: JiraStore | None = None

    def get_github(self) -> GitHubClient:
        if self.github is None:
            self.github = GitHubClient.from_settings(self.config.github, self.config.http_timeout)
        return self.github

    def get_jira(self) -> JiraStore:
        if self.jira is None:
            self.jira = JiraStore.from_settings(self.config.jira, self.config.http_timeout)
        return self.jira


def text_result(text: str, is_error: bool = False) -> dict[str, Any]:
    result: dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result


def _arg(args: dict[str, Any], name: str, kind: type = str, required: bool = True) -> Any:
    value = args.get(name)
    if value is None:
        if required:
            raise ToolError(f"Missing required argument: {name}")
        return None
    # bool is an int subclass; a PR number of True is not a PR number
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ToolError(f"Argument {name} must be of type {kind.__name__}")
    return value


def _repo_arg(args: dict[str, Any]) -> str:
    repo_name = _arg(args, "repoName")
    if not validate_repo_name(repo_name):
        raise ToolError(f'Invalid repoName {repo_name!r}. Use "owner/repo".')
    return repo_name


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------

def handle_generate_workflow_yaml(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    try:
        yaml_text = generate_workflow_yaml(
            language=_arg(args, "language"),
            repo_name=_arg(args, "repoName"),
            build_command=_arg(args, "buildCommand", required=False),
            test_command=_arg(args, "testCommand", required=False),
            deploy_target=_arg(args, "deployTarget", required=False),
        )
    except ValueError as e:
        raise ToolError(str(e)) from e
    return text_result(yaml_text)


def handle_check_pr_status(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    repo_name = _repo_arg(args)
    ref = _arg(args, "ref")
    try:
        checks = ctx.get_github().get_pull_request_checks(repo_name, ref)
    except GitHubError as e:
        raise ToolError(str(e)) from e
    return text_result(json.dumps(checks, indent=2))


def handle_add_jira_comment(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    issue_key = _arg(args, "issueKey")
    body = _arg(args, "commentBody")
    try:
        ctx.get_jira().add_comment(issue_key, body)
    except TicketStoreError as e:
        raise ToolError(f"Failed to add comment: {e.message}") from e
    return text_result(f"Comment added to {issue_key}")


def handle_delete_branch(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    repo_name = _repo_arg(args)
    branch_name = _arg(args, "branchName")
    result = ctx.get_github().delete_branch(repo_name, branch_name)
    if result["deleted"]:
        return text_result(f"Successfully deleted branch {branch_name}")
    return text_result(f"Failed to delete branch: {result['error']}", is_error=True)


def handle_undraft_pr(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    repo_name = _repo_arg(args)
    pull_number = _arg(args, "pullNumber", int)
    result = ctx.get_github().mark_ready_for_review(repo_name, pull_number)
    if result["success"]:
        return text_result(f"Successfully marked PR #{pull_number} as Ready for Review.")
    return text_result(f"Failed to undraft PR: {result['error']}", is_error=True)


def handle_merge_pr(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    repo_name = _repo_arg(args)
    pull_number = _arg(args, "pullNumber", int)
    method = _arg(args, "method", required=False) or "squash"
    if method not in MERGE_METHODS:
        raise ToolError(f"method must be one of {MERGE_METHODS}")
    result = ctx.get_github().merge_pull_request(repo_name, pull_number, method)
    if result["merged"]:
        return text_result(f"Successfully merged PR #{pull_number}.")
    return text_result(f"Failed to merge PR: {result['message']}", is_error=True)


def handle_audit_repo(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    """Detect + reconcile without a human. Falls back to a fixed project policy."""
    repo_name = _repo_arg(args)
    project = _arg(args, "projectKey", required=False) or ctx.config.jira.project_key
    fallback = _arg(args, "fallbackProjectKey", required=False)
    match = _arg(args, "matchStrategy", required=False) or ctx.config.jira.match_strategy

    github = ctx.get_github()
    try:
        access = github.check_repo_access(repo_name)
        if not access.accessible:
            raise AccessDenied(repo_name, access.error or "unknown")
        root_files = github.get_root_files(repo_name)
        workflow_files = github.get_directory_files(repo_name, ".github/workflows")
    except (AccessDenied, GitHubError) as e:
        raise ToolError(str(e)) from e

    findings = detect(root_files, workflow_files, repo_name)
    logger.info(f"[TOOLS] audit_repo {repo_name}: {len(findings)} finding(s)")

    store = ctx.get_jira()
    try:
        report = reconcile(
            findings,
            project,
            store,
            FixedResolver(store, preferred=fallback),
            issue_type=ctx.config.jira.issue_type,
            match=match,
        )
    except ValueError as e:
        raise ToolError(str(e)) from e

    payload = {"repo": repo_name, "findings": len(findings), **report.to_dict()}
    return text_result(json.dumps(payload, indent=2), is_error=report.halted)


HANDLERS = {
    "generate_workflow_yaml": handle_generate_workflow_yaml,
    "check_pr_status": handle_check_pr_status,
    "add_jira_comment": handle_add_jira_comment,
    "delete_branch": handle_delete_branch,
    "undraft_pr": handle_undraft_pr,
    "merge_pr": handle_merge_pr,
    "audit_repo": handle_audit_repo,
}


# --- tools/list schema ---

_REPO = {"type": "string", "description": "Full repository name (owner/repo)"}

TOOLS_LIST: list[dict[str, Any]] = [
    {
        "name": "generate_workflow_yaml",
        "description": "Generates a GitHub Actions CI pipeline YAML for a given language.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "language": {"type": "string", "enum": sorted(LANGUAGES)},
                "repoName": _REPO,
                "buildCommand": {"type": "string", "description": "Custom build command"},
                "testCommand": {"type": "string", "description": "Custom test command"},
                "deployTarget": {"type": "string", "enum": list(DEPLOY_TARGETS)},
            },
            "required": ["language", "repoName"],
            "additionalProperties": False,
        },
        "annotations": {"readOnlyHint": True},
    },
    {
        "name": "check_pr_status",
        "description": "Checks the CI/CD status of a Pull Request for a given branch.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "repoName": _REPO,
                "ref": {"type": "string", "description": "Branch name or commit SHA"},
            },
            "required": ["repoName", "ref"],
            "additionalProperties": False,
        },
        "annotations": {"readOnlyHint": True},
    },
    {
        "name": "add_jira_comment",
        "description": "Post a comment to a Jira ticket.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "issueKey": {"type": "string", "description": "Jira issue key, e.g. PROJ-123"},
                "commentBody": {"type": "string"},
            },
            "required": ["issueKey", "commentBody"],
            "additionalProperties": False,
        },
    },
    {
        "name": "delete_branch",
        "description": "Delete a branch from the repository.",
        "inputSchema": {
            "type": "object",
            "properties": {"repoName": _REPO, "branchName": {"type": "string"}},
            "required": ["repoName", "branchName"],
            "additionalProperties": False,
        },
        "annotations": {"destructiveHint": True},
    },
    {
        "name": "undraft_pr",
        "description": "Mark a Pull Request as 'Ready for Review' (remove Draft status).",
        "inputSchema": {
            "type": "object",
            "properties": {"repoName": _REPO, "pullNumber": {"type": "integer"}},
            "required": ["repoName", "pullNumber"],
            "additionalProperties": False,
        },
    },
    {
        "name": "merge_pr",
        "description": "Merge a Pull Request into its base branch.",
        "inputSchema": {
            "type": "object",
            "properties": {
                "repoName": _REPO,
                "pullNumber": {"type": "integer"},
                "method": {"type": "string", "enum": list(MERGE_METHODS)},
            },
            "required": ["repoName", "pullNumber"],
            "additionalProperties": False,
        },
        "annotations": {"destructiveHint": True},
    },
    {
        "name": "audit_repo",
        "description": (
            "Check a repository for README, LICENSE, .gitignore and CI workflows, "
            "and create or update one Jira ticket per missing artifact. Never prompts: "
            "an invalid project falls back to fallbackProjectKey or the first available project."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "repoName": _REPO,
                "projectKey": {"type": "string"},
                "fallbackProjectKey": {"type": "string"},
                "matchStrategy": {"type": "string", "enum": ["contains", "exact"]},
            },
            "required": ["repoName"],
            "additionalProperties": False,
        },
    },
]
