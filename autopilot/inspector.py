"""
AUTOPILOT Inspector — One Repo, One Run

Deterministic orchestration, no cleverness:
  - Pick the repository (argument, or ask)
  - Verify access (fatal if denied)
  - List root + .github/workflows, run the checklist
  - Reconcile findings against Jira
  - Report every outcome and append to history

It never decides what a finding means. It only coordinates.
"""

from __future__ import annotations

from typing import Any

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from autopilot.config_loader import AutopilotConfig
from autopilot.detector import check, detect
from autopilot.github import AccessDenied, GitHubClient, GitHubError, validate_repo_name
from autopilot.history import RunHistory
from autopilot.reconciler import ABANDONED, CREATED, UPDATED, CollectionResolver, ReconcileReport, reconcile
from autopilot.store import TicketStore

WORKFLOWS_DIR = ".github/workflows"
MAX_REPOS_SHOWN = 15


class Inspector:
    def __init__(
        self,
        config: AutopilotConfig,
        github: GitHubClient,
        store: TicketStore,
        resolver: CollectionResolver,
        history: RunHistory | None = None,
        console: Console | None = None,
    ):
        self.config = config
        self.github = github
        self.store = store
        self.resolver = resolver
        self.history = history
        self.console = console or Console()

    def run(self, repo_name: str | None = None, project_key: str | None = None) -> dict[str, Any]:
        """Inspect one repository and reconcile its findings."""
        project = project_key or self.config.jira.project_key
        result: dict[str, Any] = {
            "repo": repo_name,
            "status": "pending",
            "project": project,
            "outcomes": [],
            "error": None,
        }

        self.console.print(Panel(
            "Checks a GitHub repository for common issues and files Jira tickets for them.\n"
            f"[bold]Target Jira Project:[/] {project}",
            title="GitHub Repo Health Inspector",
            border_style="bright_green",
        ))

        try:
            if not repo_name:
                repo_name = self._select_repo()
                result["repo"] = repo_name

            if not validate_repo_name(repo_name):
                self.console.print('[red]❌ Invalid format. Please use "owner/repo".[/]')
                result["status"] = "invalid_repo"
                result["error"] = f"Invalid repository name: {repo_name!r}"
                return result

            self.console.print(f"\n🔍 Verifying access to [bold]{repo_name}[/]...")
            access = self.github.check_repo_access(repo_name)
            if not access.accessible:
                raise AccessDenied(repo_name, access.error or "unknown")
            self.console.print("[green]✅ Access confirmed. Inspecting repository...[/]")

            root_files = self.github.get_root_files(repo_name)
            workflow_files = self.github.get_directory_files(repo_name, WORKFLOWS_DIR)
            self._print_checks(root_files, workflow_files)

            findings = detect(root_files, workflow_files, repo_name)
            if not findings:
                self.console.print("\n[bold green]🎉 No common issues found! Repository looks healthy.[/]")
                result["status"] = "healthy"
                return result

            self.console.print(f"\nFound {len(findings)} issue(s). Reconciling Jira tickets...")
            report = reconcile(
                findings,
                project,
                self.store,
                self.resolver,
                issue_type=self.config.jira.issue_type,
                match=self.config.jira.match_strategy,
            )
            self._print_report(report)

            result["project"] = report.collection
            result["outcomes"] = [o.to_dict() for o in report.outcomes]
            if report.halted:
                result["status"] = "halted"
                result["error"] = report.halt_reason
            else:
                result["status"] = "reconciled"

        except AccessDenied as e:
            logger.error(f"[INSPECT] {e}")
            self.console.print("\n[red]❌ Error: Repository not found or token does not have access.[/]")
            self.console.print(f"[red]Status: {e.status}[/]")
            self.console.print("Please check GITHUB_TOKEN and repository permissions.")
            result["status"] = "access_denied"
            result["error"] = str(e)
        except GitHubError as e:
            logger.error(f"[INSPECT] {e}")
            self.console.print(f"[red]💥 GitHub error: {e}[/]")
            result["status"] = "error"
            result["error"] = str(e)
        except KeyboardInterrupt:
            self.console.print("\n[yellow]Interrupted.[/]")
            result["status"] = "interrupted"
        finally:
            if self.history is not None and result["status"] != "pending":
                self.history.record(result)

        return result

    # -----------------------------------------------------------------------
    # Repo selection
    # -----------------------------------------------------------------------

    def _select_repo(self) -> str:
        self.console.print("\nFetching accessible repositories...")
        repos = self.github.list_accessible_repos()

        if not repos:
            self.console.print("No repositories found (or failed to list).")
            return Prompt.ask("Enter repository (owner/repo)", console=self.console).strip()

        self.console.print("\n[bold]Found Repositories:[/]")
        for i, r in enumerate(repos[:MAX_REPOS_SHOWN], start=1):
            lock = " [dim](🔒 Private)[/]" if r.private else ""
            self.console.print(f"[{i}] {r.full_name}{lock}")
        if len(repos) > MAX_REPOS_SHOWN:
            self.console.print(f"... and {len(repos) - MAX_REPOS_SHOWN} more.")

        choice = Prompt.ask(
            '\nSelect repository number or type "owner/repo"', console=self.console
        ).strip()
        if choice.isdigit() and 1 <= int(choice) <= len(repos):
            return repos[int(choice) - 1].full_name
        return choice

    # -----------------------------------------------------------------------
    # Display Helpers
    # -----------------------------------------------------------------------

    def _print_checks(self, root_files: list[str], workflow_files: list[str]) -> None:
        for c in check(root_files, workflow_files):
            if c.passed:
                detail = f" ({c.detail})" if c.detail else ""
                self.console.print(f"   ✅ {c.label} found{detail}")
            else:
                self.console.print(f"   ❌ Missing {c.label}")

    def _print_report(self, report: ReconcileReport) -> None:
        table = Table(title=f"Jira Tickets ({report.collection})", border_style="cyan")
        table.add_column("Finding")
        table.add_column("Outcome")
        table.add_column("Ticket / Error")

        colors = {CREATED: "green", UPDATED: "cyan", ABANDONED: "red"}
        for o in report.outcomes:
            table.add_row(
                o.finding.summary,
                f"[{colors[o.status]}]{o.status}[/]",
                o.key or (o.error or ""),
            )
        self.console.print(table)

        if report.halted:
            self.console.print(f"[red]🚫 Run halted: {report.halt_reason}[/]")
        self.console.print(
            f"[bold]{report.count(CREATED)} created | "
            f"{report.count(UPDATED)} updated | "
            f"{report.count(ABANDONED)} abandoned[/]"
        )
