"""
AUTOPILOT CLI

    autopilot inspect --repo owner/repo
    autopilot inspect --non-interactive --repo owner/repo --fallback-project OPS
    autopilot serve
    autopilot workflow python owner/repo --deploy azure-webapp
    autopilot history -n 20
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from autopilot import __version__
from autopilot.config_loader import AutopilotConfig, ConfigError, load_config
from autopilot.github import GitHubClient
from autopilot.history import RunHistory
from autopilot.inspector import Inspector
from autopilot.jira import JiraStore
from autopilot.resolver import FixedResolver, InteractiveResolver
from autopilot.server import AutopilotServer, serve as serve_stdio
from autopilot.tools import ToolContext
from autopilot.workflow import generate_workflow_yaml

app = typer.Typer(
    name="autopilot",
    help="Repository health inspector with Jira ticket reconciliation.",
    add_completion=False,
    rich_markup_mode="rich",
)

console = Console()

# Exit codes for `inspect`
EXIT_CODES = {
    "healthy": 0,
    "reconciled": 0,
    "halted": 3,
    "access_denied": 2,
    "invalid_repo": 2,
    "interrupted": 130,
}


def setup_logging(verbose: bool = False) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def _load(config_path: Optional[Path]) -> AutopilotConfig:
    try:
        return load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]Config error:[/] {e}")
        raise typer.Exit(code=2)


@app.command()
def inspect(
    repo: Optional[str] = typer.Option(None, "--repo", "-r", help="Repository as owner/repo"),
    project: Optional[str] = typer.Option(None, "--project", "-p", help="Override JIRA_PROJECT_KEY"),
    non_interactive: bool = typer.Option(
        False, "--non-interactive", help="Never prompt; pick a fallback project automatically"
    ),
    fallback_project: Optional[str] = typer.Option(
        None, "--fallback-project", help="Preferred project when the target is rejected"
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config YAML"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Inspect a repository and reconcile its findings with Jira."""
    setup_logging(verbose)
    config = _load(config_path)

    if non_interactive and not repo:
        console.print("[red]--non-interactive requires --repo[/]")
        raise typer.Exit(code=2)

    try:
        store = JiraStore.from_settings(config.jira, config.http_timeout)
    except ConfigError as e:
        console.print(f"[red]Config error:[/] {e}")
        raise typer.Exit(code=2)
    github = GitHubClient.from_settings(config.github, config.http_timeout)

    if non_interactive:
        resolver = FixedResolver(store, preferred=fallback_project)
    else:
        resolver = InteractiveResolver(store, console)

    inspector = Inspector(
        config=config,
        github=github,
        store=store,
        resolver=resolver,
        history=RunHistory(Path(config.history_dir)),
        console=console,
    )
    try:
        result = inspector.run(repo_name=repo, project_key=project)
    finally:
        github.close()
        store.close()

    raise typer.Exit(code=EXIT_CODES.get(result["status"], 1))


@app.command()
def serve(
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config YAML"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Run the MCP tool server on stdio."""
    setup_logging(verbose)
    config = _load(config_path)
    server = AutopilotServer(ToolContext(config=config))
    try:
        serve_stdio(server)
    except Exception:
        logger.exception("Fatal error in MCP server")
        raise typer.Exit(code=1)


@app.command()
def workflow(
    language: str = typer.Argument(..., help="node | python | dotnet"),
    repo: str = typer.Argument(..., help="Repository as owner/repo"),
    build_command: Optional[str] = typer.Option(None, "--build", help="Custom build command"),
    test_command: Optional[str] = typer.Option(None, "--test", help="Custom test command"),
    deploy: Optional[str] = typer.Option(None, "--deploy", help="Deployment target (azure-webapp)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write to this file"),
):
    """Generate a GitHub Actions CI workflow."""
    try:
        text = generate_workflow_yaml(language, repo, build_command, test_command, deploy)
    except ValueError as e:
        console.print(f"[red]{e}[/]")
        raise typer.Exit(code=2)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text)
        console.print(f"[green]✅ Wrote {output}[/]")
    else:
        typer.echo(text, nl=False)


@app.command()
def history(
    n: int = typer.Option(10, "-n", help="Number of recent runs to show"),
    config_path: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to config YAML"),
):
    """Show recent inspection runs."""
    config = _load(config_path)
    log = RunHistory(Path(config.history_dir))
    entries = log.get_recent(n)
    if not entries:
        console.print("No runs recorded yet.")
        return

    table = Table(title="Recent Runs", border_style="bright_green")
    table.add_column("When", style="dim")
    table.add_column("Repo")
    table.add_column("Project")
    table.add_column("Status")
    table.add_column("C/U/A")
    for e in entries:
        s = e.get("outcomes_summary", {})
        table.add_row(
            e.get("timestamp", "?")[:19],
            e.get("repo") or "—",
            e.get("project") or "—",
            e.get("status", "?"),
            f"{s.get('created', 0)}/{s.get('updated', 0)}/{s.get('abandoned', 0)}",
        )
    console.print(table)

    stats = log.get_stats()
    console.print(
        f"[bold]{stats['total_runs']} runs | "
        f"{stats['tickets_created']} created | {stats['tickets_updated']} updated[/]"
    )


@app.command()
def version():
    """Show version information."""
    console.print(Panel.fit(
        f"[bold cyan]Repo Autopilot[/]\n[yellow]Version:[/] {__version__}",
        border_style="cyan",
    ))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
