"""
AUTOPILOT Project Resolvers

Called by the reconciler when Jira rejects the target project.

  InteractiveResolver: a human picks from a table (blocks on the terminal)
  FixedResolver: automated callers: preferred key, else first offered
"""

from __future__ import annotations

from typing import Protocol, Sequence

from loguru import logger
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from autopilot.store import Collection


class ProjectSource(Protocol):
    def list_projects(self) -> list[Collection]: ...


class InteractiveResolver:
    def __init__(self, source: ProjectSource, console: Console | None = None):
        self.source = source
        self.console = console or Console()

    def list_collections(self) -> list[Collection]:
        self.console.print("[dim]Fetching available projects...[/]")
        return self.source.list_projects()

    def choose_collection(self, candidates: Sequence[Collection]) -> str | None:
        table = Table(title="Available Projects", border_style="yellow")
        table.add_column("#", style="dim")
        table.add_column("Key", style="bold")
        table.add_column("Name")
        for i, c in enumerate(candidates, start=1):
            table.add_row(str(i), c.key, c.name)
        self.console.print(table)

        choice = Prompt.ask(
            "[bold]Select project number or type KEY[/]",
            console=self.console,
            default="",
            show_default=False,
        ).strip()
        if not choice:
            return None
        if choice.isdigit() and 1 <= int(choice) <= len(candidates):
            return candidates[int(choice) - 1].key
        return choice.upper()


class FixedResolver:
    def __init__(self, source: ProjectSource, preferred: str | None = None):
        self.source = source
        self.preferred = preferred

    def list_collections(self) -> list[Collection]:
        return self.source.list_projects()

    def choose_collection(self, candidates: Sequence[Collection]) -> str | None:
        if not candidates:
            return None
        if self.preferred:
            for c in candidates:
                if c.key.upper() == self.preferred.upper():
                    return c.key
        logger.info(f"[RESOLVER] Falling back to first available project: {candidates[0].key}")
        return candidates[0].key
