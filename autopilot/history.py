"""
AUTOPILOT Run History — Append-Only Inspection Log

Every inspection is recorded in .autopilot/logs/history.jsonl:
  - which repo was checked, against which Jira project
  - how each finding ended (created / updated / abandoned)
  - why a run stopped early

One JSON object per line. Never rewritten, only appended.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger


class RunHistory:
    """
    Manages the append-only run log.

    Storage: <log_dir>/history.jsonl
    """

    def __init__(self, log_dir: Path):
        self.log_dir = log_dir
        self.history_file = self.log_dir / "history.jsonl"

    def record(self, result: dict[str, Any]) -> None:
        """
        Append a finished inspection to the log.

        Args:
            result: The result dict from Inspector.run()
        """
        self.log_dir.mkdir(parents=True, exist_ok=True)

        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "repo": result.get("repo"),
            "status": result.get("status", "unknown"),
            "project": result.get("project"),
            "error": result.get("error"),
            "outcomes_summary": self._summarize_outcomes(result.get("outcomes", [])),
        }

        try:
            with open(self.history_file, "a") as f:
                f.write(json.dumps(entry) + "\n")
            logger.debug(f"[HISTORY] Recorded: {entry['repo']} → {entry['status']}")
        except OSError as e:
            logger.warning(f"[HISTORY] Failed to write history: {e}")

    def get_recent(self, n: int = 10) -> list[dict]:
        """Read the most recent N entries."""
        return self.get_all()[-n:] if n > 0 else []

    def get_all(self) -> list[dict]:
        """Read all entries, skipping corrupt lines."""
        if not self.history_file.exists():
            return []
        try:
            lines = self.history_file.read_text().strip().splitlines()
        except OSError as e:
            logger.warning(f"[HISTORY] Failed to read history: {e}")
            return []

        entries = []
        for line in lines:
            try:
                entries.append(json.loads(line))
            except json.JSONDecodeError:
                continue
        return entries

    def get_stats(self) -> dict[str, Any]:
        """Summary statistics across all runs."""
        entries = self.get_all()
        if not entries:
            return {"total_runs": 0}

        statuses: dict[str, int] = {}
        totals = {"created": 0, "updated": 0, "abandoned": 0}
        for entry in entries:
            s = entry.get("status", "unknown")
            statuses[s] = statuses.get(s, 0) + 1
            for k in totals:
                totals[k] += entry.get("outcomes_summary", {}).get(k, 0)

        return {
            "total_runs": len(entries),
            "statuses": statuses,
            "repos": sorted({e["repo"] for e in entries if e.get("repo")}),
            "tickets_created": totals["created"],
            "tickets_updated": totals["updated"],
            "findings_abandoned": totals["abandoned"],
        }

    @staticmethod
    def _summarize_outcomes(outcomes: list[dict]) -> dict[str, int]:
        summary = {"created": 0, "updated": 0, "abandoned": 0}
        for outcome in outcomes:
            status = outcome.get("status")
            if status in summary:
                summary[status] += 1
        return summary
