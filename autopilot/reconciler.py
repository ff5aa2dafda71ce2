"""
AUTOPILOT Reconciler — Finding → Ticket

Drives each finding to exactly one ticket in the target project:

  search → update first match   → updated(key)
         → no match → create    → created(key)
  InvalidCollection             → ask the resolver for a new project,
                                  retry the SAME finding
  any other failure             → abandoned(error), move on

Findings are processed one at a time, in detector order. A project
replaced during recovery stays in effect for the rest of the run and is
handed back in the report so the caller can reuse it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, Sequence

from loguru import logger

from autopilot.detector import Finding
from autopilot.store import Collection, InvalidCollection, Ticket, TicketStore, TicketStoreError

CREATED = "created"
UPDATED = "updated"
ABANDONED = "abandoned"


class ResolverExhausted(Exception):
    """No replacement project could be obtained. Fatal to the rest of the run."""


class CollectionResolver(Protocol):
    def list_collections(self) -> list[Collection]: ...

    def choose_collection(self, candidates: Sequence[Collection]) -> str | None: ...


@dataclass(frozen=True)
class Outcome:
    finding: Finding
    status: str
    collection: str
    key: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "summary": self.finding.summary,
            "kind": self.finding.kind,
            "status": self.status,
            "key": self.key,
            "project": self.collection,
            "error": self.error,
        }


@dataclass
class ReconcileReport:
    collection: str
    outcomes: list[Outcome] = field(default_factory=list)
    halted: bool = False
    halt_reason: str | None = None

    def count(self, status: str) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    def to_dict(self) -> dict[str, Any]:
        return {
            "project": self.collection,
            "halted": self.halted,
            "halt_reason": self.halt_reason,
            "outcomes": [o.to_dict() for o in self.outcomes],
        }


# ---------------------------------------------------------------------------
# Match strategies
# ---------------------------------------------------------------------------

def _match_contains(finding: Finding, tickets: list[Ticket]) -> list[Ticket]:
    return tickets


def _match_exact(finding: Finding, tickets: list[Ticket]) -> list[Ticket]:
    wanted = finding.summary.strip().lower()
    return [t for t in tickets if t.summary.strip().lower() == wanted]


MATCH_STRATEGIES: dict[str, Callable[[Finding, list[Ticket]], list[Ticket]]] = {
    "contains": _match_contains,
    "exact": _match_exact,
}


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------

def reconcile(
    findings: Sequence[Finding],
    initial_collection: str,
    store: TicketStore,
    resolver: CollectionResolver,
    *,
    issue_type: str = "Task",
    match: str = "contains",
) -> ReconcileReport:
    """Create or update one ticket per finding. See module docstring."""
    if match not in MATCH_STRATEGIES:
        raise ValueError(f"Unknown match strategy: {match!r}. Use one of {sorted(MATCH_STRATEGIES)}")
    matcher = MATCH_STRATEGIES[match]

    report = ReconcileReport(collection=initial_collection)
    rejected: set[str] = set()

    for index, finding in enumerate(findings):
        while True:
            try:
                outcome = _apply(finding, report.collection, store, issue_type, matcher)
            except InvalidCollection as e:
                logger.warning(f"[RECONCILE] Invalid project {report.collection}: {e.message}")
                rejected.add(report.collection.upper())
                try:
                    report.collection = _recover(resolver, rejected)
                except ResolverExhausted as exhausted:
                    reason = f"{e.message} ({exhausted})"
                    logger.error(f"[RECONCILE] Halting run: {reason}")
                    report.halted = True
                    report.halt_reason = reason
                    for remaining in findings[index:]:
                        report.outcomes.append(Outcome(
                            finding=remaining,
                            status=ABANDONED,
                            collection=report.collection,
                            error=reason,
                        ))
                    return report
                logger.info(f"[RECONCILE] Retrying with project: {report.collection}")
                continue
            except TicketStoreError as e:
                logger.warning(f"[RECONCILE] Failed to process {finding.summary!r}: {e.message}")
                outcome = Outcome(finding, ABANDONED, report.collection, error=e.message)
            except Exception as e:
                logger.exception(f"[RECONCILE] Unexpected error on {finding.summary!r}")
                outcome = Outcome(finding, ABANDONED, report.collection, error=str(e))
            break

        report.outcomes.append(outcome)

    return report


def _apply(
    finding: Finding,
    collection: str,
    store: TicketStore,
    issue_type: str,
    matcher: Callable[[Finding, list[Ticket]], list[Ticket]],
) -> Outcome:
    """One create-or-update attempt against a single project."""
    existing = matcher(finding, store.search(collection, finding.summary))

    if existing:
        ticket = store.update(existing[0].key, {
            "summary": finding.summary,
            "description": finding.description,
        })
        logger.info(f"[RECONCILE] Updated {ticket.key}: {finding.summary}")
        return Outcome(finding, UPDATED, collection, key=ticket.key)

    ticket = store.create(collection, finding.summary, finding.description, issue_type)
    logger.info(f"[RECONCILE] Created {ticket.key}: {finding.summary}")
    return Outcome(finding, CREATED, collection, key=ticket.key)


def _recover(resolver: CollectionResolver, rejected: set[str]) -> str:
    """
    Ask the resolver for a project not yet rejected in this run.

    Every failure inside recovery, including a closed terminal under the
    interactive resolver, becomes ResolverExhausted so the caller can still
    report the findings already processed.
    """
    try:
        candidates = [c for c in resolver.list_collections() if c.key.upper() not in rejected]
    except TicketStoreError as e:
        raise ResolverExhausted(f"could not list projects: {e.message}") from e
    except Exception as e:
        raise ResolverExhausted(f"could not list projects: {e!r}") from e

    if not candidates:
        raise ResolverExhausted("no projects available to retry with")

    try:
        choice = resolver.choose_collection(candidates)
    except Exception as e:
        raise ResolverExhausted(f"project selection failed: {e!r}") from e
    if not choice:
        raise ResolverExhausted("no replacement project chosen")
    if choice.upper() in rejected:
        raise ResolverExhausted(f"project {choice} was already rejected in this run")
    return choice
