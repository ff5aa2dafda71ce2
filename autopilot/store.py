"""
AUTOPILOT Ticket Store Boundary

The reconciler only ever talks to a TicketStore. Adapters (see jira.py)
translate provider failures into the two error kinds below, so nothing
upstream has to inspect error message text.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


class TicketStoreError(Exception):
    """Base for every failure raised across the store boundary."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class InvalidCollection(TicketStoreError):
    """The target project was rejected by the tracker."""

    def __init__(self, collection: str, message: str, status_code: int | None = None):
        super().__init__(message, status_code)
        self.collection = collection


class ApiError(TicketStoreError):
    """Any other tracker failure: auth, rate limit, server error, transport."""


@dataclass(frozen=True)
class Ticket:
    key: str
    summary: str = ""
    description: str = ""


@dataclass(frozen=True)
class Collection:
    key: str
    name: str = ""


class TicketStore(Protocol):
    def search(self, collection: str, summary: str) -> list[Ticket]: ...

    def create(self, collection: str, summary: str, description: str, kind: str) -> Ticket: ...

    def update(self, key: str, fields: dict[str, Any]) -> Ticket: ...
