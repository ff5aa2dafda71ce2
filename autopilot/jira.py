"""
AUTOPILOT Jira Adapter

TicketStore implementation over the Jira REST API (v2).

This is the only place that knows what a Jira failure looks like. Every
non-2xx response is classified once, here:
  - project rejected (400/404 naming the project) → InvalidCollection
  - everything else (auth, rate limit, 5xx, transport) → ApiError
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger

from autopilot.config_loader import ConfigError, JiraSettings
from autopilot.store import ApiError, Collection, InvalidCollection, Ticket, TicketStoreError


def escape_jql(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def build_search_jql(project_key: str, summary: str) -> str:
    return f'project = "{escape_jql(project_key)}" AND summary ~ "{escape_jql(summary)}"'


class JiraStore:
    """Jira-backed ticket store. Also lists projects and posts comments."""

    def __init__(
        self,
        base_url: str,
        email: str,
        api_token: str,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ):
        if not base_url:
            raise ConfigError("JIRA_BASE_URL is required to talk to Jira.")
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            auth=(email, api_token),
            headers={"Accept": "application/json", "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls,
        settings: JiraSettings,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> "JiraStore":
        return cls(settings.base_url, settings.email, settings.api_token, timeout, transport)

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # TicketStore
    # ------------------------------------------------------------------

    def search(self, collection: str, summary: str) -> list[Ticket]:
        jql = build_search_jql(collection, summary)
        logger.debug(f"[JIRA] Search: {jql}")
        data = self._request(
            "GET", "/rest/api/2/search",
            collection=collection,
            params={"jql": jql, "fields": "summary,description", "maxResults": 50},
        )
        tickets = []
        for issue in data.get("issues", []):
            fields = issue.get("fields") or {}
            tickets.append(Ticket(
                key=issue["key"],
                summary=fields.get("summary") or "",
                description=fields.get("description") or "",
            ))
        return tickets

    def create(self, collection: str, summary: str, description: str, kind: str) -> Ticket:
        payload = {
            "fields": {
                "project": {"key": collection},
                "summary": summary,
                "description": description,
                "issuetype": {"name": kind},
            }
        }
        data = self._request("POST", "/rest/api/2/issue", collection=collection, json=payload)
        return Ticket(key=data["key"], summary=summary, description=description)

    def update(self, key: str, fields: dict[str, Any]) -> Ticket:
        project = key.split("-", 1)[0]
        self._request("PUT", f"/rest/api/2/issue/{key}", collection=project, json={"fields": fields})
        return Ticket(
            key=key,
            summary=fields.get("summary", ""),
            description=fields.get("description", ""),
        )

    # ------------------------------------------------------------------
    # Extras
    # ------------------------------------------------------------------

    def list_projects(self) -> list[Collection]:
        data = self._request("GET", "/rest/api/2/project")
        return [Collection(key=p["key"], name=p.get("name", "")) for p in data or []]

    def add_comment(self, key: str, body: str) -> dict[str, Any]:
        return self._request("POST", f"/rest/api/2/issue/{key}/comment", json={"body": body})

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        collection: str | None = None,
        **kwargs: Any,
    ) -> Any:
        try:
            response = self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise ApiError(f"Jira request failed: {e}") from e

        if response.is_success:
            if response.status_code == 204 or not response.content:
                return {}
            return response.json()

        raise classify_error(response, collection)


def _error_messages(response: httpx.Response) -> tuple[list[str], dict[str, Any]]:
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return ([text[:300]] if text else []), {}
    if not isinstance(body, dict):
        return [str(body)[:300]], {}
    errors = body.get("errors") or {}
    messages = list(body.get("errorMessages") or [])
    messages += [f"{field}: {msg}" for field, msg in errors.items()]
    return messages, errors


def classify_error(response: httpx.Response, collection: str | None) -> TicketStoreError:
    """Map a failed Jira response onto the store error taxonomy."""
    messages, errors = _error_messages(response)
    status = response.status_code
    text = f"HTTP {status}: " + ("; ".join(messages) if messages else response.reason_phrase)

    names_project = "project" in errors or any("project" in m.lower() for m in messages)
    if collection is not None and status in (400, 404) and names_project:
        return InvalidCollection(collection, text, status)
    return ApiError(text, status)
