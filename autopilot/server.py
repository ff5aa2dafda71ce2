"""
AUTOPILOT MCP Server — stdio JSON-RPC 2.0

One JSON message per line on stdin, one response per line on stdout:
  - initialize / ping / tools/list / tools/call
  - resources/list / resources/read (autopilot://status)
  - notifications (no id) are never answered

Logging goes to stderr. stdout carries protocol messages only.
"""

from __future__ import annotations

import json
import sys
from typing import Any, TextIO

import httpx
from loguru import logger

from autopilot import __version__
from autopilot.tools import HANDLERS, TOOLS_LIST, ToolContext, ToolError, text_result

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "Jira Autopilot MCP"
STATUS_URI = "autopilot://status"

RESOURCES_LIST: list[dict[str, Any]] = [
    {
        "uri": STATUS_URI,
        "name": "system-status",
        "description": "Status of the autopilot dashboard.",
        "mimeType": "application/json",
    },
]


class AutopilotServer:
    """MCP server with tool routing over stdio JSON-RPC."""

    def __init__(self, ctx: ToolContext, http_transport: httpx.BaseTransport | None = None) -> None:
        self.ctx = ctx
        self._http_transport = http_transport

    def handle_rpc(self, req: dict[str, Any]) -> dict[str, Any] | None:
        """Route a single JSON-RPC message. Notifications get no response."""
        rpc_id = req.get("id")
        method = req.get("method", "")
        params = req.get("params") or {}

        if "id" not in req:
            logger.debug(f"[SERVER] Notification: {method}")
            return None

        if method == "initialize":
            return self._rpc_ok(rpc_id, {
                "protocolVersion": params.get("protocolVersion", PROTOCOL_VERSION),
                "capabilities": {"tools": {}, "resources": {}},
                "serverInfo": {"name": SERVER_NAME, "version": __version__},
            })
        if method == "ping":
            return self._rpc_ok(rpc_id, {})
        if method == "tools/list":
            return self._rpc_ok(rpc_id, {"tools": TOOLS_LIST})
        if method == "tools/call":
            return self._rpc_ok(rpc_id, self._call_tool(params))
        if method == "resources/list":
            return self._rpc_ok(rpc_id, {"resources": RESOURCES_LIST})
        if method == "resources/read":
            uri = params.get("uri")
            if uri != STATUS_URI:
                return self._rpc_error(rpc_id, -32602, f"Unknown resource: {uri}")
            return self._rpc_ok(rpc_id, {"contents": [self._read_status()]})

        return self._rpc_error(rpc_id, -32601, f"Method not found: {method}")

    def _call_tool(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name", "")
        args = params.get("arguments") or {}

        handler = HANDLERS.get(name)
        if not handler:
            return text_result(f"Unknown tool: {name}", is_error=True)

        logger.info(f"[SERVER] tools/call {name}")
        try:
            return handler(args, self.ctx)
        except ToolError as e:
            return text_result(str(e), is_error=True)
        except Exception as e:
            logger.exception(f"[SERVER] Tool {name} crashed")
            return text_result(f"Unhandled server error: {e}", is_error=True)

    def _read_status(self) -> dict[str, Any]:
        base = self.ctx.config.server.dashboard_url.rstrip("/")
        try:
            with httpx.Client(timeout=self.ctx.config.http_timeout, transport=self._http_transport) as client:
                response = client.get(f"{base}/status")
            if not response.is_success:
                raise RuntimeError("Dashboard not running")
            data = response.json()
            return {
                "uri": STATUS_URI,
                "mimeType": "application/json",
                "text": json.dumps(data, indent=2),
            }
        except (httpx.HTTPError, RuntimeError, ValueError) as e:
            return {
                "uri": STATUS_URI,
                "mimeType": "text/plain",
                "text": f"Error fetching status: {e}. Is the dashboard running at {base}?",
            }

    def _rpc_ok(self, rpc_id: Any, result: Any) -> dict[str, Any]:
        return {"jsonrpc": "2.0", "id": rpc_id, "result": result}

    def _rpc_error(self, rpc_id: Any, code: int, message: str) -> dict[str, Any]:
        return {"jsonrpc": "2.0", "id": rpc_id, "error": {"code": code, "message": message}}


def serve(server: AutopilotServer, stdin: TextIO = sys.stdin, stdout: TextIO = sys.stdout) -> None:
    """Line-delimited JSON-RPC over stdio until stdin closes."""
    logger.info("[SERVER] MCP server running on stdio")
    for line in stdin:
        line = line.strip()
        if not line:
            continue
        try:
            req = json.loads(line)
        except json.JSONDecodeError:
            resp: dict[str, Any] | None = {
                "jsonrpc": "2.0",
                "id": None,
                "error": {"code": -32700, "message": "Parse error"},
            }
        else:
            if isinstance(req, dict):
                resp = server.handle_rpc(req)
            else:
                resp = {
                    "jsonrpc": "2.0",
                    "id": None,
                    "error": {"code": -32600, "message": "Invalid Request"},
                }

        if resp is not None:
            stdout.write(json.dumps(resp) + "\n")
            stdout.flush()
