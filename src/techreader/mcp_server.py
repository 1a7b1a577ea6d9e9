"""
MCP (Model Context Protocol) server for techreader.

Exposes four read-only tools: the Zenn and Qiita article feeds, a Gemini
web search with Google Search grounding, and today's local Chrome browsing
history. Every tool answers with the same shape:

    {"content": [{"type": "text", "text": ...}],
     "structuredContent": {"result": ...}}

Protocol: JSON-RPC 2.0 over stdio (one JSON object per line). The same
request handler also backs the HTTP transport in ``techreader.http_app``.

Usage
-----
Run directly:
    python -m techreader.mcp_server

Or via the CLI:
    techreader mcp

Client mcp_servers.json entry
-----------------------------
{
  "mcpServers": {
    "techreader": {
      "command": "techreader",
      "args": ["mcp"],
      "env": {"GOOGLE_GENAI_API_KEY": "..."}
    }
  }
}
"""
from __future__ import annotations

import asyncio
import json
import logging
import sys
from typing import Any

from . import __version__
from .config import load_config, setup_logging
from .history import sweep_stale_snapshots, tool_response
from .tools.manager import ToolManager, ToolName

log = logging.getLogger(__name__)

SERVER_NAME = "tech rss reader"
SUPPORTED_PROTOCOL_VERSIONS = {"2024-11-05", "2025-03-26", "2025-06-18"}
DEFAULT_PROTOCOL_VERSION = "2024-11-05"

_manager: ToolManager | None = None


def _get_manager() -> ToolManager:
    global _manager
    if _manager is None:
        _manager = ToolManager(load_config())
    return _manager


def configure(cfg: dict[str, Any]) -> ToolManager:
    """Build the tool clients from an already-loaded config."""
    global _manager
    _manager = ToolManager(cfg)
    return _manager


def _result_schema(description: str) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {"result": {"type": "string", "description": description}},
        "required": ["result"],
    }


# ---------------------------------------------------------------------------
# Tool schema registry, one entry per exposed tool
# ---------------------------------------------------------------------------

_TOOL_SCHEMAS: list[dict[str, Any]] = [
    {
        "name": ToolName.ZENN_FEED.value,
        "title": "fetch-zenn-feed",
        "description": "Fetches the latest articles from a Zenn topic.",
        "annotations": {"readOnlyHint": True, "openWorldHint": True},
        "inputSchema": {
            "type": "object",
            "properties": {
                "topic": {
                    "type": "string",
                    "description": (
                        "The Zenn topic to fetch articles from (e.g., 'python', 'aws', "
                        "'typescript'). If not provided, fetches from the general feed."
                    ),
                },
            },
        },
        "outputSchema": _result_schema("The latest articles from the specified Zenn topic."),
    },
    {
        "name": ToolName.QIITA_FEED.value,
        "title": "fetch-qiita-feed",
        "description": "Fetches the latest articles from Qiita.",
        "annotations": {"readOnlyHint": True, "openWorldHint": True},
        "inputSchema": {
            "type": "object",
            "properties": {
                "topic": {
                    "type": "string",
                    "description": (
                        'The qiita feed topic (like "typescript", "python", "aws", "react"). '
                        "If not provided, fetches from the general feed."
                    ),
                },
            },
        },
        "outputSchema": _result_schema("The latest articles from Qiita."),
    },
    {
        "name": ToolName.GEMINI_SEARCH.value,
        "title": "grounding-search-gemini",
        "description": "Search the web using Gemini API.",
        "annotations": {"readOnlyHint": True, "openWorldHint": True},
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The search query."},
            },
            "required": ["query"],
        },
        "outputSchema": _result_schema("The search results from Gemini API."),
    },
    {
        "name": ToolName.CHROME_HISTORY.value,
        "title": "fetch-chrome-history",
        "description": "Fetches browsing history from Google Chrome.",
        "annotations": {"readOnlyHint": True, "openWorldHint": False},
        "inputSchema": {
            "type": "object",
            "properties": {
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "The number of recent history entries to fetch. Defaults to 10.",
                },
            },
        },
        "outputSchema": _result_schema("The recent browsing history entries from Google Chrome."),
    },
]


# ---------------------------------------------------------------------------
# Tool dispatch: returns {content, structuredContent[, isError]}
# ---------------------------------------------------------------------------

def _optional_str(arguments: dict[str, Any], key: str) -> str | None:
    value = arguments.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


async def _call_tool(name: str, arguments: dict[str, Any]) -> dict[str, Any]:
    """Dispatch a tool call; never raises, failures come back as text."""
    try:
        mgr = _get_manager()
        if name == ToolName.ZENN_FEED:
            return await mgr.run_zenn_feed(_optional_str(arguments, "topic"))

        if name == ToolName.QIITA_FEED:
            return await mgr.run_qiita_feed(_optional_str(arguments, "topic"))

        if name == ToolName.GEMINI_SEARCH:
            query = _optional_str(arguments, "query")
            if not query:
                return tool_response(f"{name}: 'query' is required", is_error=True)
            return await mgr.run_gemini_search(query)

        if name == ToolName.CHROME_HISTORY:
            return await mgr.run_chrome_history(arguments.get("limit"))

        return tool_response(f"Unknown tool: {name}", is_error=True)

    except Exception as exc:
        log.exception("Tool %s crashed", name)
        return tool_response(f"Error: {exc}", is_error=True)


# ---------------------------------------------------------------------------
# JSON-RPC 2.0 helpers
# ---------------------------------------------------------------------------

def _ok(request_id: Any, result: Any) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _err(request_id: Any, code: int, message: str) -> dict:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}


def _write(obj: dict) -> None:
    sys.stdout.write(json.dumps(obj, ensure_ascii=False) + "\n")
    sys.stdout.flush()


# ---------------------------------------------------------------------------
# Main request handler
# ---------------------------------------------------------------------------

async def handle_request(req: Any) -> dict | None:
    """Answer one decoded JSON-RPC message; notifications return None."""
    if not isinstance(req, dict):
        return _err(None, -32600, "Invalid Request")

    req_id = req.get("id")
    method = req.get("method", "")
    if not isinstance(method, str):
        return _err(req_id, -32600, "Invalid Request")
    params = req.get("params") or {}
    if not isinstance(params, dict):
        return _err(req_id, -32602, "Invalid params")

    if method == "initialize":
        client_ver = params.get("protocolVersion", DEFAULT_PROTOCOL_VERSION)
        agreed_ver = client_ver if client_ver in SUPPORTED_PROTOCOL_VERSIONS else DEFAULT_PROTOCOL_VERSION
        return _ok(req_id, {
            "protocolVersion": agreed_ver,
            "capabilities": {"tools": {}},
            "serverInfo": {
                "name": SERVER_NAME,
                "version": __version__,
            },
        })

    if method.startswith("notifications/") or method == "initialized":
        # Notification, no response needed
        return None

    if method == "tools/list":
        return _ok(req_id, {"tools": _TOOL_SCHEMAS})

    if method == "tools/call":
        tool_name = params.get("name", "")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            return _err(req_id, -32602, "Invalid params: 'arguments' must be an object")
        result = await _call_tool(tool_name, arguments)
        return _ok(req_id, {**result, "isError": bool(result.get("isError", False))})

    if method == "ping":
        return _ok(req_id, {})

    if req_id is not None:
        return _err(req_id, -32601, f"Method not found: {method}")
    return None


async def _handle(line: str) -> None:
    try:
        req = json.loads(line)
    except json.JSONDecodeError:
        _write(_err(None, -32700, "Parse error"))
        return

    response = await handle_request(req)
    if response is not None:
        _write(response)


def sweep_on_startup(cfg: dict[str, Any]) -> None:
    """Clear history copies orphaned by requests that never finished."""
    sweep_stale_snapshots(cfg.get("snapshot_dir") or None, cfg.get("snapshot_max_age_seconds", 0))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

async def _run() -> None:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)

    while True:
        try:
            line_bytes = await reader.readline()
        except (OSError, ValueError) as exc:
            log.error("stdin closed unexpectedly: %s", exc)
            break
        if not line_bytes:
            break
        line = line_bytes.decode(errors="replace").strip()
        if line:
            await _handle(line)


def main() -> None:
    cfg = load_config()
    setup_logging(cfg["log_level"])
    configure(cfg)
    sweep_on_startup(cfg)
    asyncio.run(_run())


if __name__ == "__main__":
    main()
