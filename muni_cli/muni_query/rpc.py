"""JSON-RPC 2.0 request handling and the newline-delimited stdio transport."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any, TextIO

from muni_cli import __version__
from muni_cli.shared.exceptions import ToolError

from .tools import ToolContext, call_tool, tool_definitions

PROTOCOL_VERSION = "2024-11-05"
SERVER_INFO = {"name": "muni-query", "version": __version__}
SERVER_CAPABILITIES: dict[str, Any] = {"tools": {}}

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603


def process_request(message: Any, context: ToolContext) -> dict[str, Any] | None:
    """Answer one decoded JSON-RPC message.

    Returns ``None`` for notifications (messages without an ``id``).
    """
    if not isinstance(message, Mapping) or message.get("jsonrpc") != "2.0" or not isinstance(
        message.get("method"), str
    ):
        request_id = message.get("id") if isinstance(message, Mapping) else None
        return _error(request_id, INVALID_REQUEST, "Invalid Request")

    method = message["method"]
    if "id" not in message:
        context.logger.debug(f"notification {method} received")
        return None

    request_id = message["id"]
    params = message.get("params") or {}

    if method == "initialize":
        return _result(
            request_id,
            {
                "protocolVersion": PROTOCOL_VERSION,
                "serverInfo": SERVER_INFO,
                "capabilities": SERVER_CAPABILITIES,
            },
        )
    if method == "tools/list":
        return _result(request_id, {"tools": tool_definitions()})
    if method == "ping":
        return _result(request_id, {})
    if method != "tools/call":
        return _error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")

    if not isinstance(params, Mapping) or not params.get("name"):
        return _error(request_id, INVALID_PARAMS, "Missing tool name")

    try:
        payload = call_tool(str(params["name"]), params.get("arguments"), context)
    except ToolError as exc:
        return _error(request_id, INVALID_PARAMS, str(exc))
    except Exception as exc:
        context.logger.error(f"Request error: {exc}")
        return _error(request_id, INTERNAL_ERROR, str(exc) or "Unknown error")

    text = payload if isinstance(payload, str) else dumps_payload(payload)
    return _result(request_id, {"content": [{"type": "text", "text": text}]})


def handle_line(line: str, context: ToolContext) -> str | None:
    """Decode one input line and return the encoded response, if any."""
    try:
        message = json.loads(line)
    except json.JSONDecodeError:
        return json.dumps(_error(None, PARSE_ERROR, "Parse error"))
    response = process_request(message, context)
    if response is None:
        return None
    return json.dumps(response, default=_json_default)


def serve_stdio(context: ToolContext, input: TextIO, output: TextIO) -> None:
    """Read requests line by line until EOF, writing one response per request."""
    log = context.logger.scoped("rpc")
    log.info("muni-query JSON-RPC server listening on stdio")
    for line in input:
        if not line.strip():
            continue
        response = handle_line(line, context)
        if response is None:
            continue
        output.write(response + "\n")
        output.flush()
    log.debug("stdin closed; shutting down")


def dumps_payload(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=_json_default)


def _json_default(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _result(request_id: Any, result: Mapping[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": dict(result)}


def _error(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": message}}
