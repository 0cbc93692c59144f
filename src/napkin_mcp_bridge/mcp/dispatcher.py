from __future__ import annotations

import time
from typing import Any

from loguru import logger

from napkin_mcp_bridge.errors import ProtocolError, ToolExecutionError
from napkin_mcp_bridge.mcp.protocol import (
    CAPABILITIES,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    PROTOCOL_VERSION,
    jsonrpc_error,
    jsonrpc_result,
    server_info,
)
from napkin_mcp_bridge.tool import Tool, ToolResult
from napkin_mcp_bridge.tool_registry import to_mcp_tools

_NO_RESPONSE = object()


class McpDispatcher:
    """Routes MCP JSON-RPC messages to handlers.

    ``handle`` never raises. It returns a response object, or ``None`` when the
    message is a notification. Tool failures become ``isError`` results; only
    protocol problems use the JSON-RPC error channel.
    """

    def __init__(self, tools: list[Tool]):
        self._tools = {t.name: t for t in tools}
        self._catalog = to_mcp_tools(tools)

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    async def handle_payload(self, payload: Any) -> dict[str, Any] | list[dict[str, Any]] | None:
        """Handle a decoded HTTP body: one message or a batch array.

        Batch members run one after another in input order; notifications are
        dropped from the returned list.
        """
        if isinstance(payload, list):
            if not payload:
                return jsonrpc_error(None, INVALID_REQUEST, "Invalid Request: empty batch")
            responses: list[dict[str, Any]] = []
            for message in payload:
                response = await self.handle(message)
                if response is not None:
                    responses.append(response)
            return responses
        return await self.handle(payload)

    async def handle(self, message: Any) -> dict[str, Any] | None:
        if not isinstance(message, dict):
            return jsonrpc_error(None, INVALID_REQUEST, "Invalid Request: expected a JSON object")

        msg_id = message.get("id")
        method = message.get("method")
        if not isinstance(method, str) or not method:
            return jsonrpc_error(msg_id, INVALID_REQUEST, "Invalid Request: 'method' must be a non-empty string")

        try:
            result = await self._dispatch(method, message.get("params"))
        except ProtocolError as ex:
            response = jsonrpc_error(msg_id, ex.code, ex.message)
        except Exception as ex:
            logger.exception(f"Unhandled error while dispatching {method}")
            response = jsonrpc_error(msg_id, INTERNAL_ERROR, str(ex) or type(ex).__name__)
        else:
            response = None if result is _NO_RESPONSE else jsonrpc_result(msg_id, result)

        if msg_id is None:
            return None
        return response

    async def _dispatch(self, method: str, params: Any) -> Any:
        if method == "initialize":
            return {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": CAPABILITIES,
                "serverInfo": server_info(),
            }
        if method == "notifications/initialized":
            return _NO_RESPONSE
        if method == "tools/list":
            return {"tools": self._catalog}
        if method == "tools/call":
            return await self._call_tool(params)
        if method == "ping":
            return {}
        raise ProtocolError(METHOD_NOT_FOUND, f"Method not found: {method}")

    async def _call_tool(self, params: Any) -> dict[str, Any]:
        if not isinstance(params, dict):
            raise ProtocolError(INVALID_PARAMS, "Invalid params: tools/call params must be an object")
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise ProtocolError(INVALID_PARAMS, "Invalid params: 'name' is required for tools/call")
        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise ProtocolError(INVALID_PARAMS, "Invalid params: 'arguments' must be an object")

        tool = self._tools.get(name)
        if tool is None:
            raise ProtocolError(METHOD_NOT_FOUND, f"Unknown tool: {name}")

        started = time.monotonic()
        try:
            result = await tool.execute(arguments)
        except ToolExecutionError as ex:
            logger.warning(f"Tool {name} failed: {ex}")
            result = ToolResult.error(str(ex))
        except Exception as ex:
            logger.exception(f"Tool {name} raised unexpectedly")
            result = ToolResult.error(f"Error running {name}: {ex}")

        elapsed_ms = (time.monotonic() - started) * 1000.0
        logger.info(f"Tool call {name} finished in {elapsed_ms:.0f} ms (isError={result.is_error})")
        return result.to_dict()
