"""Protocol server exposing a ``ToolRegistry`` through the MCP SDK.

The SDK owns the JSON-RPC envelope, the initialize handshake and
capability negotiation.  This module only wires its ``tools/list`` and
``tools/call`` handlers to the registry; argument validation and the error
boundary stay in ``BaseTool.invoke``, so the SDK's own JSON-schema check is
switched off.
"""

from __future__ import annotations

import logging

import mcp.types as types
from mcp.server import Server

from crm_scheduling.tools.base import ToolResult
from crm_scheduling.tools.registry import ToolRegistry, UnknownToolError

log = logging.getLogger("gateway.protocol")

SERVER_NAME = "salesforce-mcp-server"


def build_protocol_server(
    tools: ToolRegistry,
    name: str = SERVER_NAME,
    version: str | None = None,
) -> Server:
    """Create an SDK ``Server`` whose tool handlers delegate to ``tools``.

    One server instance is shared by every session; per-session state lives
    in the SDK's ``ServerSession`` started for each transport.
    """
    server: Server = Server(name, version=version)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [types.Tool(**descriptor) for descriptor in tools.list_tools()]

    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict | None) -> types.CallToolResult:
        try:
            result = await tools.call(name, arguments)
        except UnknownToolError:
            log.warning("Call for unknown tool %s", name)
            result = ToolResult.error(f"Unknown tool: {name}")
        return types.CallToolResult.model_validate(result.to_dict())

    return server
