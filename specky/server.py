"""MCP transport wiring.

The dispatcher does the work; this module only adapts it to the MCP
low-level server and runs it over stdio.
"""

from __future__ import annotations

from typing import Any

import mcp.types as types
import structlog
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from .config import default_server_name
from .dispatch import (
    FullModeDispatcher,
    SearchModeDispatcher,
    ToolResult,
    create_context,
    create_dispatcher,
)
from .models import ParsedSpec, ServerConfig

log = structlog.get_logger(__name__)

DEFAULT_SERVER_VERSION = "1.0.0"

Dispatcher = FullModeDispatcher | SearchModeDispatcher


def to_call_tool_result(result: ToolResult) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=result.text)],
        isError=result.is_error,
    )


def build_server(dispatcher: Dispatcher, name: str, version: str) -> Server:
    """Register list_tools/call_tool handlers backed by the dispatcher."""
    server: Server = Server(name, version=version)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name=tool["name"],
                description=tool["description"],
                inputSchema=tool["inputSchema"],
            )
            for tool in dispatcher.list_tools()
        ]

    # Arguments go to the live API unvalidated; the API enforces its own types.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> types.CallToolResult:
        result = await dispatcher.call_tool(name, arguments or {})
        return to_call_tool_result(result)

    return server


async def serve(spec: ParsedSpec, config: ServerConfig) -> None:
    """Build the context for a loaded spec and serve it over stdio."""
    context = await create_context(spec, config)
    dispatcher = create_dispatcher(context, config.mode)
    server = build_server(
        dispatcher,
        config.server_name or default_server_name(spec.title),
        config.server_version or DEFAULT_SERVER_VERSION,
    )
    log.info(
        "server_starting",
        name=server.name,
        mode=config.mode,
        tools=len(context.tools),
        base_url=context.base_url,
    )
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await context.aclose()
