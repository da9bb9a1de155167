"""MCP stdio transport: exposes the operation catalog as MCP tools."""

from __future__ import annotations

import asyncio
from typing import Any

import mcp.types as types
import structlog
from mcp.server import Server
from mcp.server.stdio import stdio_server

from devicefarm.config import settings
from devicefarm.core.dispatcher import Dispatcher
from devicefarm.dependencies import get_dispatcher
from devicefarm.schemas.response import BinaryContent, TextContent, ToolResponse
from devicefarm.telemetry import configure_logging
from devicefarm.tools.registry import all_tools

log = structlog.get_logger()

SERVER_NAME = "mobile-device-farm"

McpContent = types.TextContent | types.ImageContent | types.EmbeddedResource


class ToolInvocationError(Exception):
    """Raised to make the MCP server flag a call result with isError."""


def to_mcp_content(response: ToolResponse) -> list[McpContent]:
    blocks: list[McpContent] = []
    for block in response.content:
        if isinstance(block, TextContent):
            blocks.append(types.TextContent(type="text", text=block.text))
        elif isinstance(block, BinaryContent) and block.mime_type.startswith("image/"):
            blocks.append(types.ImageContent(type="image", data=block.data, mimeType=block.mime_type))
        else:
            blocks.append(
                types.EmbeddedResource(
                    type="resource",
                    resource=types.BlobResourceContents(
                        uri=f"devicefarm://artifact/{len(blocks)}",
                        mimeType=block.mime_type,
                        blob=block.data,
                    ),
                )
            )
    return blocks


def create_server(dispatcher: Dispatcher) -> Server:
    server = Server(SERVER_NAME)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [types.Tool(**tool.to_mcp_spec()) for tool in all_tools()]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[McpContent]:
        response = await dispatcher.invoke(name, arguments or {})
        if response.is_error:
            raise ToolInvocationError("\n".join(response.texts))
        return to_mcp_content(response)

    return server


async def serve() -> None:
    dispatcher = get_dispatcher()
    server = create_server(dispatcher)
    log.info(
        "Mobile Device Farm MCP server running on stdio",
        operations=len(dispatcher.list_operations()),
        **dispatcher.context.toolchains.as_dict(),
    )
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


def main() -> None:
    configure_logging(settings)
    asyncio.run(serve())


if __name__ == "__main__":
    main()
