"""MCP handler registration.

Binds the four capabilities this server offers (list-resources, read-resource,
list-tools, call-tool) to the catalog resolver and the query executor. Errors
raised by those components propagate to the MCP server, which frames them for
the client: a JSON-RPC error for resource reads, an ``isError`` tool result
for tool calls.
"""

from __future__ import annotations

import uuid
from typing import Any

import mcp.types as types
from mcp.server.lowlevel import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from pydantic import AnyUrl

from ..catalog import CatalogResolver
from ..executor import ReadOnlyQueryExecutor


def _request_id(value: str | None = None) -> str:
    """Generate a unique request ID for tracing."""
    return value or str(uuid.uuid4())


def register_handlers(
    mcp_server: Server, catalog: CatalogResolver, executor: ReadOnlyQueryExecutor
) -> None:
    """Register resource and tool handlers with the MCP server.

    Args:
        mcp_server: The low-level MCP server instance
        catalog: Resolver serving table schemas as resources
        executor: Read-only executor behind the query tool
    """

    @mcp_server.list_resources()
    async def list_resources() -> list[types.Resource]:
        entries = await catalog.list_resources(_request_id())
        return [
            types.Resource(uri=entry.uri, name=entry.name, mimeType=entry.mime_type)
            for entry in entries
        ]

    @mcp_server.read_resource()
    async def read_resource(uri: AnyUrl) -> list[ReadResourceContents]:
        contents = await catalog.read_resource(str(uri), _request_id())
        return [ReadResourceContents(content=contents.text, mime_type=contents.mime_type)]

    @mcp_server.list_tools()
    async def list_tools() -> list[types.Tool]:
        definition = executor.definition
        return [
            types.Tool(
                name=definition.name,
                description=definition.description,
                inputSchema=definition.input_schema,
            )
        ]

    @mcp_server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        result = await executor.invoke(name, arguments, _request_id())
        return [types.TextContent(type="text", text=text) for text in result.content]
