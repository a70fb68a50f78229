"""Application wiring for the PostgreSQL MCP server.

This module builds the object graph (pool, catalog resolver, query executor,
MCP server) from an AppConfig and exposes it over one of two transports:

1. stdio, for MCP clients that spawn the server as a subprocess
2. streamable HTTP, served as a FastAPI app with a health check at ``/``
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.responses import RedirectResponse
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server
from mcp.server.streamable_http_manager import StreamableHTTPSessionManager
from starlette.types import Receive, Scope, Send

from ..catalog import CatalogResolver
from ..config import AppConfig, build_config, load_config
from ..db import PostgresPool
from ..executor import ReadOnlyQueryExecutor
from ..logging_utils import configure_logging
from ..uri import ResourceBase
from .handlers import register_handlers

SERVER_NAME = "postgres"
SERVER_VERSION = "0.1.0"

CONFIG_ENV_VAR = "POSTGRES_MCP_CONFIG"


def create_mcp_server(catalog: CatalogResolver, executor: ReadOnlyQueryExecutor) -> Server:
    mcp_server = Server(name=SERVER_NAME, version=SERVER_VERSION)
    register_handlers(mcp_server, catalog, executor)
    return mcp_server


def build_server(config: AppConfig) -> tuple[PostgresPool, Server]:
    """Create the pool and an MCP server whose handlers share it.

    The pool is returned unopened; the transport opens it for the lifetime
    of the server.
    """
    pool = PostgresPool(config.database)
    base = ResourceBase.from_database_url(config.database.url)
    catalog = CatalogResolver(pool, base, config.database.schema)
    executor = ReadOnlyQueryExecutor(pool, config.server.environment)
    return pool, create_mcp_server(catalog, executor)


async def run_stdio(config: AppConfig) -> None:
    pool, mcp_server = build_server(config)
    async with pool:
        async with stdio_server() as (read_stream, write_stream):
            await mcp_server.run(
                read_stream, write_stream, mcp_server.create_initialization_options()
            )


def create_app(config: AppConfig) -> FastAPI:
    """Create the FastAPI application serving MCP over streamable HTTP.

    Args:
        config: Loaded application configuration

    Returns:
        FastAPI: app with the MCP endpoint mounted at ``/mcp``
    """
    pool, mcp_server = build_server(config)
    session_manager = StreamableHTTPSessionManager(app=mcp_server, stateless=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with pool:
            async with session_manager.run():
                yield

    app = FastAPI(
        title="PostgreSQL MCP Server",
        description="Read-only PostgreSQL access over the Model Context Protocol",
        version=SERVER_VERSION,
        lifespan=lifespan,
    )

    @app.get("/", include_in_schema=False)
    async def health_check() -> dict:
        """Health check endpoint."""
        return {"message": "PostgreSQL MCP Server is running", "status": "healthy"}

    @app.api_route("/mcp", methods=["GET", "POST", "DELETE"], include_in_schema=False)
    async def mcp_redirect() -> RedirectResponse:
        return RedirectResponse(url="/mcp/", status_code=307)

    async def handle_mcp(scope: Scope, receive: Receive, send: Send) -> None:
        await session_manager.handle_request(scope, receive, send)

    app.mount("/mcp", app=handle_mcp)
    return app


def create_app_from_env() -> FastAPI:
    """App factory for ``uvicorn --factory``.

    Reads the config file named by ``POSTGRES_MCP_CONFIG``, falling back to
    ``DATABASE_URL`` and ``POSTGRES_MCP_ENV`` when no file is given.
    """
    path = os.environ.get(CONFIG_ENV_VAR)
    if path:
        config = load_config(Path(path))
    else:
        config = build_config(
            {},
            overrides={
                "database": {"url": os.environ.get("DATABASE_URL")},
                "server": {"environment": os.environ.get("POSTGRES_MCP_ENV"), "transport": "http"},
            },
        )
    configure_logging(config.observability.log_level)
    return create_app(config)
