"""MCP server wiring. The command line entry point lives in ``.main``."""

from .app import build_server, create_app, create_mcp_server, run_stdio

__all__ = ["build_server", "create_app", "create_mcp_server", "run_stdio"]
