"""PostgreSQL MCP server package."""
