"""Tool advertisement for the query capability."""

from __future__ import annotations

from .models import ToolDefinition

QUERY_INPUT_SCHEMA = {
    "type": "object",
    "properties": {
        "sql": {"type": "string"},
    },
    "required": ["sql"],
}


def query_tool_name(environment: str) -> str:
    return f"query-{environment}"


def query_tool_definition(environment: str) -> ToolDefinition:
    return ToolDefinition(
        name=query_tool_name(environment),
        description=f"Run a read-only SQL query on the {environment} database.",
        input_schema=QUERY_INPUT_SCHEMA,
    )
