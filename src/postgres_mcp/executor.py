from __future__ import annotations

import logging
from typing import Any, Mapping

from .db import LeasedConnection, LeaseProvider, leased
from .errors import DatabaseError, InvalidToolArguments, QueryExecutionFailed, UnknownTool
from .logging_utils import log_extra
from .models import ToolDefinition, ToolResult
from .serialization import to_json_text
from .tools import query_tool_definition

BEGIN_READ_ONLY_SQL = "BEGIN TRANSACTION READ ONLY"
ROLLBACK_SQL = "ROLLBACK"


def _sql_argument(arguments: Mapping[str, Any] | None) -> str:
    if not arguments or "sql" not in arguments:
        raise InvalidToolArguments("Missing required argument: sql")
    sql = arguments["sql"]
    if not isinstance(sql, str):
        raise InvalidToolArguments("Argument sql must be a string")
    return sql


class ReadOnlyQueryExecutor:
    """Runs caller SQL inside a read-only transaction that is always rolled back.

    The statement text is not inspected. PostgreSQL rejects writes inside a
    READ ONLY transaction, and the trailing ROLLBACK discards anything else.
    """

    def __init__(self, pool: LeaseProvider, environment: str) -> None:
        self._pool = pool
        self._definition = query_tool_definition(environment)
        self._log = logging.getLogger(__name__)

    @property
    def definition(self) -> ToolDefinition:
        return self._definition

    @property
    def tool_name(self) -> str:
        return self._definition.name

    async def invoke(
        self,
        tool_name: str,
        arguments: Mapping[str, Any] | None,
        request_id: str | None = None,
    ) -> ToolResult:
        if tool_name != self.tool_name:
            raise UnknownTool(f"Unknown tool: {tool_name}")
        sql = _sql_argument(arguments)

        try:
            async with leased(self._pool, request_id) as connection:
                try:
                    await connection.execute(BEGIN_READ_ONLY_SQL)
                    rows = await connection.execute(sql)
                finally:
                    await self._rollback_quietly(connection, request_id)
        except DatabaseError as exc:
            self._log.warning(
                "Query failed",
                extra=log_extra(
                    request_id=request_id,
                    tool_name=tool_name,
                    sqlstate=exc.sqlstate,
                    error_message=str(exc),
                ),
            )
            raise QueryExecutionFailed(str(exc), sqlstate=exc.sqlstate) from exc

        self._log.info(
            "Query executed",
            extra=log_extra(request_id=request_id, tool_name=tool_name, row_count=len(rows)),
        )
        return ToolResult(content=[to_json_text(rows)], is_error=False)

    async def _rollback_quietly(self, connection: LeasedConnection, request_id: str | None) -> None:
        try:
            await connection.execute(ROLLBACK_SQL)
        except Exception as exc:
            # RollbackWarning: never replaces the query outcome
            self._log.warning(
                "Could not roll back transaction",
                extra=log_extra(
                    request_id=request_id,
                    warning="RollbackWarning",
                    error_message=str(exc),
                ),
            )
