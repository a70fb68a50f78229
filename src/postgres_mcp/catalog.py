from __future__ import annotations

import logging
from typing import Any

from .db import LeaseProvider, leased
from .errors import CatalogUnavailable, DatabaseError
from .logging_utils import log_extra
from .models import ResourceContents, ResourceEntry
from .serialization import to_json_text
from .uri import ResourceBase, parse_resource_uri

ALL_SCHEMAS_NAME = "All database schemas"

TABLES_SQL = (
    "SELECT table_name "
    "FROM information_schema.tables "
    "WHERE table_schema = $1"
)

ALL_SCHEMAS_SQL = (
    "SELECT t.table_name, "
    "json_agg(json_build_object("
    "'column_name', c.column_name, "
    "'data_type', c.data_type"
    ") ORDER BY c.ordinal_position) AS columns "
    "FROM information_schema.tables t "
    "JOIN information_schema.columns c ON t.table_name = c.table_name "
    "WHERE t.table_schema = $1 "
    "GROUP BY t.table_name"
)

# Matches on table name only; a name present in several schemas returns
# the columns of all of them.
TABLE_COLUMNS_SQL = (
    "SELECT column_name, data_type "
    "FROM information_schema.columns "
    "WHERE table_name = $1"
)


class CatalogResolver:
    """Serves table and column catalogs as MCP resources."""

    def __init__(self, pool: LeaseProvider, base: ResourceBase, schema: str = "public") -> None:
        self._pool = pool
        self._base = base
        self._schema = schema
        self._log = logging.getLogger(__name__)

    @property
    def base(self) -> ResourceBase:
        return self._base

    async def list_resources(self, request_id: str | None = None) -> list[ResourceEntry]:
        rows = await self._query(TABLES_SQL, self._schema, request_id=request_id)
        entries = [ResourceEntry(uri=self._base.all_schemas_uri(), name=ALL_SCHEMAS_NAME)]
        entries.extend(
            ResourceEntry(
                uri=self._base.table_schema_uri(row["table_name"]),
                name=f'"{row["table_name"]}" database schema',
            )
            for row in rows
        )
        self._log.info(
            "Listed catalog resources",
            extra=log_extra(request_id=request_id, table_count=len(rows)),
        )
        return entries

    async def read_resource(self, uri: str, request_id: str | None = None) -> ResourceContents:
        """Read the column catalog addressed by ``uri``.

        Raises:
            InvalidResourceURI: the path is not ``all-schemas`` or
                ``<table>/schema``. No connection is leased in that case.
            CatalogUnavailable: the lease or the catalog query failed.
        """
        path = parse_resource_uri(uri)
        if path.is_all_schemas:
            rows = await self._query(ALL_SCHEMAS_SQL, self._schema, request_id=request_id)
        else:
            rows = await self._query(TABLE_COLUMNS_SQL, path.table_name, request_id=request_id)
        return ResourceContents(uri=str(uri), text=to_json_text(rows))

    async def _query(
        self, sql: str, *params: Any, request_id: str | None = None
    ) -> list[dict[str, Any]]:
        try:
            async with leased(self._pool, request_id) as connection:
                return await connection.execute(sql, *params)
        except DatabaseError as exc:
            self._log.warning(
                "Catalog query failed",
                extra=log_extra(
                    request_id=request_id,
                    sqlstate=exc.sqlstate,
                    error_message=str(exc),
                ),
            )
            raise CatalogUnavailable(f"Catalog query failed: {exc}") from exc
