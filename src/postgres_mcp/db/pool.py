from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import asyncpg

from ..config import DatabaseConfig
from ..errors import DatabaseError
from ..serialization import rows_to_dicts

_DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


def _database_error(exc: BaseException) -> DatabaseError:
    return DatabaseError(str(exc), sqlstate=getattr(exc, "sqlstate", None))


async def _init_connection(connection: asyncpg.Connection) -> None:
    # decode json columns (e.g. json_agg output) into Python values
    for type_name in ("json", "jsonb"):
        await connection.set_type_codec(
            type_name, encoder=json.dumps, decoder=json.loads, schema="pg_catalog"
        )


class PostgresLease:
    def __init__(self, pool: asyncpg.Pool, connection: asyncpg.Connection) -> None:
        self._pool = pool
        self._connection = connection
        self._released = False

    async def execute(self, sql: str, *params: Any) -> list[dict[str, Any]]:
        if self._released:
            raise DatabaseError("Connection lease has already been released")
        try:
            records = await self._connection.fetch(sql, *params)
        except _DRIVER_ERRORS as exc:
            raise _database_error(exc) from exc
        return rows_to_dicts(records)

    async def release(self) -> None:
        if self._released:
            return
        self._released = True
        await self._pool.release(self._connection)


class PostgresPool:
    """asyncpg-backed lease provider.

    The pool is opened explicitly (or via ``async with``) and handed to every
    component that needs a connection.
    """

    def __init__(self, config: DatabaseConfig) -> None:
        self._config = config
        self._pool: asyncpg.Pool | None = None
        self._log = logging.getLogger(__name__)

    async def open(self) -> None:
        if self._pool is not None:
            return
        options: dict[str, Any] = {}
        if self._config.ssl is not None:
            # an explicit ssl argument overrides sslmode in the DSN
            options["ssl"] = self._config.ssl
        try:
            self._pool = await asyncpg.create_pool(
                dsn=self._config.url,
                min_size=self._config.pool_min_size,
                max_size=self._config.pool_max_size,
                init=_init_connection,
                **options,
            )
        except _DRIVER_ERRORS as exc:
            raise _database_error(exc) from exc
        self._log.info(
            "Connection pool opened",
            extra={"min_size": self._config.pool_min_size, "max_size": self._config.pool_max_size},
        )

    async def close(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        await pool.close()
        self._log.info("Connection pool closed")

    async def acquire(self) -> PostgresLease:
        if self._pool is None:
            raise DatabaseError("Connection pool is not open")
        try:
            connection = await self._pool.acquire()
        except _DRIVER_ERRORS as exc:
            raise _database_error(exc) from exc
        return PostgresLease(self._pool, connection)

    async def __aenter__(self) -> PostgresPool:
        await self.open()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
