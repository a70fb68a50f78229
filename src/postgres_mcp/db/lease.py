"""Connection lease interface shared by the catalog resolver and query executor."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Protocol, runtime_checkable

from ..logging_utils import log_extra

_log = logging.getLogger(__name__)


@runtime_checkable
class LeasedConnection(Protocol):
    """A connection checked out of a pool for one operation."""

    async def execute(self, sql: str, *params: Any) -> list[dict[str, Any]]:
        """Run one statement and return its rows keyed by column name."""
        ...

    async def release(self) -> None:
        """Return the connection to its pool. Later calls are no-ops."""
        ...


@runtime_checkable
class LeaseProvider(Protocol):
    async def acquire(self) -> LeasedConnection:
        """Wait for a free connection and lease it to the caller."""
        ...


async def release_quietly(connection: LeasedConnection, request_id: str | None = None) -> None:
    try:
        await connection.release()
    except Exception as exc:
        _log.warning(
            "Could not release connection",
            extra=log_extra(request_id=request_id, error_message=str(exc)),
        )


@asynccontextmanager
async def leased(
    provider: LeaseProvider, request_id: str | None = None
) -> AsyncIterator[LeasedConnection]:
    """Lease a connection for the body of the block and always release it."""
    connection = await provider.acquire()
    try:
        yield connection
    finally:
        await release_quietly(connection, request_id)
