"""Connection leasing for PostgreSQL."""

from .lease import LeasedConnection, LeaseProvider, leased, release_quietly
from .pool import PostgresLease, PostgresPool

__all__ = [
    "LeasedConnection",
    "LeaseProvider",
    "PostgresLease",
    "PostgresPool",
    "leased",
    "release_quietly",
]
