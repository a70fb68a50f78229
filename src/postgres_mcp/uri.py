"""Resource addressing for catalog entities.

Resource URIs look like ``postgres://<host[:port]>/all-schemas`` or
``postgres://<host[:port]>/<table>/schema``. The authority is derived from the
database URL with its scheme normalized and its user info dropped, so a
resource URI can be shown to callers but never used to connect.
"""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import quote, unquote, urlsplit

from .errors import InvalidResourceURI

RESOURCE_SCHEME = "postgres"
ALL_SCHEMAS_PATH = "all-schemas"
SCHEMA_PATH = "schema"


@dataclass(frozen=True)
class ResourceBase:
    """Display identifier for the database behind this server."""

    authority: str

    @classmethod
    def from_database_url(cls, url: str) -> ResourceBase:
        parts = urlsplit(url)
        host = parts.hostname or ""
        if ":" in host:
            host = f"[{host}]"
        port = parts.port
        return cls(f"{host}:{port}" if port else host)

    def __str__(self) -> str:
        return f"{RESOURCE_SCHEME}://{self.authority}/"

    def all_schemas_uri(self) -> str:
        return f"{self}{ALL_SCHEMAS_PATH}"

    def table_schema_uri(self, table_name: str) -> str:
        return f"{self}{quote(table_name, safe='')}/{SCHEMA_PATH}"


@dataclass(frozen=True)
class ResourcePath:
    """A parsed resource path; ``table_name`` is None for all-schemas."""

    table_name: str | None = None

    @property
    def is_all_schemas(self) -> bool:
        return self.table_name is None


def parse_resource_uri(uri: str) -> ResourcePath:
    path = urlsplit(str(uri)).path
    segments = path[1:].split("/") if path.startswith("/") else path.split("/")

    if segments == [ALL_SCHEMAS_PATH]:
        return ResourcePath()
    if len(segments) == 2 and segments[0] and segments[1] == SCHEMA_PATH:
        return ResourcePath(table_name=unquote(segments[0]))
    raise InvalidResourceURI(f"Invalid resource URI: {uri}")
