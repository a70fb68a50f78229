class ConfigError(ValueError):
    """Configuration is missing or invalid."""


class CatalogUnavailable(RuntimeError):
    """Listing or reading catalog metadata failed at the database layer."""


class InvalidResourceURI(ValueError):
    """Resource URI path is neither `all-schemas` nor `<table>/schema`."""


class UnknownTool(LookupError):
    """Requested tool is not offered by this server."""


class InvalidToolArguments(ValueError):
    """Tool arguments are missing or have the wrong type."""


class QueryExecutionFailed(RuntimeError):
    """Caller-supplied SQL failed at the database.

    The message is the database's own error text; the driver exception is
    kept as ``__cause__``.
    """

    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


class DatabaseError(RuntimeError):
    """Driver-level failure while leasing a connection or running a statement."""

    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate
