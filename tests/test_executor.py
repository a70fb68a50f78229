import json
import logging

import pytest

from fakes import FakeConnection, FakePool
from postgres_mcp.errors import (
    DatabaseError,
    InvalidToolArguments,
    QueryExecutionFailed,
    UnknownTool,
)
from postgres_mcp.executor import BEGIN_READ_ONLY_SQL, ROLLBACK_SQL, ReadOnlyQueryExecutor


def make_executor(pool: FakePool, environment: str = "dev") -> ReadOnlyQueryExecutor:
    return ReadOnlyQueryExecutor(pool, environment)


def test_definition_carries_environment() -> None:
    definition = make_executor(FakePool(), "staging").definition
    assert definition.name == "query-staging"
    assert definition.description == "Run a read-only SQL query on the staging database."
    assert definition.input_schema["required"] == ["sql"]
    assert definition.input_schema["properties"] == {"sql": {"type": "string"}}


async def test_select_one() -> None:
    connection = FakeConnection(rows={"SELECT 1": [{"?column?": 1}]})
    pool = FakePool(connection)

    result = await make_executor(pool).invoke("query-dev", {"sql": "SELECT 1"})

    assert result.is_error is False
    assert json.loads(result.content[0]) == [{"?column?": 1}]
    assert connection.sql == [BEGIN_READ_ONLY_SQL, "SELECT 1", ROLLBACK_SQL]
    assert connection.rollback_count == 1
    assert connection.release_count == 1


async def test_sql_is_passed_verbatim() -> None:
    connection = FakeConnection()
    sql = "  select * from users where note = 'DROP TABLE users; --'  "

    await make_executor(FakePool(connection)).invoke("query-dev", {"sql": sql})

    assert connection.statements[1] == (sql, ())


async def test_failed_statement_is_reraised_after_cleanup() -> None:
    error = DatabaseError("cannot execute INSERT in a read-only transaction", "25006")
    sql = "INSERT INTO users (id) VALUES (1)"
    connection = FakeConnection(errors={sql: error})

    with pytest.raises(QueryExecutionFailed) as excinfo:
        await make_executor(FakePool(connection)).invoke("query-dev", {"sql": sql})

    assert str(excinfo.value) == "cannot execute INSERT in a read-only transaction"
    assert excinfo.value.sqlstate == "25006"
    assert excinfo.value.__cause__ is error
    assert connection.sql == [BEGIN_READ_ONLY_SQL, sql, ROLLBACK_SQL]
    assert connection.rollback_count == 1
    assert connection.release_count == 1


async def test_rollback_failure_after_success_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    connection = FakeConnection(
        rows={"SELECT 1": [{"?column?": 1}]},
        errors={ROLLBACK_SQL: DatabaseError("connection reset")},
    )

    with caplog.at_level(logging.WARNING):
        result = await make_executor(FakePool(connection)).invoke("query-dev", {"sql": "SELECT 1"})

    assert result.is_error is False
    assert connection.rollback_count == 1
    assert connection.release_count == 1
    warnings = [r for r in caplog.records if r.getMessage() == "Could not roll back transaction"]
    assert len(warnings) == 1
    assert warnings[0].warning == "RollbackWarning"


async def test_rollback_failure_does_not_mask_query_error() -> None:
    connection = FakeConnection(
        errors={
            "SELEC 1": DatabaseError('syntax error at or near "SELEC"', "42601"),
            ROLLBACK_SQL: RuntimeError("connection reset"),
        }
    )

    with pytest.raises(QueryExecutionFailed, match="syntax error"):
        await make_executor(FakePool(connection)).invoke("query-dev", {"sql": "SELEC 1"})

    assert connection.rollback_count == 1
    assert connection.release_count == 1


async def test_failed_begin_still_rolls_back_and_releases() -> None:
    connection = FakeConnection(errors={BEGIN_READ_ONLY_SQL: DatabaseError("terminating connection")})

    with pytest.raises(QueryExecutionFailed):
        await make_executor(FakePool(connection)).invoke("query-dev", {"sql": "SELECT 1"})

    assert connection.sql == [BEGIN_READ_ONLY_SQL, ROLLBACK_SQL]
    assert connection.release_count == 1


async def test_release_failure_does_not_escape() -> None:
    connection = FakeConnection(
        rows={"SELECT 1": [{"?column?": 1}]}, release_error=RuntimeError("pool closed")
    )

    result = await make_executor(FakePool(connection)).invoke("query-dev", {"sql": "SELECT 1"})

    assert result.is_error is False
    assert connection.release_count == 1


async def test_lease_failure_surfaces_as_query_failure() -> None:
    pool = FakePool(acquire_error=DatabaseError("too many connections", "53300"))

    with pytest.raises(QueryExecutionFailed, match="too many connections"):
        await make_executor(pool).invoke("query-dev", {"sql": "SELECT 1"})

    assert pool.connection.statements == []


async def test_unknown_tool_leases_nothing() -> None:
    pool = FakePool()

    with pytest.raises(UnknownTool, match="query-prod"):
        await make_executor(pool, "dev").invoke("query-prod", {"sql": "SELECT 1"})

    assert pool.acquire_count == 0


@pytest.mark.parametrize("arguments", [None, {}, {"query": "SELECT 1"}, {"sql": 1}, {"sql": None}])
async def test_bad_arguments_lease_nothing(arguments: dict | None) -> None:
    pool = FakePool()

    with pytest.raises(InvalidToolArguments):
        await make_executor(pool).invoke("query-dev", arguments)

    assert pool.acquire_count == 0


async def test_each_invocation_gets_its_own_lease() -> None:
    connection = FakeConnection(rows={"SELECT 1": [{"?column?": 1}]})
    pool = FakePool(connection)
    executor = make_executor(pool)

    for _ in range(3):
        await executor.invoke("query-dev", {"sql": "SELECT 1"})

    assert pool.acquire_count == 3
    assert connection.release_count == 3
    assert connection.rollback_count == 3
