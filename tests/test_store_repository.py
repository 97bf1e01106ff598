from unittest.mock import MagicMock

import psycopg2
import pytest
from psycopg2.extras import Json

from src.repository.store_repository import StoreRepository
from src.restore.errors import StoreOperationError


@pytest.fixture
def cursor():
    return MagicMock()


@pytest.fixture
def conn(cursor):
    connection = MagicMock()
    connection.closed = 0
    connection.cursor.return_value.__enter__.return_value = cursor
    return connection


@pytest.fixture
def postgres(conn):
    client = MagicMock()
    client.get_connection.return_value = conn
    return client


@pytest.fixture
def repository(postgres):
    return StoreRepository(postgres, "core_store")


def executed_params(cursor):
    return cursor.execute.call_args[0][1]


@pytest.mark.asyncio
async def test_count(repository, cursor, conn, postgres):
    cursor.fetchone.return_value = (1,)

    assert await repository.count("plugin_users") == 1
    assert executed_params(cursor) == ("plugin_users",)
    conn.commit.assert_called_once()
    postgres.put_connection.assert_called_once_with(conn, close=False)


@pytest.mark.asyncio
async def test_find_existing(repository, cursor):
    cursor.fetchone.return_value = {"value": {"key": "a", "x": 1}}

    assert await repository.find("a") == {"key": "a", "x": 1}
    assert executed_params(cursor) == ("a",)


@pytest.mark.asyncio
async def test_find_missing(repository, cursor):
    cursor.fetchone.return_value = None

    assert await repository.find("a") is None


@pytest.mark.asyncio
async def test_create_stores_full_record(repository, cursor, conn):
    record = {"key": "a", "value": {"x": 1}}

    await repository.create(record)

    key, payload = executed_params(cursor)
    assert key == "a"
    assert isinstance(payload, Json)
    assert payload.adapted == record
    conn.commit.assert_called_once()


@pytest.mark.asyncio
async def test_update_overwrites_payload(repository, cursor):
    record = {"key": "a", "value": 2}

    await repository.update("a", record)

    payload, key = executed_params(cursor)
    assert key == "a"
    assert payload.adapted == record


@pytest.mark.asyncio
async def test_get_all(repository, cursor):
    cursor.fetchall.return_value = [{"value": {"key": "a"}}, {"value": {"key": "b"}}]

    assert await repository.get_all() == [{"key": "a"}, {"key": "b"}]


@pytest.mark.asyncio
async def test_database_error_is_wrapped(repository, cursor, conn, postgres):
    cursor.execute.side_effect = psycopg2.OperationalError("connection reset")

    with pytest.raises(StoreOperationError) as exc_info:
        await repository.update("a", {"key": "a"})

    assert exc_info.value.operation == "update"
    assert exc_info.value.key == "a"
    assert "connection reset" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, psycopg2.OperationalError)
    conn.rollback.assert_called_once()
    conn.commit.assert_not_called()
    postgres.put_connection.assert_called_once_with(conn, close=False)


@pytest.mark.asyncio
async def test_lost_connection_still_raises_store_error(repository, cursor, conn, postgres):
    cursor.execute.side_effect = psycopg2.OperationalError("server closed the connection")
    conn.rollback.side_effect = psycopg2.InterfaceError("connection already closed")

    with pytest.raises(StoreOperationError) as exc_info:
        await repository.count("a")

    assert exc_info.value.operation == "count"
    assert isinstance(exc_info.value.__cause__, psycopg2.OperationalError)
    postgres.put_connection.assert_called_once_with(conn, close=True)


@pytest.mark.asyncio
async def test_closed_connection_skips_rollback(repository, cursor, conn, postgres):
    cursor.execute.side_effect = psycopg2.OperationalError("terminating connection")
    conn.closed = 2

    with pytest.raises(StoreOperationError):
        await repository.find("a")

    conn.rollback.assert_not_called()
    postgres.put_connection.assert_called_once_with(conn, close=True)


def test_ensure_table_exists(repository, cursor, conn):
    assert repository.ensure_table_exists() is True
    cursor.execute.assert_called_once()
    conn.commit.assert_called_once()


def test_ensure_table_exists_failure(repository, cursor):
    cursor.execute.side_effect = psycopg2.ProgrammingError("permission denied")

    assert repository.ensure_table_exists() is False
