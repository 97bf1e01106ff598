"""Core store repository for PostgreSQL."""

from collections.abc import Callable
from typing import Any, TypeVar

import psycopg2
from psycopg2 import sql
from psycopg2.extensions import connection as Connection
from psycopg2.extras import Json, RealDictCursor

from src.database.postgres import PostgresClient
from src.domain.config import ConfigRecord
from src.logger.logger import get_logger
from src.logger.types import Category, param
from src.restore.errors import StoreOperationError

T = TypeVar("T")


class StoreRepository:
    """
    Key-value configuration entries in a PostgreSQL table.

    Table layout: key TEXT PRIMARY KEY, value JSONB (the full record, "key"
    included), updated_at TIMESTAMPTZ. Every call borrows a pooled connection
    and commits on its own, there is no transaction spanning several calls.
    """

    def __init__(self, postgres_client: PostgresClient, table: str = "core_store") -> None:
        """
        Initialize StoreRepository.

        Args:
            postgres_client: PostgreSQL client instance
            table: Collection (table) name
        """
        self.postgres = postgres_client
        self.table = table
        self._table = sql.Identifier(table)
        self.logger = get_logger().with_category(Category.STORE).with_fields(
            param("table", table)
        )

    def _run(
        self,
        operation: str,
        key: str | None,
        action: Callable[[Connection], T],
    ) -> T:
        """Run one statement batch on a pooled connection and commit it."""
        conn = self.postgres.get_connection()
        broken = False
        try:
            result = action(conn)
            conn.commit()
            return result
        except psycopg2.Error as e:
            broken = not self._rollback(conn)
            self.logger.error(
                f"Store {operation} failed",
                e,
                param("operation", operation),
                param("key", key),
                param("connection_lost", broken),
            )
            raise StoreOperationError(operation, key, str(e)) from e
        finally:
            # Разорванное соединение не возвращаем в пул
            self.postgres.put_connection(conn, close=broken)

    def _rollback(self, conn: Connection) -> bool:
        """Roll back the failed transaction, False if the connection is gone."""
        if conn.closed:
            return False
        try:
            conn.rollback()
        except psycopg2.Error as e:
            self.logger.warn("Rollback failed", param("error", str(e)))
            return False
        return True

    async def count(self, key: str) -> int:
        """Number of entries stored under `key` (0 or 1)."""

        def action(conn: Connection) -> int:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL("SELECT COUNT(*) FROM {} WHERE key = %s").format(self._table),
                    (key,),
                )
                row = cur.fetchone()
            return int(row[0]) if row else 0

        return self._run("count", key, action)

    async def find(self, key: str) -> ConfigRecord | None:
        """
        Get stored record by key.

        Args:
            key: Configuration key

        Returns:
            Stored record or None if not found
        """

        def action(conn: Connection) -> ConfigRecord | None:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    sql.SQL("SELECT value FROM {} WHERE key = %s").format(self._table),
                    (key,),
                )
                row = cur.fetchone()
            return dict(row["value"]) if row else None

        return self._run("find", key, action)

    async def create(self, record: ConfigRecord) -> None:
        """Insert a new entry for `record["key"]`."""
        key = str(record["key"])

        def action(conn: Connection) -> None:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL(
                        "INSERT INTO {} (key, value, updated_at) VALUES (%s, %s, NOW())"
                    ).format(self._table),
                    (key, Json(record)),
                )

        self._run("create", key, action)
        self.logger.debug("Entry created", param("key", key))

    async def update(self, key: str, record: ConfigRecord) -> None:
        """Overwrite the payload of the entry stored under `key`."""

        def action(conn: Connection) -> None:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL(
                        "UPDATE {} SET value = %s, updated_at = NOW() WHERE key = %s"
                    ).format(self._table),
                    (Json(record), key),
                )

        self._run("update", key, action)
        self.logger.debug("Entry updated", param("key", key))

    async def get_all(self) -> list[ConfigRecord]:
        """
        Get all stored records.

        Returns:
            Records ordered by key
        """

        def action(conn: Connection) -> list[ConfigRecord]:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                cur.execute(
                    sql.SQL("SELECT value FROM {} ORDER BY key").format(self._table)
                )
                rows: list[dict[str, Any]] = cur.fetchall()
            return [dict(row["value"]) for row in rows]

        return self._run("get_all", None, action)

    def ensure_table_exists(self) -> bool:
        """
        Create the store table if it is missing.

        Returns:
            True if table exists or was created
        """

        def action(conn: Connection) -> None:
            with conn.cursor() as cur:
                cur.execute(
                    sql.SQL(
                        """
                        CREATE TABLE IF NOT EXISTS {} (
                            key TEXT PRIMARY KEY,
                            value JSONB NOT NULL,
                            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                        )
                        """
                    ).format(self._table)
                )

        try:
            self._run("ensure_table", None, action)
        except StoreOperationError:
            return False
        return True
