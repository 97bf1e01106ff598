"""PostgreSQL writer для логов с батчингом."""

import asyncio
import contextlib
import json
import sys
from typing import Any

import psycopg2
import psycopg2.extras
from psycopg2.extensions import connection as Connection

from src.logger.types import LogEntry

INSERT_LOGS_QUERY = """
    INSERT INTO logs (
        timestamp, service_name, instance_id, node_name, environment,
        level, category, run_id,
        function_name, file_path, line_number,
        message, error_message, stack_trace, context,
        duration_ms, ingestion_time
    ) VALUES %s
"""


class PostgresWriter:
    """Buffers log entries and ships them to the `logs` table in batches."""

    def __init__(
        self,
        dsn: str,
        batch_size: int = 100,
        flush_interval: float = 5.0,
    ) -> None:
        """
        Initialize PostgresWriter.

        Args:
            dsn: PostgreSQL connection string
            batch_size: Buffer size that triggers a flush
            flush_interval: Background flush interval in seconds
        """
        self.dsn = dsn
        self.batch_size = batch_size
        self.flush_interval = flush_interval
        self.buffer: list[LogEntry] = []
        self._conn: Connection | None = None
        self._flush_task: asyncio.Task[None] | None = None
        self._closed = False

    async def connect(self) -> None:
        """Connect to PostgreSQL and start the background flush."""
        try:
            self._conn = psycopg2.connect(self.dsn)
            self._conn.set_session(autocommit=False)
        except psycopg2.Error as e:
            self._conn = None
            raise ConnectionError(f"Log writer failed to connect to PostgreSQL: {e}") from e

        self._flush_task = asyncio.create_task(self._background_flush())

    def enqueue(self, entry: LogEntry) -> None:
        """Добавляет запись в буфер, flush при достижении batch_size."""
        if self._closed:
            return

        self.buffer.append(entry)
        if len(self.buffer) >= self.batch_size:
            self.flush()

    def flush(self) -> None:
        """Write buffered entries, falling back to stderr on failure."""
        if not self.buffer:
            return
        if not self._conn:
            self._fallback_to_stderr()
            self.buffer.clear()
            return

        values = [self._to_row(entry) for entry in self.buffer]
        try:
            with self._conn.cursor() as cursor:
                psycopg2.extras.execute_values(
                    cursor,
                    INSERT_LOGS_QUERY,
                    values,
                    page_size=self.batch_size,
                )
            self._conn.commit()
        except psycopg2.Error as e:
            print(
                f"[LOGGER ERROR] Failed to insert logs into PostgreSQL: {e}",
                file=sys.stderr,
            )
            self._conn.rollback()
            self._fallback_to_stderr()

        self.buffer.clear()

    @staticmethod
    def _to_row(entry: LogEntry) -> tuple[Any, ...]:
        return (
            entry.timestamp,
            entry.service_name,
            entry.instance_id,
            entry.node_name,
            entry.environment,
            entry.level.value,
            entry.category.value if entry.category else None,
            entry.run_id,
            entry.function_name,
            entry.file_path,
            entry.line_number,
            entry.message,
            entry.error_message,
            entry.stack_trace,
            json.dumps(entry.context, default=str) if entry.context is not None else None,
            entry.duration_ms,
            entry.ingestion_time,
        )

    def _fallback_to_stderr(self) -> None:
        """Записывает логи в stderr если PostgreSQL недоступен."""
        for entry in self.buffer:
            print(format_entry_json(entry), file=sys.stderr)

    async def _background_flush(self) -> None:
        while not self._closed:
            await asyncio.sleep(self.flush_interval)
            self.flush()

    async def close(self) -> None:
        """Stop the background flush, write what is left and disconnect."""
        self._closed = True

        if self._flush_task:
            self._flush_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._flush_task
            self._flush_task = None

        self.flush()

        if self._conn:
            self._conn.close()
            self._conn = None


def format_entry_json(entry: LogEntry) -> str:
    """Render a log entry as a single JSON line."""
    data: dict[str, Any] = {
        "timestamp": entry.timestamp.isoformat(),
        "level": entry.level.value,
        "category": entry.category.value if entry.category else None,
        "message": entry.message,
        "service_name": entry.service_name,
        "environment": entry.environment,
    }
    if entry.run_id:
        data["run_id"] = entry.run_id
    if entry.error_message:
        data["error"] = entry.error_message
    if entry.context:
        data["context"] = entry.context
    return json.dumps(data, default=str)
