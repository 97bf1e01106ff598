"""Batch restore and dump of core store configuration."""

import time
import uuid
from collections.abc import Iterable
from typing import Protocol

from src.domain.config import ConfigRecord, ImportStrategy, RestoreResult
from src.logger.logger import get_logger
from src.logger.types import Category, duration_ms, param
from src.restore.importers import Importer, StoreQuery, create_importer, resolve_strategy


class DumpSource(Protocol):
    async def get_all(self) -> list[ConfigRecord]: ...


async def restore_records(importer: Importer, records: Iterable[ConfigRecord]) -> int:
    """
    Import records one at a time, in order.

    Each record is fully imported before the next one starts. The first failing
    record stops the batch and its error propagates; records imported before it
    stay in the store.

    Returns:
        Number of records processed
    """
    processed = 0
    for record in records:
        await importer.import_record(record)
        processed += 1
    return processed


async def run_restore(
    store: StoreQuery,
    records: list[ConfigRecord],
    strategy: str | ImportStrategy | None = None,
) -> RestoreResult:
    """Restore parsed records into the store with the given strategy."""
    resolved = resolve_strategy(strategy)
    importer = create_importer(store, resolved)

    logger = (
        get_logger()
        .with_category(Category.RESTORE)
        .with_run_id(str(uuid.uuid4()))
    )
    logger.info(
        "Restore started",
        param("strategy", resolved.value),
        param("records", len(records)),
    )

    started = time.monotonic()
    try:
        imported = await restore_records(importer, records)
    except Exception as e:
        logger.error("Restore aborted", e, param("strategy", resolved.value))
        raise

    logger.info(
        "Restore finished",
        param("strategy", resolved.value),
        param("imported", imported),
        duration_ms(int((time.monotonic() - started) * 1000)),
    )
    return RestoreResult(imported=imported, strategy=resolved)


async def dump_records(store: DumpSource) -> list[ConfigRecord]:
    """All stored records, ordered by key, in restore input shape."""
    records = await store.get_all()
    get_logger().with_category(Category.RESTORE).info(
        "Dump collected", param("records", len(records))
    )
    return records
