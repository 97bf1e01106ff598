"""Import strategies for restoring configuration records into the core store.

Each importer reconciles one record with the store per call and re-reads the
store every time, so duplicate keys in one input resolve in input order.
"""

from typing import Any, Protocol

from src.domain.config import DEFAULT_STRATEGY, ConfigRecord, ImportStrategy, JsonValue
from src.logger.logger import get_logger
from src.logger.types import Category, param
from src.restore.errors import UnsupportedStrategyError


class StoreQuery(Protocol):
    """Core store operations used by the importers."""

    async def count(self, key: str) -> int: ...

    async def find(self, key: str) -> ConfigRecord | None: ...

    async def create(self, record: ConfigRecord) -> None: ...

    async def update(self, key: str, record: ConfigRecord) -> None: ...


class Importer(Protocol):
    strategy: ImportStrategy

    async def import_record(self, record: ConfigRecord) -> None: ...


def deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    """
    Merge `incoming` on top of `base` and return a new dict.

    Nested dicts present on both sides are merged recursively. Any other
    incoming value (scalar, list, None) replaces the base value as a whole.
    Keys missing from `incoming` keep their base value. Neither argument is
    modified.
    """
    merged: dict[str, Any] = dict(base)
    for key, value in incoming.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = deep_merge(current, value)
        else:
            merged[key] = _copy_json(value)
    return merged


def _copy_json(value: JsonValue) -> JsonValue:
    if isinstance(value, dict):
        return {key: _copy_json(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_copy_json(item) for item in value]
    return value


class ReplaceImporter:
    """Overwrites existing entries and creates missing ones."""

    strategy = ImportStrategy.REPLACE

    def __init__(self, store: StoreQuery) -> None:
        self.store = store
        self.logger = get_logger().with_category(Category.RESTORE)

    async def import_record(self, record: ConfigRecord) -> None:
        key = str(record["key"])
        if await self.store.count(key) > 0:
            await self.store.update(key, record)
            self.logger.debug("Entry replaced", param("key", key))
        else:
            await self.store.create(record)
            self.logger.debug("Entry created", param("key", key))


class MergeImporter:
    """Deep merges into existing entries and creates missing ones."""

    strategy = ImportStrategy.MERGE

    def __init__(self, store: StoreQuery) -> None:
        self.store = store
        self.logger = get_logger().with_category(Category.RESTORE)

    async def import_record(self, record: ConfigRecord) -> None:
        key = str(record["key"])
        existing = await self.store.find(key)
        if existing is not None:
            await self.store.update(key, deep_merge(existing, record))
            self.logger.debug("Entry merged", param("key", key))
        else:
            await self.store.create(record)
            self.logger.debug("Entry created", param("key", key))


class KeepImporter:
    """Creates missing entries, never touches existing ones."""

    strategy = ImportStrategy.KEEP

    def __init__(self, store: StoreQuery) -> None:
        self.store = store
        self.logger = get_logger().with_category(Category.RESTORE)

    async def import_record(self, record: ConfigRecord) -> None:
        key = str(record["key"])
        if await self.store.count(key) > 0:
            self.logger.debug("Entry exists, kept as is", param("key", key))
            return

        await self.store.create(record)
        self.logger.debug("Entry created", param("key", key))


_IMPORTERS: dict[ImportStrategy, type[ReplaceImporter | MergeImporter | KeepImporter]] = {
    ImportStrategy.REPLACE: ReplaceImporter,
    ImportStrategy.MERGE: MergeImporter,
    ImportStrategy.KEEP: KeepImporter,
}


def resolve_strategy(strategy: str | ImportStrategy | None) -> ImportStrategy:
    """Map a strategy name to ImportStrategy, None means the default."""
    if strategy is None:
        return DEFAULT_STRATEGY
    if isinstance(strategy, ImportStrategy):
        return strategy
    try:
        return ImportStrategy(strategy)
    except ValueError:
        raise UnsupportedStrategyError(strategy) from None


def create_importer(
    store: StoreQuery, strategy: str | ImportStrategy | None = None
) -> Importer:
    """
    Build the importer for a strategy.

    Args:
        store: Core store to reconcile against
        strategy: "replace" (default), "merge" or "keep"

    Raises:
        UnsupportedStrategyError: unknown strategy name
    """
    return _IMPORTERS[resolve_strategy(strategy)](store)
