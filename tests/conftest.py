"""Shared fixtures: process logger and an in-memory core store."""

import copy
from typing import Any

import pytest

from src.logger.logger import init_logger
from src.logger.types import Level
from src.restore.errors import StoreOperationError


class InMemoryStore:
    """Core store double that records every call made to it."""

    def __init__(self) -> None:
        self.entries: dict[str, dict[str, Any]] = {}
        self.calls: list[tuple[str, str | None]] = []
        self.fail_on: set[tuple[str, str]] = set()

    def seed(self, *records: dict[str, Any]) -> "InMemoryStore":
        for record in records:
            self.entries[record["key"]] = copy.deepcopy(record)
        return self

    def _call(self, operation: str, key: str | None) -> None:
        self.calls.append((operation, key))
        if key is not None and (operation, key) in self.fail_on:
            raise StoreOperationError(operation, key, "simulated failure")

    async def count(self, key: str) -> int:
        self._call("count", key)
        return 1 if key in self.entries else 0

    async def find(self, key: str) -> dict[str, Any] | None:
        self._call("find", key)
        entry = self.entries.get(key)
        return copy.deepcopy(entry) if entry is not None else None

    async def create(self, record: dict[str, Any]) -> None:
        self._call("create", record["key"])
        assert record["key"] not in self.entries, "duplicate entry created"
        self.entries[record["key"]] = copy.deepcopy(record)

    async def update(self, key: str, record: dict[str, Any]) -> None:
        self._call("update", key)
        assert key in self.entries, "update of a missing entry"
        self.entries[key] = copy.deepcopy(record)

    async def get_all(self) -> list[dict[str, Any]]:
        self._call("get_all", None)
        return [copy.deepcopy(self.entries[key]) for key in sorted(self.entries)]

    @property
    def writes(self) -> list[tuple[str, str | None]]:
        return [call for call in self.calls if call[0] in ("create", "update")]


@pytest.fixture(autouse=True)
def logger():
    """Global logger writing to stderr, every level enabled."""
    return init_logger("configrestore-test", "test", writer=None, min_level=Level.TRACE)


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()
