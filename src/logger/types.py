"""Types and constants for structured logging."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Level(str, Enum):
    """Log level определяет уровень важности лога."""

    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def severity(self) -> int:
        """Numeric severity used for level filtering."""
        return _SEVERITY[self]

    @classmethod
    def parse(cls, value: str | None, default: "Level | None" = None) -> "Level":
        """Parse level name (case-insensitive), `warning` is accepted as `warn`."""
        if not value:
            return default or cls.INFO
        name = value.strip().lower()
        if name == "warning":
            name = "warn"
        try:
            return cls(name)
        except ValueError:
            return default or cls.INFO


_SEVERITY = {
    Level.TRACE: 0,
    Level.DEBUG: 10,
    Level.INFO: 20,
    Level.WARN: 30,
    Level.ERROR: 40,
}


class Category(str, Enum):
    """Category определяет категорию события для группировки логов."""

    RESTORE = "restore"  # Restore/dump run lifecycle
    STORE = "store"  # Core store reads and writes
    INPUT = "input"  # Reading and parsing input documents
    DATABASE = "database"  # Connections and pools


@dataclass
class LogEntry:
    """LogEntry представляет одну запись лога для вставки в PostgreSQL."""

    timestamp: datetime
    service_name: str
    instance_id: str
    environment: str
    level: Level
    message: str
    ingestion_time: datetime = field(default_factory=datetime.utcnow)
    node_name: str | None = None
    category: Category | None = None
    run_id: str | None = None
    function_name: str | None = None
    file_path: str | None = None
    line_number: int | None = None
    error_message: str | None = None
    stack_trace: str | None = None
    context: dict[str, Any] | None = None
    duration_ms: int | None = None


@dataclass
class Field:
    """Field для структурированных данных в логах."""

    key: str
    value: Any


def category(cat: Category) -> Field:
    """Создаёт поле для категории лога."""
    return Field(key="_category", value=cat)


def param(key: str, value: Any) -> Field:
    return Field(key=key, value=value)


def duration_ms(value: int) -> Field:
    """Создаёт поле для duration в миллисекундах."""
    return Field(key="duration_ms", value=value)
