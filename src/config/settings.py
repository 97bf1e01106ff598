"""Settings module for configrestore."""

import os
import re

from src.database.postgres import PostgresConfig
from src.logger.types import Level

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class StoreConfig:
    """Core store configuration."""

    def __init__(self, table: str | None = None) -> None:
        self.table = table or os.getenv("STORE_TABLE", "core_store")
        if not _TABLE_NAME_RE.match(self.table):
            raise ValueError(f"Invalid store table name: {self.table!r}")


class LoggingConfig:
    """Logging configuration."""

    def __init__(self) -> None:
        self.level = Level.parse(os.getenv("LOG_LEVEL"), default=Level.INFO)
        # Писать логи в таблицу logs (иначе stderr)
        self.to_postgres = _env_flag("LOG_TO_POSTGRES")
        self.batch_size = int(os.getenv("LOG_BATCH_SIZE", "100"))
        self.flush_interval = float(os.getenv("LOG_FLUSH_INTERVAL", "5.0"))


class Settings:
    """Application settings."""

    def __init__(self) -> None:
        # Service info
        self.environment = os.getenv("ENVIRONMENT", "dev")
        self.service_name = os.getenv("SERVICE_NAME", "configrestore")
        self.service_version = os.getenv("SERVICE_VERSION", "0.1.0")

        self.postgres = PostgresConfig()
        self.store = StoreConfig()
        self.logging = LoggingConfig()
