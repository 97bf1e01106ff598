"""Основной logger для структурированного логирования."""

import inspect
import os
import sys
import traceback
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any

from src.logger.postgres_writer import PostgresWriter
from src.logger.types import Category, Field, Level, LogEntry


class Logger:
    """Structured logger; entries go to a PostgresWriter or to stderr."""

    def __init__(
        self,
        service_name: str,
        environment: str,
        writer: PostgresWriter | None = None,
        min_level: Level = Level.INFO,
    ) -> None:
        """
        Initialize Logger.

        Args:
            service_name: Имя сервиса
            environment: Окружение (dev, stage, prod)
            writer: PostgresWriter для записи логов
            min_level: Entries below this level are dropped
        """
        self.service_name = service_name
        self.environment = environment
        self.writer = writer
        self.min_level = min_level
        self.instance_id = self._get_instance_id()
        self.node_name = os.getenv("NODE_NAME")

        # Контекстные поля
        self._fields: dict[str, Any] = {}
        self._category: Category | None = None
        self._run_id: str | None = None

    def trace(self, msg: str, *fields: Field) -> None:
        self._log(Level.TRACE, msg, None, *fields)

    def debug(self, msg: str, *fields: Field) -> None:
        self._log(Level.DEBUG, msg, None, *fields)

    def info(self, msg: str, *fields: Field) -> None:
        self._log(Level.INFO, msg, None, *fields)

    def warn(self, msg: str, *fields: Field) -> None:
        self._log(Level.WARN, msg, None, *fields)

    def error(self, msg: str, err: Exception | None = None, *fields: Field) -> None:
        self._log(Level.ERROR, msg, err, *fields)

    def _log(
        self,
        level: Level,
        msg: str,
        err: Exception | None,
        *fields: Field,
    ) -> None:
        if level.severity < self.min_level.severity:
            return

        # Получаем информацию о caller
        frame = inspect.currentframe()
        caller_frame = frame.f_back.f_back if frame and frame.f_back else None

        function_name = None
        file_path = None
        line_number = None

        if caller_frame:
            function_name = caller_frame.f_code.co_name
            file_path = self._clean_file_path(caller_frame.f_code.co_filename)
            line_number = caller_frame.f_lineno

        context: dict[str, Any] = dict(self._fields)
        category = self._category

        for field in fields:
            if field.key == "_category":
                if isinstance(field.value, Category):
                    category = field.value
                continue
            context[field.key] = field.value

        duration_ms = context.pop("duration_ms", None)
        if duration_ms is not None:
            duration_ms = int(duration_ms)

        entry = LogEntry(
            timestamp=datetime.utcnow(),
            service_name=self.service_name,
            instance_id=self.instance_id,
            node_name=self.node_name,
            environment=self.environment,
            level=level,
            category=category,
            run_id=self._run_id,
            function_name=function_name,
            file_path=file_path,
            line_number=line_number,
            message=msg,
            context=context if context else None,
            duration_ms=duration_ms,
        )

        if err:
            entry.error_message = str(err)
            if level is Level.ERROR:
                entry.stack_trace = "".join(
                    traceback.format_exception(type(err), err, err.__traceback__)
                )

        if self.writer:
            self.writer.enqueue(entry)
        else:
            # stdout занят выводом команды (dump, итоговое сообщение)
            print(self._format_line(entry), file=sys.stderr)

    @staticmethod
    def _format_line(entry: LogEntry) -> str:
        category = entry.category.value if entry.category else "-"
        line = f"[{entry.level.value}] {category}: {entry.message}"
        if entry.context:
            pairs = " ".join(f"{key}={value}" for key, value in entry.context.items())
            line = f"{line} {pairs}"
        if entry.error_message:
            line = f"{line} error={entry.error_message}"
        return line

    def with_category(self, category: Category) -> "Logger":
        """Возвращает новый logger с указанной категорией."""
        new_logger = self._copy()
        new_logger._category = category
        return new_logger

    def with_run_id(self, run_id: str) -> "Logger":
        """Возвращает новый logger с run ID."""
        new_logger = self._copy()
        new_logger._run_id = run_id
        return new_logger

    def with_fields(self, *fields: Field) -> "Logger":
        """Возвращает новый logger с дополнительными полями."""
        new_logger = self._copy()
        for field in fields:
            new_logger._fields[field.key] = field.value
        return new_logger

    def _copy(self) -> "Logger":
        new_logger = Logger(
            self.service_name, self.environment, self.writer, self.min_level
        )
        new_logger.instance_id = self.instance_id
        new_logger.node_name = self.node_name
        new_logger._fields = dict(self._fields)
        new_logger._category = self._category
        new_logger._run_id = self._run_id
        return new_logger

    @staticmethod
    def _get_instance_id() -> str:
        """Получает уникальный ID инстанса из env или генерирует."""
        if hostname := os.getenv("HOSTNAME"):
            return hostname
        return str(uuid.uuid4())

    @staticmethod
    def _clean_file_path(file_path: str) -> str:
        """Путь относительно пакета src, иначе только имя файла."""
        parts = Path(file_path).parts
        if "src" in parts:
            idx = parts.index("src")
            return str(Path(*parts[idx:]))
        return Path(file_path).name


# Глобальный logger instance
_global_logger: Logger | None = None


def get_logger() -> Logger:
    """Возвращает глобальный logger instance."""
    if _global_logger is None:
        raise RuntimeError("Logger not initialized. Call init_logger() first.")
    return _global_logger


def init_logger(
    service_name: str,
    environment: str,
    writer: PostgresWriter | None = None,
    min_level: Level = Level.INFO,
) -> Logger:
    """
    Инициализирует глобальный logger.

    Args:
        service_name: Имя сервиса
        environment: Окружение (dev, stage, prod)
        writer: PostgresWriter для записи логов, None - stderr
        min_level: Минимальный уровень

    Returns:
        Logger instance
    """
    global _global_logger
    _global_logger = Logger(service_name, environment, writer, min_level)
    return _global_logger
