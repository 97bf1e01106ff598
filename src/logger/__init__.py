"""Structured logger for configrestore."""

from src.logger.logger import Logger, get_logger, init_logger
from src.logger.postgres_writer import PostgresWriter
from src.logger.types import Category, Field, Level, LogEntry

__all__ = [
    "Logger",
    "get_logger",
    "init_logger",
    "PostgresWriter",
    "Category",
    "Level",
    "LogEntry",
    "Field",
]
