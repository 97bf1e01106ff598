"""
configrestore - restore and dump core store configuration.

Usage:
    configrestore restore [--file PATH] [--strategy replace|merge|keep]
    configrestore dump [--file PATH]

Restore reads a JSON array of records (from --file or standard input) and
imports them one by one into the core store table. Dump writes the store
content in the same format.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from src.config.settings import Settings
from src.database.postgres import PostgresClient
from src.domain.config import DEFAULT_STRATEGY, ImportStrategy
from src.logger.logger import Logger, init_logger
from src.logger.postgres_writer import PostgresWriter
from src.logger.types import Category, category, param
from src.repository.store_repository import StoreRepository
from src.restore.errors import RestoreError
from src.restore.importers import resolve_strategy
from src.restore.loader import load_records
from src.restore.runner import dump_records, run_restore

EXIT_OK = 0
EXIT_FAILURE = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="configrestore",
        description="Restore and dump key-value configuration of the core store.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    restore = commands.add_parser("restore", help="Import a JSON array of configuration entries")
    restore.add_argument(
        "-f", "--file", help="Input file (default: read standard input)"
    )
    restore.add_argument(
        "-s",
        "--strategy",
        default=DEFAULT_STRATEGY.value,
        help=(
            "Import strategy: "
            + ", ".join(s.value for s in ImportStrategy)
            + f" (default: {DEFAULT_STRATEGY.value})"
        ),
    )

    dump = commands.add_parser("dump", help="Export all configuration entries as JSON")
    dump.add_argument("-f", "--file", help="Output file (default: standard output)")

    return parser


async def connect_store(settings: Settings, logger: Logger) -> tuple[PostgresClient, StoreRepository]:
    """Open the connection pool and make sure the store table is there."""
    postgres_client = PostgresClient(settings.postgres)
    await postgres_client.connect()
    logger.info(
        "Connected to PostgreSQL",
        category(Category.DATABASE),
        param("host", settings.postgres.host),
        param("database", settings.postgres.database),
    )

    repository = StoreRepository(postgres_client, settings.store.table)
    if not repository.ensure_table_exists():
        await postgres_client.close()
        raise ConnectionError(f"Core store table {settings.store.table} is not available")
    return postgres_client, repository


async def restore_command(args: argparse.Namespace, settings: Settings, logger: Logger) -> int:
    # Стратегию и входные данные проверяем до подключения к БД
    strategy = resolve_strategy(args.strategy)
    records = load_records(args.file)

    postgres_client, repository = await connect_store(settings, logger)
    try:
        result = await run_restore(repository, records, strategy)
    finally:
        await postgres_client.close()

    print(result.summary())
    return EXIT_OK


async def dump_command(args: argparse.Namespace, settings: Settings, logger: Logger) -> int:
    postgres_client, repository = await connect_store(settings, logger)
    try:
        records = await dump_records(repository)
    finally:
        await postgres_client.close()

    output = json.dumps(records, indent=2, ensure_ascii=False)
    if args.file:
        Path(args.file).write_text(output + "\n", encoding="utf-8")
        logger.info("Dump written", param("file", args.file), param("records", len(records)))
    else:
        print(output)
    return EXIT_OK


async def open_log_writer(settings: Settings) -> PostgresWriter | None:
    """Connected log writer when LOG_TO_POSTGRES is on, otherwise None."""
    if not settings.logging.to_postgres:
        return None

    log_writer = PostgresWriter(
        dsn=settings.postgres.dsn,
        batch_size=settings.logging.batch_size,
        flush_interval=settings.logging.flush_interval,
    )
    await log_writer.connect()
    return log_writer


async def main(argv: list[str] | None = None) -> int:
    """Main entry point, returns the process exit code."""
    args = build_parser().parse_args(argv)
    settings = Settings()

    try:
        log_writer = await open_log_writer(settings)
    except ConnectionError as e:
        # Логгер ещё не поднят, пишем напрямую
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    logger = init_logger(
        service_name=settings.service_name,
        environment=settings.environment,
        writer=log_writer,
        min_level=settings.logging.level,
    )
    logger.debug(
        "Starting configrestore",
        param("command", args.command),
        param("environment", settings.environment),
        param("version", settings.service_version),
    )

    commands = {"restore": restore_command, "dump": dump_command}
    try:
        return await commands[args.command](args, settings, logger)
    except (RestoreError, ConnectionError) as e:
        logger.error(f"{args.command} failed", e, category(Category.RESTORE))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        if log_writer:
            await log_writer.close()


def run() -> None:
    """Console script entry point."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    run()
