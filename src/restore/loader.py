"""Reading restore input from a file or standard input."""

import json
import sys
from pathlib import Path
from typing import Any, BinaryIO

from src.domain.config import ConfigRecord
from src.logger.logger import get_logger
from src.logger.types import Category, param
from src.restore.errors import InvalidInputError


def read_input(file_path: str | Path | None = None, stdin: BinaryIO | None = None) -> bytes:
    """
    Read raw input bytes.

    Args:
        file_path: Input file, None to read standard input
        stdin: Binary stream used instead of sys.stdin (tests)

    Returns:
        File or stream content; empty when stdin is an interactive terminal
    """
    if file_path is not None:
        try:
            return Path(file_path).read_bytes()
        except OSError as e:
            raise InvalidInputError(f"Cannot read input file {file_path}: {e}") from e

    stream = stdin if stdin is not None else sys.stdin.buffer
    if stream.isatty():
        return b""
    return stream.read()


def _reject_constant(name: str) -> Any:
    # NaN / Infinity / -Infinity are not JSON and do not fit into JSONB
    raise ValueError(f"Unexpected token {name} in JSON")


def parse_records(raw: bytes | str) -> list[ConfigRecord]:
    """
    Parse input as a JSON array of configuration records.

    Raises:
        InvalidInputError: undecodable text, malformed JSON, a top level that is
            not an array, or an element without a string "key"
    """
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        data: Any = json.loads(text, parse_constant=_reject_constant)
    except ValueError as e:
        raise InvalidInputError(
            f"Invalid input data: {e}. Expected a valid JSON array."
        ) from e

    if not isinstance(data, list):
        raise InvalidInputError("Invalid input data. Expected a valid JSON array.")

    for index, record in enumerate(data):
        if not isinstance(record, dict) or not isinstance(record.get("key"), str):
            raise InvalidInputError(
                f"Invalid input data: entry {index} is not an object "
                'with a string "key" field.'
            )

    return data


def load_records(
    file_path: str | Path | None = None, stdin: BinaryIO | None = None
) -> list[ConfigRecord]:
    """Read and parse restore input."""
    logger = get_logger().with_category(Category.INPUT)
    source = str(file_path) if file_path is not None else "<stdin>"

    raw = read_input(file_path, stdin)
    records = parse_records(raw)

    logger.info(
        "Input loaded",
        param("source", source),
        param("bytes", len(raw)),
        param("records", len(records)),
    )
    return records
