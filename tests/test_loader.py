import io
import json
from pathlib import Path

import pytest

from src.restore.errors import InvalidInputError
from src.restore.loader import load_records, parse_records, read_input


class TtyStream(io.BytesIO):
    def isatty(self) -> bool:
        return True


def test_parse_records_valid() -> None:
    records = parse_records(b'[{"key": "a", "value": {"x": 1}}, {"key": "b"}]')
    assert records == [{"key": "a", "value": {"x": 1}}, {"key": "b"}]


def test_parse_records_empty_array() -> None:
    assert parse_records("[]") == []


def test_parse_records_malformed_json_embeds_parser_message() -> None:
    with pytest.raises(InvalidInputError) as exc_info:
        parse_records(b"[{")

    message = str(exc_info.value)
    assert message.startswith("Invalid input data: ")
    assert message.endswith("Expected a valid JSON array.")
    assert isinstance(exc_info.value.__cause__, json.JSONDecodeError)


@pytest.mark.parametrize("constant", ["NaN", "Infinity", "-Infinity"])
def test_parse_records_rejects_non_json_constants(constant: str) -> None:
    with pytest.raises(InvalidInputError) as exc_info:
        parse_records(f'[{{"key": "ok"}}, {{"key": "a", "v": {constant}}}]'.encode())

    message = str(exc_info.value)
    assert constant.lstrip("-") in message
    assert message.endswith("Expected a valid JSON array.")


def test_parse_records_not_an_array() -> None:
    with pytest.raises(InvalidInputError, match="Expected a valid JSON array"):
        parse_records(b'"not an array"')


def test_parse_records_object_top_level() -> None:
    with pytest.raises(InvalidInputError):
        parse_records(b'{"key": "a"}')


@pytest.mark.parametrize("element", ['"a"', "1", '{"value": 1}', '{"key": 5}'])
def test_parse_records_element_without_string_key(element: str) -> None:
    with pytest.raises(InvalidInputError, match="entry 1"):
        parse_records(f'[{{"key": "ok"}}, {element}]')


def test_parse_records_invalid_utf8() -> None:
    with pytest.raises(InvalidInputError):
        parse_records(b"\xff\xfe[]")


def test_read_input_from_file(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text('[{"key": "ä"}]', encoding="utf-8")

    assert read_input(path) == '[{"key": "ä"}]'.encode("utf-8")


def test_read_input_missing_file(tmp_path: Path) -> None:
    with pytest.raises(InvalidInputError, match="Cannot read input file"):
        read_input(tmp_path / "missing.json")


def test_read_input_from_stdin() -> None:
    assert read_input(stdin=io.BytesIO(b"[]")) == b"[]"


def test_read_input_interactive_stdin_is_empty() -> None:
    assert read_input(stdin=TtyStream(b"[]")) == b""


def test_load_records_interactive_stdin_is_invalid() -> None:
    with pytest.raises(InvalidInputError):
        load_records(stdin=TtyStream(b""))


def test_load_records_from_file(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text(json.dumps([{"key": "a", "v": 1}]), encoding="utf-8")

    assert load_records(str(path)) == [{"key": "a", "v": 1}]
