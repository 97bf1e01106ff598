"""Configuration domain models."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

JsonValue = Union[None, bool, int, float, str, list[Any], dict[str, Any]]

# One record of the restore input / one core store payload.
# Only "key" is meaningful here, the rest is opaque.
ConfigRecord = dict[str, JsonValue]


class ImportStrategy(str, Enum):
    """How an incoming record is reconciled with an existing store entry."""

    REPLACE = "replace"  # Overwrite existing payload
    MERGE = "merge"  # Deep merge incoming on top of existing
    KEEP = "keep"  # Leave existing untouched, only fill gaps


DEFAULT_STRATEGY = ImportStrategy.REPLACE


@dataclass
class RestoreResult:
    """Outcome of one restore run."""

    imported: int
    strategy: ImportStrategy

    def summary(self) -> str:
        return (
            f"Successfully imported {self.imported} configuration entries "
            f'using the "{self.strategy.value}" strategy.'
        )
