"""Errors raised by the configuration restore."""


class RestoreError(Exception):
    """Base class for restore failures."""


class InvalidInputError(RestoreError):
    """Input is not a JSON array of keyed records."""


class UnsupportedStrategyError(RestoreError):
    """No importer is registered for the requested strategy."""

    def __init__(self, strategy: str) -> None:
        self.strategy = strategy
        super().__init__(f'No importer available for strategy "{strategy}"')


class StoreOperationError(RestoreError):
    """A core store read or write failed."""

    def __init__(self, operation: str, key: str | None, reason: str) -> None:
        self.operation = operation
        self.key = key
        target = f" for key {key!r}" if key is not None else ""
        super().__init__(f"Store {operation} failed{target}: {reason}")
