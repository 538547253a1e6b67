# txledger/core/errors.py
from typing import Optional


class LedgerError(Exception):
    """Base for every error raised by txledger operations."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class AlreadyExistsError(LedgerError):
    def __init__(self, key: str):
        super().__init__(f"the transaction {key} already exists", key)


class NotFoundError(LedgerError):
    def __init__(self, key: str):
        super().__init__(f"the transaction {key} does not exist", key)


class DecodeError(LedgerError, ValueError):
    """Bytes are not the canonical serialization of a Transaction."""

    def __init__(self, reason: str, key: Optional[str] = None):
        where = f" {key}" if key else ""
        super().__init__(f"failed to decode transaction{where}: {reason}", key)
        self.reason = reason


class StoreUnavailableError(LedgerError):
    """The backing world state could not be read or written."""
