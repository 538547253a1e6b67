# txledger/__init__.py
"""
txledger — content-addressed transaction records on an ordered key-value ledger.

A transaction's key is the SHA-256 of its canonical (RFC 8785) JSON form, so any
node re-executing the same create derives the same key.
"""

__version__ = "0.1.0"

from txledger.core.types import Transaction
from txledger.core.errors import (
    LedgerError,
    AlreadyExistsError,
    NotFoundError,
    DecodeError,
    StoreUnavailableError,
)
from txledger.core.codec import serialize, deserialize, derive_key, transaction_key
from txledger.storage import LedgerBackend, MemoryStorage, SQLiteStorage, create_storage
from txledger.chaincode.contract import TransactionContract
from txledger.verify.verifier import LedgerVerifier, VerificationResult

__all__ = [
    "Transaction",
    "LedgerError",
    "AlreadyExistsError",
    "NotFoundError",
    "DecodeError",
    "StoreUnavailableError",
    "serialize",
    "deserialize",
    "derive_key",
    "transaction_key",
    "LedgerBackend",
    "MemoryStorage",
    "SQLiteStorage",
    "create_storage",
    "TransactionContract",
    "LedgerVerifier",
    "VerificationResult",
]
