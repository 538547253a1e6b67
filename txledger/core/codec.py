# txledger/core/codec.py
"""
Canonical encoding of transactions and derivation of their world-state keys.

The serialized form is a compact JSON object written field by field in a fixed
order (Binding, Timestamp). String values are escaped per RFC 8785 (JSON
Canonicalization Scheme). Timestamp is written as an exact base-10 int64, not
through the double formatting RFC 8785 applies to numbers, so values beyond
2**53 keep every digit. Any implementation following these rules reproduces the
bytes, and therefore the key, exactly.
"""

import hashlib
import json
from typing import Optional

try:
    import jcs
except ImportError:
    raise ImportError("Please install jcs: pip install jcs")

from txledger.core.errors import DecodeError
from txledger.core.types import Transaction

FIELDS = ("Binding", "Timestamp")


def serialize(tx: Transaction) -> bytes:
    """Canonical bytes of a transaction, ready for hashing or storing."""
    return b"".join((
        b'{"Binding":',
        jcs.canonicalize(tx.binding),
        b',"Timestamp":',
        str(tx.timestamp).encode("ascii"),
        b"}",
    ))


def derive_key(data: bytes) -> str:
    """Lowercase hex SHA-256 of serialized bytes."""
    return hashlib.sha256(data).hexdigest()


def transaction_key(tx: Transaction) -> str:
    return derive_key(serialize(tx))


def deserialize(data: bytes, key: Optional[str] = None) -> Transaction:
    """
    Parse canonical bytes back into a Transaction.

    Raises DecodeError unless `data` is exactly what serialize() would produce
    for the parsed record. `key` is only used to annotate the error.
    """
    if not isinstance(data, (bytes, bytearray)):
        raise DecodeError(f"expected bytes, got {type(data).__name__}", key)
    try:
        payload = json.loads(bytes(data).decode("utf-8"))
    except (ValueError, RecursionError) as e:
        raise DecodeError(f"not valid JSON: {e}", key) from e

    if not isinstance(payload, dict):
        raise DecodeError("top-level value is not an object", key)
    if sorted(payload) != list(FIELDS):
        raise DecodeError(f"expected fields {list(FIELDS)}, got {sorted(payload)}", key)

    try:
        tx = Transaction(binding=payload["Binding"], timestamp=payload["Timestamp"])
    except (TypeError, ValueError) as e:
        raise DecodeError(str(e), key) from e

    if serialize(tx) != bytes(data):
        raise DecodeError("bytes are not in canonical form", key)
    return tx
