from typing import List, Optional
from dataclasses import dataclass

from txledger.core.codec import deserialize, derive_key
from txledger.core.errors import DecodeError, StoreUnavailableError
from txledger.storage import LedgerBackend


@dataclass
class VerificationFailure:
    key: str
    message: str
    category: str = "general"  # e.g. "decode", "key_mismatch", "storage"


@dataclass
class VerificationResult:
    is_valid: bool
    message: str = ""
    failures: List[VerificationFailure] = None
    checked: int = 0

    def __post_init__(self):
        if self.failures is None:
            self.failures = []

    @property
    def first_failure(self) -> Optional[VerificationFailure]:
        return self.failures[0] if self.failures else None

    def __bool__(self):
        return self.is_valid

    def __str__(self):
        if self.is_valid:
            return f"World state is valid ✓ ({self.checked} transactions)"
        lines = [f"Verification FAILED ({len(self.failures)} issues):"]
        for f in self.failures:
            lines.append(f"  • [{f.key}] {f.category}: {f.message}")
        return "\n".join(lines)


class LedgerVerifier:
    """
    Offline audit of a world state.

    Unlike TransactionContract.get_all_txs(), which stops at the first bad
    entry, this walks the whole namespace and reports every entry that does
    not decode or is not stored under the hash of its own bytes.
    """

    def verify(self, storage: LedgerBackend) -> VerificationResult:
        result = VerificationResult(True)

        try:
            with storage.range_scan("", "") as results:
                for key, value in results:
                    result.checked += 1
                    try:
                        deserialize(value, key=key)
                    except DecodeError as e:
                        result.failures.append(VerificationFailure(key, e.reason, "decode"))
                        result.is_valid = False
                        continue

                    expected = derive_key(value)
                    if key != expected:
                        result.failures.append(VerificationFailure(
                            key, f"content hashes to {expected}", "key_mismatch"
                        ))
                        result.is_valid = False
        except StoreUnavailableError as e:
            result.failures.append(VerificationFailure("", str(e), "storage"))
            result.is_valid = False

        if result.is_valid:
            result.message = f"Checked {result.checked} transactions"
        else:
            result.message = f"Failed with {len(result.failures)} issues"
        return result
