# txledger/core/types.py
from dataclasses import dataclass

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


@dataclass(frozen=True)
class Transaction:
    """
    A single record in the world state.

    binding:   hash binding of personal information and certificate information,
               i.e. (person_info_hash || cert_info_hash). Opaque to the store.
    timestamp: signed 64-bit recording time, opaque to the store.
    """
    binding: str
    timestamp: int

    def __post_init__(self):
        if not isinstance(self.binding, str):
            raise TypeError(f"binding must be str, got {type(self.binding).__name__}")
        try:
            self.binding.encode("utf-8")
        except UnicodeEncodeError as e:
            raise ValueError(f"binding is not encodable as UTF-8: {e.reason}") from e
        # bool is an int subclass but would serialize as true/false
        if isinstance(self.timestamp, bool) or not isinstance(self.timestamp, int):
            raise TypeError(f"timestamp must be int, got {type(self.timestamp).__name__}")
        if not INT64_MIN <= self.timestamp <= INT64_MAX:
            raise ValueError(f"timestamp {self.timestamp} does not fit in a signed 64-bit integer")

    def to_dict(self) -> dict:
        """Wire form. Field names match the ones other ledger nodes hash."""
        return {"Binding": self.binding, "Timestamp": self.timestamp}
