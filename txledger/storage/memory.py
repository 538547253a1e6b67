from typing import Dict, Optional

from txledger.core.errors import StoreUnavailableError
from . import LedgerBackend, StateIterator, check_key, in_range


class MemoryStorage(LedgerBackend):
    """Process-local world state. Nothing survives close()."""

    def __init__(self):
        self._state: Optional[Dict[str, bytes]] = {}

    @property
    def state(self) -> Dict[str, bytes]:
        if self._state is None:
            raise StoreUnavailableError("Storage connection is closed")
        return self._state

    def get(self, key: str) -> Optional[bytes]:
        check_key(key)
        return self.state.get(key)

    def put(self, key: str, value: bytes) -> None:
        check_key(key)
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"world-state value must be bytes, got {type(value).__name__}")
        self.state[key] = bytes(value)

    def delete(self, key: str) -> None:
        check_key(key)
        self.state.pop(key, None)

    def range_scan(self, start_key: str, end_key: str) -> StateIterator:
        # snapshot, so writes during the scan do not disturb the cursor
        rows = [(k, v) for k, v in sorted(self.state.items()) if in_range(k, start_key, end_key)]
        return StateIterator(iter(rows))

    def close(self) -> None:
        self._state = None

    def __len__(self) -> int:
        return len(self.state)
