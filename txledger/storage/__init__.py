"""
World-state backends: ordered key-value stores the transaction contract runs on.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Iterator, Optional, Tuple


class StateIterator:
    """
    Cursor over (key, value) pairs returned by a range scan.

    Must be closed once the caller is done with it; use it as a context
    manager so every exit path releases the underlying cursor.
    """

    def __init__(self, rows: Iterator[Tuple[str, bytes]], on_close: Optional[Callable[[], None]] = None):
        self._rows = rows
        self._on_close = on_close
        self.closed = False

    def __iter__(self):
        return self

    def __next__(self) -> Tuple[str, bytes]:
        if self.closed:
            raise StopIteration
        return next(self._rows)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._on_close is not None:
            self._on_close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


class LedgerBackend(ABC):
    """Abstract base for ordered world-state stores."""

    @abstractmethod
    def get(self, key: str) -> Optional[bytes]:
        """Value stored at key, or None when absent."""

    @abstractmethod
    def put(self, key: str, value: bytes) -> None:
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        pass

    @abstractmethod
    def range_scan(self, start_key: str, end_key: str) -> StateIterator:
        """
        Pairs with start_key <= key < end_key in key order.
        An empty string on either side leaves that side open.
        """

    @abstractmethod
    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def check_key(key: str) -> None:
    if not isinstance(key, str) or not key:
        raise ValueError(f"world-state key must be a non-empty string, got {key!r}")


def in_range(key: str, start_key: str, end_key: str) -> bool:
    if start_key and key < start_key:
        return False
    if end_key and key >= end_key:
        return False
    return True


def create_storage(uri: str, namespace: str = "txledger") -> LedgerBackend:
    if uri.startswith("sqlite://"):
        from .sqlite import SQLiteStorage
        # Extract everything after sqlite://
        raw_path = uri[len("sqlite://"):].lstrip("/")
        if not raw_path.startswith('/'):
            raw_path = '/' + raw_path

        absolute_path = Path(raw_path).resolve()
        return SQLiteStorage(absolute_path, namespace=namespace)

    elif uri.startswith("memory://"):
        from .memory import MemoryStorage
        return MemoryStorage()
    else:
        raise ValueError(f"Unsupported storage URI: {uri}")


from .memory import MemoryStorage
from .sqlite import SQLiteStorage

__all__ = [
    "LedgerBackend",
    "StateIterator",
    "create_storage",
    "MemoryStorage",
    "SQLiteStorage",
]
