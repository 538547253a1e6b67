from typing import Iterator, List, Optional, Union
from dataclasses import dataclass

from txledger.core.types import Transaction
from txledger.core.codec import serialize, deserialize, derive_key
from txledger.core.errors import AlreadyExistsError, NotFoundError, StoreUnavailableError
from txledger.storage import LedgerBackend, MemoryStorage, create_storage

# Base set of transactions written by init_ledger().
SEED_TRANSACTIONS = (
    Transaction(binding="test_binding", timestamp=0),
)


@dataclass
class TransactionContract:
    """
    Create / read / delete / list transactions in the world state.

    Keys are never chosen by the caller: each is the SHA-256 of the
    transaction's canonical JSON, so identical content always lands on the
    same key and a second create of it is rejected.

    The contract keeps no state of its own between calls and takes no locks.
    The exists-then-put in create_tx is not atomic: two concurrent creates of
    the same content can both pass the check, and both write the same bytes
    under the same key. Stronger isolation is up to the backend.
    """
    storage: Optional[Union[LedgerBackend, str]] = None
    namespace: str = "txledger"

    def __post_init__(self):
        if isinstance(self.storage, str):
            stripped = self.storage.strip()
            if stripped.startswith(("sqlite://", "memory://")):
                self.storage = create_storage(stripped, namespace=self.namespace)
            elif stripped:
                # Plain file path → SQLite
                self.storage = create_storage(f"sqlite://{stripped}", namespace=self.namespace)
            else:
                self.storage = None

        if self.storage is None:
            self.storage = MemoryStorage()

        # a backend passed in already carries its own namespace
        self.namespace = getattr(self.storage, "namespace", self.namespace)

    @property
    def state(self) -> LedgerBackend:
        if self.storage is None:
            raise StoreUnavailableError("Contract is closed")
        return self.storage

    def init_ledger(self) -> List[str]:
        """
        Write the base set of transactions without any existence check.
        Meant to run once against an empty world state.
        """
        keys = []
        for tx in SEED_TRANSACTIONS:
            tx_bytes = serialize(tx)
            tx_key = derive_key(tx_bytes)
            self.state.put(tx_key, tx_bytes)
            keys.append(tx_key)
        print(f"[txledger] Seeded {len(keys)} transactions into namespace {self.namespace}")
        return keys

    def create_tx(self, binding: str, timestamp: int) -> str:
        """Store a new transaction and return its derived key."""
        tx = Transaction(binding=binding, timestamp=timestamp)
        tx_bytes = serialize(tx)
        tx_key = derive_key(tx_bytes)
        if self.tx_exists(tx_key):
            raise AlreadyExistsError(tx_key)
        self.state.put(tx_key, tx_bytes)
        return tx_key

    def _get(self, key: str) -> Optional[bytes]:
        state = self.state
        # nothing can be stored under an empty or non-string key
        if not isinstance(key, str) or not key:
            return None
        return state.get(key)

    def read_tx(self, key: str) -> Transaction:
        tx_bytes = self._get(key)
        if tx_bytes is None:
            raise NotFoundError(key)
        return deserialize(tx_bytes, key=key)

    def delete_tx(self, key: str) -> None:
        if not self.tx_exists(key):
            raise NotFoundError(key)
        self.state.delete(key)

    def tx_exists(self, key: str) -> bool:
        return self._get(key) is not None

    def get_all_txs(self) -> Iterator[Transaction]:
        """
        Every transaction in the namespace, in key order.

        Lazy. Stops with DecodeError at the first malformed entry instead of
        skipping it. The scan cursor is closed however iteration ends.
        """
        # empty bounds: open-ended query over the whole namespace
        with self.state.range_scan("", "") as results:
            for key, value in results:
                yield deserialize(value, key=key)

    def close(self) -> None:
        if self.storage is not None:
            self.storage.close()
            print(f"[txledger] Storage closed for namespace {self.namespace}")
            self.storage = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
