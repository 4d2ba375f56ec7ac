"""Caches of raw transactions already seen by the mempool."""

from __future__ import annotations

import threading
from collections import OrderedDict

from txmempool.types import TxKey, tx_key


class LRUTxCache:
    """A thread-safe LRU cache of raw transactions.

    Only the key (hash) of each transaction is stored. Pushing an unseen
    transaction into a full cache evicts the least recently used one.
    """

    def __init__(self, size: int) -> None:
        self._size = size
        self._lock = threading.Lock()
        self._entries: OrderedDict[TxKey, None] = OrderedDict()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def keys(self) -> list[TxKey]:
        """Return the cached keys, least recently used first."""
        with self._lock:
            return list(self._entries)

    def reset(self) -> None:
        """Empty the cache."""
        with self._lock:
            self._entries.clear()

    def push(self, tx: bytes) -> bool:
        """Add ``tx``; return True if it was newly added, False if already cached."""
        key = tx_key(tx)
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                return False
            if len(self._entries) >= self._size and self._entries:
                self._entries.popitem(last=False)
            self._entries[key] = None
            return True

    def remove(self, tx: bytes) -> None:
        """Remove ``tx`` from the cache if present."""
        with self._lock:
            self._entries.pop(tx_key(tx), None)

    def has(self, tx: bytes) -> bool:
        """Report whether ``tx`` is cached, without counting it as an access."""
        with self._lock:
            return tx_key(tx) in self._entries


class NopTxCache:
    """A cache that remembers nothing: every push counts as new.

    Its set of keys is immutable and always empty, so no transaction is
    ever reported as seen.
    """

    def __init__(self) -> None:
        self._keys: frozenset[TxKey] = frozenset()

    def reset(self) -> None:
        """Start again from the empty set of keys."""
        self._keys = frozenset()

    def push(self, tx: bytes) -> bool:
        """Report ``tx`` as new; nothing is retained."""
        return tx_key(tx) not in self._keys

    def remove(self, tx: bytes) -> None:
        """Drop ``tx`` from the (always empty) set of keys."""
        self._keys = self._keys - {tx_key(tx)}

    def has(self, tx: bytes) -> bool:
        """Report whether ``tx`` is cached, which it never is."""
        return tx_key(tx) in self._keys