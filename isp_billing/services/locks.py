"""Per-entity locks serializing ledger mutations inside one process"""

import threading
import weakref
from contextlib import contextmanager
from typing import Iterator


class KeyedLock:
    """Hands out one re-entrant lock per key; idle locks are garbage collected"""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: "weakref.WeakValueDictionary[str, threading.RLock]" = weakref.WeakValueDictionary()

    def _lock_for(self, key: str):
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, *keys: str) -> Iterator[None]:
        """Acquire the locks for all keys, always in sorted order to avoid deadlock"""
        locks = [self._lock_for(key) for key in sorted(set(keys))]
        acquired = []
        try:
            for lock in locks:
                lock.acquire()
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


# Shared by invoice, payment and sweep services; keys are "customer:<id>" / "invoice:<id>"
ledger_locks = KeyedLock()


def customer_key(customer_id: str) -> str:
    return f"customer:{customer_id}"


def invoice_key(invoice_id: str) -> str:
    return f"invoice:{invoice_id}"
