"""Per-card mutual exclusion for balance mutations."""

import threading
import weakref
from contextlib import contextmanager
from typing import Iterator


class CardLocks:
    """Serialize read-modify-write cycles on the same card within a process.

    Optimistic version checks in the store catch writers in other
    processes; this lock keeps same-process writers from tripping them.
    A card's lock lives only while some thread holds or waits on it.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[str, threading.RLock] = weakref.WeakValueDictionary()

    def __len__(self) -> int:
        return len(self._locks)

    def _lock_for(self, card_id: str) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(card_id)
            if lock is None:
                lock = self._locks[card_id] = threading.RLock()
            return lock

    @contextmanager
    def hold(self, card_id: str) -> Iterator[None]:
        lock = self._lock_for(card_id)
        with lock:
            yield
