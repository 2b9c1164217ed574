"""Per-contributor critical sections"""
import threading
from contextlib import contextmanager
from typing import Dict, Generator

class _KeyLock:
    __slots__ = ('lock', 'holders')

    def __init__(self):
        self.lock = threading.RLock()
        self.holders = 0

class KeyedLock:
    """
    One re-entrant lock per contributor key.

    Operations on the same key run one at a time; different keys never
    contend. A key's lock is dropped once nobody holds or waits for it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: Dict[bytes, _KeyLock] = {}

    @contextmanager
    def hold(self, key: bytes) -> Generator[None, None, None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyLock()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        """Number of keys currently held or waited on"""
        with self._guard:
            return len(self._locks)
