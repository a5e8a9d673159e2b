"""Per-match mutual exclusion for read-decide-write sections."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

# match id -> (lock, number of threads holding or waiting for it)
_locks: dict[str, tuple[threading.Lock, int]] = {}
_registry_lock = threading.Lock()


def _checkout(match_id: str) -> threading.Lock:
    with _registry_lock:
        lock, users = _locks.get(match_id, (None, 0))
        if lock is None:
            lock = threading.Lock()
        _locks[match_id] = (lock, users + 1)
        return lock


def _release(match_id: str) -> None:
    with _registry_lock:
        lock, users = _locks[match_id]
        if users <= 1:
            del _locks[match_id]
        else:
            _locks[match_id] = (lock, users - 1)


@contextmanager
def match_lock(match_id: str) -> Iterator[None]:
    """Hold the in-process lock for ``match_id`` for the duration of the block.

    The entry is dropped from the registry once no thread holds or waits
    for it.
    """
    lock = _checkout(match_id)
    try:
        with lock:
            yield
    finally:
        _release(match_id)
