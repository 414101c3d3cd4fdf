"""Per-quota locks used while evaluating cluster resource quotas."""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator
from contextlib import ExitStack, contextmanager
from typing import ContextManager, Protocol


class _LockSource(Protocol):
    def get_lock(self, key: str) -> ContextManager[object]: ...


class LockFactory:
    """Hands out one lock per key, creating it on first use."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def get_lock(self, key: str) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault(key, threading.Lock())


@contextmanager
def acquire_quota_locks(lock_factory: _LockSource, quota_names: Iterable[str]) -> Iterator[None]:
    """Hold the locks of all named quotas for the duration of the block.

    Locks are taken in name order, to avoid deadlocks, and released in
    reverse order.
    """
    with ExitStack() as stack:
        for name in sorted(set(quota_names)):
            stack.enter_context(lock_factory.get_lock(name))
        yield