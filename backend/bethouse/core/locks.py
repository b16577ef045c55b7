from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

from bethouse.config import get_settings
from bethouse.core.errors import Contention

logger = logging.getLogger(__name__)

# Platform-wide acquisition order. Every operation takes its locks in this
# order, so two operations can never wait on each other in a cycle.
LOCK_ORDER = {"event": 0, "bet": 1, "account": 2, "money_request": 3}

LockKey = tuple[str, int]


def event_key(event_id: int) -> LockKey:
    return ("event", event_id)


def bet_key(bet_id: int) -> LockKey:
    return ("bet", bet_id)


def account_key(account_id: int) -> LockKey:
    return ("account", account_id)


def money_request_key(request_id: int) -> LockKey:
    return ("money_request", request_id)


def _rank(key: LockKey) -> tuple[int, int]:
    kind, ident = key
    if kind not in LOCK_ORDER:
        raise ValueError(f"unknown lock kind '{kind}'")
    return (LOCK_ORDER[kind], ident)


class LockManager:
    def __init__(self, timeout_sec: float) -> None:
        self.timeout_sec = timeout_sec
        self._guard = threading.Lock()
        self._locks: dict[LockKey, threading.RLock] = {}

    def _lock_for(self, key: LockKey) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock

    @contextmanager
    def hold(self, *keys: LockKey) -> Iterator[None]:
        ordered = sorted(set(keys), key=_rank)
        acquired: list[threading.RLock] = []
        try:
            for key in ordered:
                lock = self._lock_for(key)
                if not lock.acquire(timeout=self.timeout_sec):
                    logger.warning("Lock timeout on %s:%s after %.2fs", key[0], key[1], self.timeout_sec)
                    raise Contention(f"Timed out waiting for {key[0]} {key[1]}; please retry.")
                acquired.append(lock)
            yield
        finally:
            for lock in reversed(acquired):
                lock.release()


@lru_cache
def get_lock_manager() -> LockManager:
    return LockManager(timeout_sec=get_settings().lock_timeout_sec)
