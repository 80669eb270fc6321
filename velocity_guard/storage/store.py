"""
Keyed account state stores with idle expiration.

Every store hands out one lock per customer id so that the
get/evaluate/set sequence for an account can run as a single unit
without locking the whole store.
"""

import logging
import threading
import time
import weakref
from typing import Callable, Dict, Tuple

from .models import AccountState

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 300


class AccountStore:
    """Base class for account state stores.

    Subclasses implement ``get`` and ``set``. ``get`` must return a state the
    caller is free to mutate; changes only reach the store through ``set``.
    """

    def __init__(self):
        # Entries vanish once no caller holds a reference to the lock
        self._locks = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    def lock_for(self, customer_id: str) -> threading.Lock:
        """Return the lock serializing access to a single account."""
        with self._locks_guard:
            lock = self._locks.get(customer_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[customer_id] = lock
            return lock

    def get(self, customer_id: str) -> Tuple[AccountState, bool]:
        """Fetch the state for an account.

        Returns:
            Tuple of (state, found). When the account is unknown or expired,
            a fresh empty state is returned with ``found`` set to False.
        """
        raise NotImplementedError

    def set(self, customer_id: str, state: AccountState) -> None:
        raise NotImplementedError


class InMemoryAccountStore(AccountStore):
    """Process-local store, entries expire after ``ttl_seconds`` without a write."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ):
        super().__init__()
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[AccountState, float]] = {}
        self._entries_guard = threading.Lock()

    def get(self, customer_id: str) -> Tuple[AccountState, bool]:
        with self._entries_guard:
            entry = self._entries.get(customer_id)
            if entry is None:
                return AccountState(customer_id=customer_id), False
            state, expires_at = entry
            if expires_at <= self._clock():
                del self._entries[customer_id]
                logger.debug("Account %s expired from store", customer_id)
                return AccountState(customer_id=customer_id), False
            return state.copy(), True

    def set(self, customer_id: str, state: AccountState) -> None:
        if state.customer_id != customer_id:
            raise ValueError(
                f"State for {state.customer_id} cannot be stored under {customer_id}"
            )
        with self._entries_guard:
            self._entries[customer_id] = (state.copy(), self._clock() + self.ttl_seconds)

    def purge_expired(self) -> int:
        """Drop expired entries and return how many were removed."""
        now = self._clock()
        with self._entries_guard:
            expired = [key for key, (_, expires_at) in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def flush(self) -> None:
        """Remove every entry."""
        with self._entries_guard:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
