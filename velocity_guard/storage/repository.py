"""
Repository pattern for data access.

Persists account state snapshots in SQLite so the ledger can outlive a
single batch run.
"""

import json
import time
from typing import Callable, Tuple

from .db import DEFAULT_DB_PATH, get_connection
from .models import AccountState
from .store import DEFAULT_TTL_SECONDS, AccountStore


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the account_state table if it doesn't exist.

    One row per customer holding the JSON-serialized ledger and the
    wall-clock time of the last write, used for idle expiration.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS account_state (
                customer_id TEXT PRIMARY KEY,
                state TEXT NOT NULL,
                updated_at REAL NOT NULL
            )
        """)
        conn.commit()
    finally:
        conn.close()


class SqliteAccountStore(AccountStore):
    """Account store backed by a SQLite table.

    Per-customer locks are process-local; the store does not coordinate
    writers across processes.
    """

    def __init__(
        self,
        db_path: str = DEFAULT_DB_PATH,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time
    ):
        """Initialize the store with a database path.

        Args:
            db_path: Path to SQLite database file
            ttl_seconds: Idle period after which an account is treated as unknown
            clock: Source of wall-clock seconds, replaceable in tests
        """
        super().__init__()
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self.db_path = db_path
        self.ttl_seconds = ttl_seconds
        self._clock = clock

    def get(self, customer_id: str) -> Tuple[AccountState, bool]:
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "SELECT state, updated_at FROM account_state WHERE customer_id = ?",
                (customer_id,)
            )
            row = cursor.fetchone()
        finally:
            conn.close()

        if row is None or row[1] + self.ttl_seconds <= self._clock():
            return AccountState(customer_id=customer_id), False
        return AccountState.from_dict(json.loads(row[0])), True

    def set(self, customer_id: str, state: AccountState) -> None:
        if state.customer_id != customer_id:
            raise ValueError(
                f"State for {state.customer_id} cannot be stored under {customer_id}"
            )
        conn = get_connection(self.db_path)
        try:
            conn.execute("""
                INSERT INTO account_state (customer_id, state, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(customer_id) DO UPDATE SET
                    state = excluded.state,
                    updated_at = excluded.updated_at
            """, (customer_id, json.dumps(state.to_dict()), self._clock()))
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def purge_expired(self) -> int:
        """Delete rows idle for longer than the TTL and return the count."""
        cutoff = self._clock() - self.ttl_seconds
        conn = get_connection(self.db_path)
        try:
            cursor = conn.execute(
                "DELETE FROM account_state WHERE updated_at <= ?", (cutoff,)
            )
            conn.commit()
            return cursor.rowcount
        finally:
            conn.close()
