"""
Tests for the account service fetch/evaluate/persist sequence.
"""
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

from velocity_guard.core.evaluator import LoadOutcome
from velocity_guard.core.limits import VelocityLimits
from velocity_guard.core.service import AccountService
from velocity_guard.storage.models import AccountState, LoadRequest
from velocity_guard.storage.store import InMemoryAccountStore

MONDAY = datetime(2020, 1, 6, 10, 0, tzinfo=timezone.utc)


def make_request(load_id, amount, customer_id="18", timestamp=MONDAY):
    return LoadRequest(str(load_id), customer_id, Decimal(amount), timestamp)


class TestAccountService:
    """Test state sequencing around evaluation."""

    def test_accepted_load_is_persisted(self):
        """Test the updated ledger is written back."""
        store = InMemoryAccountStore()
        service = AccountService(store)

        result = service.load_funds(make_request(1, "4000.00"))

        state, found = store.get("18")
        assert result.outcome == LoadOutcome.ACCEPTED
        assert found is True
        assert state.seen_load_ids == {"1"}

    def test_rejected_load_id_is_persisted(self):
        """Test a limit rejection still records the attempted id."""
        store = InMemoryAccountStore()
        service = AccountService(store)

        result = service.load_funds(make_request(1, "6000.00"))

        state, _ = store.get("18")
        assert result.outcome == LoadOutcome.DAILY_LIMIT_EXCEEDED
        assert state.seen_load_ids == {"1"}
        assert state.loads_by_day == {}

    def test_duplicate_does_not_write(self):
        """Test duplicates never call set on the store."""
        store = MagicMock()
        store.get.return_value = (AccountState("18", seen_load_ids={"1"}), True)
        store.lock_for.return_value = threading.Lock()
        service = AccountService(store)

        result = service.load_funds(make_request(1, "1.00"))

        assert result.duplicate is True
        store.set.assert_not_called()

    def test_expired_account_starts_fresh(self):
        """Test an evicted account accepts a previously seen id again."""
        clock_value = [0.0]
        store = InMemoryAccountStore(ttl_seconds=60, clock=lambda: clock_value[0])
        service = AccountService(store)

        service.load_funds(make_request(1, "100.00"))
        clock_value[0] = 61.0
        result = service.load_funds(make_request(1, "100.00"))

        assert result.outcome == LoadOutcome.ACCEPTED

    def test_custom_limits(self):
        """Test injected limits are applied."""
        service = AccountService(InMemoryAccountStore(), VelocityLimits(daily_load_count=1))
        service.load_funds(make_request(1, "1.00"))

        result = service.load_funds(make_request(2, "1.00"))

        assert result.outcome == LoadOutcome.DAILY_LIMIT_EXCEEDED

    def test_accounts_are_isolated(self):
        """Test one customer's history never affects another's."""
        service = AccountService(InMemoryAccountStore())
        service.load_funds(make_request(1, "5000.00", customer_id="A"))

        result = service.load_funds(make_request(1, "5000.00", customer_id="B"))

        assert result.accepted is True

    def test_concurrent_loads_for_one_account_are_serialized(self):
        """Test no update is lost when many threads load the same account."""
        store = InMemoryAccountStore()
        service = AccountService(store, VelocityLimits(daily_load_count=1000))
        requests = [
            make_request(i, "1.00", timestamp=MONDAY + timedelta(seconds=i)) for i in range(200)
        ]

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(service.load_funds, requests))

        state, _ = store.get("18")
        assert all(r.accepted for r in results)
        assert len(state.seen_load_ids) == 200
        assert len(state.loads_on("2020-01-06")) == 200

    def test_concurrent_duplicates_accept_once(self):
        """Test racing submissions of one id are accepted exactly once."""
        service = AccountService(InMemoryAccountStore())
        request = make_request(1, "10.00")

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(service.load_funds, [request] * 20))

        assert sum(1 for r in results if r.accepted) == 1
        assert sum(1 for r in results if r.duplicate) == 19
