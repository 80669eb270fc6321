"""
Data models for storage layer.

Defines load requests, ledger entries and the per-account state snapshot.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Set


@dataclass(frozen=True)
class LoadRequest:
    """Immutable, fully validated request to load funds into an account."""
    id: str
    customer_id: str
    amount: Decimal
    timestamp: datetime

    def __post_init__(self):
        """Validate request fields are populated."""
        if not self.id:
            raise ValueError("id cannot be empty")
        if not self.customer_id:
            raise ValueError("customer_id cannot be empty")
        if self.amount < 0:
            raise ValueError("amount cannot be negative")
        if self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")


@dataclass(frozen=True)
class LoadRecord:
    """Accepted load as kept in an account's ledger."""
    id: str
    amount: Decimal
    timestamp: datetime

    @classmethod
    def from_request(cls, request: LoadRequest) -> "LoadRecord":
        return cls(id=request.id, amount=request.amount, timestamp=request.timestamp)


@dataclass
class AccountState:
    """Per-account ledger of attempted load ids and accepted loads by day.

    ``seen_load_ids`` is append-only and tracks attempts, so a load rejected
    by a limit can never be resubmitted. ``loads_by_day`` only ever holds
    loads that passed every check.
    """
    customer_id: str
    seen_load_ids: Set[str] = field(default_factory=set)
    loads_by_day: Dict[str, List[LoadRecord]] = field(default_factory=dict)

    def copy(self) -> "AccountState":
        """Return a copy whose containers can be mutated independently."""
        return AccountState(
            customer_id=self.customer_id,
            seen_load_ids=set(self.seen_load_ids),
            loads_by_day={day: list(loads) for day, loads in self.loads_by_day.items()}
        )

    def has_seen(self, load_id: str) -> bool:
        return load_id in self.seen_load_ids

    def loads_on(self, day_key: str) -> List[LoadRecord]:
        """Accepted loads for a day-key, empty when nothing was recorded."""
        return self.loads_by_day.get(day_key, [])

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible primitives."""
        return {
            "customer_id": self.customer_id,
            "seen_load_ids": sorted(self.seen_load_ids),
            "loads_by_day": {
                day: [
                    {
                        "id": load.id,
                        "amount": str(load.amount),
                        "timestamp": load.timestamp.isoformat()
                    }
                    for load in loads
                ]
                for day, loads in self.loads_by_day.items()
            }
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AccountState":
        """Rebuild a state produced by :meth:`to_dict`."""
        loads_by_day = {}
        for day, loads in data.get("loads_by_day", {}).items():
            loads_by_day[day] = [
                LoadRecord(
                    id=load["id"],
                    amount=Decimal(load["amount"]),
                    timestamp=datetime.fromisoformat(load["timestamp"])
                )
                for load in loads
            ]
        return cls(
            customer_id=data["customer_id"],
            seen_load_ids=set(data.get("seen_load_ids", [])),
            loads_by_day=loads_by_day
        )
