"""
Velocity limit definitions.

Fixed per-account limits on how often and how much can be loaded.
"""

from dataclasses import dataclass
from decimal import Decimal

DAILY_LOAD_COUNT_LIMIT = 3
DAILY_AMOUNT_LIMIT = Decimal("5000.00")
WEEKLY_AMOUNT_LIMIT = Decimal("20000.00")


@dataclass(frozen=True)
class VelocityLimits:
    """Per-account limits applied to every load request.

    Amount limits are inclusive: a total exactly equal to the limit is
    allowed. The count limit caps how many loads a day may already hold.
    """
    daily_load_count: int = DAILY_LOAD_COUNT_LIMIT
    daily_amount: Decimal = DAILY_AMOUNT_LIMIT
    weekly_amount: Decimal = WEEKLY_AMOUNT_LIMIT

    def __post_init__(self):
        """Validate limits are positive."""
        if self.daily_load_count <= 0:
            raise ValueError("daily_load_count must be > 0")
        if self.daily_amount <= 0:
            raise ValueError("daily_amount must be > 0")
        if self.weekly_amount <= 0:
            raise ValueError("weekly_amount must be > 0")
