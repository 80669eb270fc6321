"""
Ledger windows for limit evaluation.

Groups accepted loads by calendar day and totals them over the daily and
weekly windows used by the velocity limits.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import List, Union

from velocity_guard.storage.models import AccountState

DAY_KEY_FORMAT = "%Y-%m-%d"


@dataclass(frozen=True)
class DailyUsage:
    """Accepted loads already recorded for one day."""
    count: int
    total: Decimal


def day_key(moment: Union[datetime, date]) -> str:
    """Bucket key for the calendar day of ``moment``.

    The day is taken in the timestamp's own offset, so time of day never
    moves a load into another bucket.
    """
    return moment.strftime(DAY_KEY_FORMAT)


def week_to_date_keys(moment: Union[datetime, date]) -> List[str]:
    """Day-keys from ``moment``'s day back to the Monday of its week, inclusive.

    Weeks run Monday to Sunday. A Monday yields a single key, a Sunday
    yields seven.
    """
    day = moment.date() if isinstance(moment, datetime) else moment
    return [day_key(day - timedelta(days=offset)) for offset in range(day.weekday() + 1)]


def daily_usage(state: AccountState, key: str) -> DailyUsage:
    """Count and total of accepted loads in a single day bucket."""
    loads = state.loads_on(key)
    return DailyUsage(
        count=len(loads),
        total=sum((load.amount for load in loads), Decimal("0"))
    )


def weekly_total(state: AccountState, moment: Union[datetime, date]) -> Decimal:
    """Total accepted amount from the week's Monday through ``moment``'s day."""
    total = Decimal("0")
    for key in week_to_date_keys(moment):
        total += daily_usage(state, key).total
    return total
