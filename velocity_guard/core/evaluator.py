"""
Load evaluation against velocity limits.

Decides whether a load request is accepted and produces the account state
to persist afterwards.

Evaluation Order:
1. Duplicate load id - Rejects replays with no side effects at all
2. Record attempt - The id is marked as seen even if a limit rejects it
3. Daily limits - Number of loads and total amount for the calendar day
4. Weekly limit - Total amount from Monday through the request's day
5. Accept - The load is added to the day's bucket
"""

import logging
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional

from .ledger import daily_usage, day_key, weekly_total
from .limits import VelocityLimits
from velocity_guard.storage.models import AccountState, LoadRecord, LoadRequest

logger = logging.getLogger(__name__)


class LoadOutcome(Enum):
    """Result of evaluating a single load request."""
    ACCEPTED = auto()
    DUPLICATE_LOAD = auto()        # Id already attempted, caller suppresses output
    DAILY_LIMIT_EXCEEDED = auto()  # Count or amount cap for the day
    WEEKLY_LIMIT_EXCEEDED = auto() # Amount cap for the week


@dataclass(frozen=True)
class EvaluationResult:
    """Verdict for a load request together with the state to persist."""
    outcome: LoadOutcome
    state: AccountState
    reason: Optional[str] = None

    @property
    def duplicate(self) -> bool:
        return self.outcome == LoadOutcome.DUPLICATE_LOAD

    @property
    def accepted(self) -> bool:
        return self.outcome == LoadOutcome.ACCEPTED


def check_daily_limit(
    request: LoadRequest,
    state: AccountState,
    limits: VelocityLimits
) -> Optional[str]:
    """Return a rejection reason if the request breaches a daily limit.

    Usage is taken from loads already recorded for the day, never
    including the request being evaluated.
    """
    usage = daily_usage(state, day_key(request.timestamp))
    if usage.count >= limits.daily_load_count:
        return (
            f"account {state.customer_id} already has {usage.count} loads on "
            f"{day_key(request.timestamp)}, limit is {limits.daily_load_count} "
            f"(load {request.id})"
        )
    if usage.total + request.amount > limits.daily_amount:
        return (
            f"account {state.customer_id} daily total {usage.total + request.amount} "
            f"would exceed {limits.daily_amount} (load {request.id})"
        )
    return None


def check_weekly_limit(
    request: LoadRequest,
    state: AccountState,
    limits: VelocityLimits
) -> Optional[str]:
    """Return a rejection reason if the request breaches the weekly limit."""
    total = weekly_total(state, request.timestamp)
    if total + request.amount > limits.weekly_amount:
        return (
            f"account {state.customer_id} weekly total {total + request.amount} "
            f"would exceed {limits.weekly_amount} (load {request.id})"
        )
    return None


def evaluate_load(
    request: LoadRequest,
    state: AccountState,
    limits: Optional[VelocityLimits] = None
) -> EvaluationResult:
    """
    Evaluate a load request against an account's ledger.

    The passed state is never mutated. Duplicates return it unchanged;
    every other outcome returns a copy with the load id recorded, and only
    an accepted load is added to the day's bucket.

    Args:
        request: Validated load request
        state: Current ledger for ``request.customer_id``
        limits: Limits to apply, defaults to the standard limits

    Returns:
        EvaluationResult with the outcome and the state to persist
    """
    if limits is None:
        limits = VelocityLimits()

    # 1. Duplicate load id
    if state.has_seen(request.id):
        logger.debug("Load %s for %s is a duplicate", request.id, request.customer_id)
        return EvaluationResult(
            outcome=LoadOutcome.DUPLICATE_LOAD,
            state=state,
            reason=f"load id {request.id} already processed"
        )

    # 2. Record the attempt, kept even when a limit rejects the load
    updated = state.copy()
    updated.seen_load_ids.add(request.id)

    # 3. Daily limits
    reason = check_daily_limit(request, updated, limits)
    if reason is not None:
        logger.debug("Load %s rejected: %s", request.id, reason)
        return EvaluationResult(LoadOutcome.DAILY_LIMIT_EXCEEDED, updated, reason)

    # 4. Weekly limit
    reason = check_weekly_limit(request, updated, limits)
    if reason is not None:
        logger.debug("Load %s rejected: %s", request.id, reason)
        return EvaluationResult(LoadOutcome.WEEKLY_LIMIT_EXCEEDED, updated, reason)

    # 5. Accept
    updated.loads_by_day.setdefault(day_key(request.timestamp), []).append(
        LoadRecord.from_request(request)
    )
    logger.debug("Load %s for %s accepted", request.id, request.customer_id)
    return EvaluationResult(LoadOutcome.ACCEPTED, updated)
