"""
Account service.

Runs the fetch, evaluate and persist sequence for one load request as a
single unit per account.
"""

import logging
from typing import Optional

from .evaluator import EvaluationResult, evaluate_load
from .limits import VelocityLimits
from velocity_guard.storage.models import LoadRequest
from velocity_guard.storage.store import AccountStore

logger = logging.getLogger(__name__)


class AccountService:
    """Applies velocity limits to load requests using an injected store.

    Calls for the same customer are serialized through the store's
    per-customer lock; calls for different customers may run concurrently.
    """

    def __init__(self, store: AccountStore, limits: Optional[VelocityLimits] = None):
        self.store = store
        self.limits = limits or VelocityLimits()

    def load_funds(self, request: LoadRequest) -> EvaluationResult:
        """Evaluate a load request and persist the resulting account state.

        Unknown or expired accounts start from an empty ledger. Duplicates
        leave the store untouched; any other outcome is written back, so a
        load rejected by a limit still has its id recorded.

        Args:
            request: Validated load request

        Returns:
            EvaluationResult for the request
        """
        with self.store.lock_for(request.customer_id):
            state, found = self.store.get(request.customer_id)
            if not found:
                logger.debug("Starting new ledger for account %s", request.customer_id)

            result = evaluate_load(request, state, self.limits)

            if not result.duplicate:
                self.store.set(request.customer_id, result.state)

        return result
