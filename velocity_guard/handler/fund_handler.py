"""
Fund load handler.

Connects raw input lines to the account service and decides which
verdicts are visible to the caller.
"""

import logging
from typing import Optional

from .parsing import InvalidLoadRequest, LoadResponse, parse_load_request
from velocity_guard.core.service import AccountService
from velocity_guard.storage.models import LoadRequest

logger = logging.getLogger(__name__)


class LoadHandler:
    """Parses load requests, evaluates them and builds responses.

    Duplicates and unparseable lines produce no response. Loads rejected
    by a velocity limit produce a response with ``accepted`` set to False.
    """

    def __init__(self, service: AccountService):
        self.service = service

    def parse(self, line: str) -> Optional[LoadRequest]:
        """Parse a line, logging and returning None when it is invalid."""
        try:
            return parse_load_request(line)
        except InvalidLoadRequest as e:
            logger.warning("Skipping invalid load request: %s", e)
            return None

    def handle(self, request: LoadRequest) -> Optional[LoadResponse]:
        """Evaluate a parsed request, returning None for duplicates."""
        result = self.service.load_funds(request)
        if result.duplicate:
            logger.info("Suppressing duplicate load: %s", result.reason)
            return None
        return LoadResponse(
            id=request.id,
            customer_id=request.customer_id,
            accepted=result.accepted
        )

    def run(self, line: str) -> Optional[LoadResponse]:
        """Process a single raw input line."""
        request = self.parse(line)
        if request is None:
            return None
        return self.handle(request)
