"""
Batch processing of load request files.

Requests for different customers are independent and may be evaluated on
separate worker threads. Requests for the same customer are always
evaluated in input order, and responses are emitted in input order.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .fund_handler import LoadHandler
from .parsing import LoadResponse
from velocity_guard.storage.models import LoadRequest

logger = logging.getLogger(__name__)


@dataclass
class BatchSummary:
    """Counts for a processed batch."""
    total: int = 0
    accepted: int = 0
    rejected: int = 0
    suppressed: int = 0  # Duplicates and invalid lines

    def add(self, response: Optional[LoadResponse]) -> None:
        self.total += 1
        if response is None:
            self.suppressed += 1
        elif response.accepted:
            self.accepted += 1
        else:
            self.rejected += 1


def handle_lines(
    lines: Iterable[str],
    handler: LoadHandler,
    workers: int = 1
) -> List[Optional[LoadResponse]]:
    """Process every non-blank line, returning one entry per line.

    Suppressed lines (duplicates and invalid input) yield None so callers
    can account for them.

    Args:
        lines: Raw JSON input lines
        handler: Handler wired to an account service
        workers: Number of threads; 1 processes strictly in input order

    Returns:
        Responses aligned with the non-blank input lines
    """
    if workers < 1:
        raise ValueError("workers must be >= 1")

    requests = [handler.parse(line) for line in lines if line.strip()]
    responses: List[Optional[LoadResponse]] = [None] * len(requests)

    if workers == 1:
        for index, request in enumerate(requests):
            if request is not None:
                responses[index] = handler.handle(request)
        return responses

    # Group by customer, keeping each customer's requests in input order
    partitions: Dict[str, List[Tuple[int, LoadRequest]]] = {}
    for index, request in enumerate(requests):
        if request is not None:
            partitions.setdefault(request.customer_id, []).append((index, request))

    def _run_partition(partition: List[Tuple[int, LoadRequest]]) -> List[Tuple[int, Optional[LoadResponse]]]:
        return [(index, handler.handle(request)) for index, request in partition]

    with ThreadPoolExecutor(max_workers=workers) as executor:
        for results in executor.map(_run_partition, partitions.values()):
            for index, response in results:
                responses[index] = response

    return responses


def process_lines(
    lines: Iterable[str],
    handler: LoadHandler,
    workers: int = 1
) -> List[LoadResponse]:
    """Process input lines and return only the visible responses."""
    return [response for response in handle_lines(lines, handler, workers) if response is not None]


def process_file(
    input_path: str,
    output_path: str,
    handler: LoadHandler,
    workers: int = 1
) -> BatchSummary:
    """Process an input file of JSON lines and write JSON line responses.

    Args:
        input_path: File with one load request per line
        output_path: File to write responses to, truncated first
        handler: Handler wired to an account service
        workers: Number of threads to evaluate customers on

    Returns:
        BatchSummary of the run

    Raises:
        FileNotFoundError: If the input file doesn't exist
    """
    source = Path(input_path)
    if not source.exists():
        raise FileNotFoundError(f"Input file not found: {input_path}")

    with open(source, "r", encoding="utf-8") as f:
        lines = f.read().splitlines()

    responses = handle_lines(lines, handler, workers)

    summary = BatchSummary()
    with open(output_path, "w", encoding="utf-8") as out:
        for response in responses:
            summary.add(response)
            if response is not None:
                out.write(response.to_json() + "\n")

    logger.info(
        "Processed %d load requests: %d accepted, %d rejected, %d suppressed",
        summary.total, summary.accepted, summary.rejected, summary.suppressed
    )
    return summary
