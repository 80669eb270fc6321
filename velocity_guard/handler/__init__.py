"""
Request handling for Velocity Guard.

Parses raw load requests, runs them through the account service and
formats the visible responses.
"""

from .batch import BatchSummary, process_file, process_lines
from .fund_handler import LoadHandler
from .parsing import InvalidLoadRequest, LoadResponse, parse_load_request

__all__ = [
    "BatchSummary",
    "InvalidLoadRequest",
    "LoadHandler",
    "LoadResponse",
    "parse_load_request",
    "process_file",
    "process_lines",
]
