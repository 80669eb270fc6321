"""
Request parsing and response formatting.

Turns raw JSON lines into validated load requests and accepted/rejected
verdicts back into JSON lines.
"""

import json
import re
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict

from velocity_guard.storage.models import LoadRequest

REQUIRED_FIELDS = ("id", "customer_id", "load_amount", "time")

# Fractional seconds followed by an offset or the end of the string
_FRACTION = re.compile(r"\.(\d+)(?=[+-]\d{2}:?\d{2}$|$)")


class InvalidLoadRequest(ValueError):
    """Raised when an input line cannot be turned into a LoadRequest."""


@dataclass(frozen=True)
class LoadResponse:
    """Caller-visible verdict for a load request."""
    id: str
    customer_id: str
    accepted: bool

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "customer_id": self.customer_id, "accepted": self.accepted}

    def to_json(self) -> str:
        """Compact JSON line, keys in id, customer_id, accepted order."""
        return json.dumps(self.to_dict(), separators=(",", ":"))


def parse_amount(raw: str) -> Decimal:
    """Parse a currency amount such as ``"$4810.91"`` into a Decimal.

    Raises:
        InvalidLoadRequest: If the amount is not a finite, non-negative number
    """
    text = raw.strip()
    if text.startswith("$"):
        text = text[1:]
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise InvalidLoadRequest(f"Invalid load_amount: {raw!r}")
    if not amount.is_finite():
        raise InvalidLoadRequest(f"Invalid load_amount: {raw!r}")
    if amount < 0:
        raise InvalidLoadRequest(f"load_amount cannot be negative: {raw!r}")
    return amount


def parse_timestamp(raw: str) -> datetime:
    """Parse an RFC 3339 timestamp, requiring an explicit offset.

    Raises:
        InvalidLoadRequest: If the value is not a timezone-aware date-time
    """
    text = raw.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    # fromisoformat before 3.11 only takes 3 or 6 fraction digits, RFC 3339 allows any
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text)
    try:
        timestamp = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidLoadRequest(f"Invalid time: {raw!r}")
    if timestamp.tzinfo is None:
        raise InvalidLoadRequest(f"time must include a UTC offset: {raw!r}")
    return timestamp


def parse_load_request(line: str) -> LoadRequest:
    """Decode and validate one JSON input line.

    Args:
        line: JSON object with id, customer_id, load_amount and time

    Returns:
        Validated LoadRequest

    Raises:
        InvalidLoadRequest: If the line is not valid JSON, a required field
            is missing or empty, or a value cannot be parsed
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise InvalidLoadRequest(f"Invalid JSON: {e}")

    if not isinstance(data, dict):
        raise InvalidLoadRequest("Load request must be a JSON object")

    for name in REQUIRED_FIELDS:
        value = data.get(name)
        if not isinstance(value, str):
            raise InvalidLoadRequest(f"Missing required string field '{name}'")
        if not value.strip():
            raise InvalidLoadRequest(f"Field '{name}' cannot be empty")

    return LoadRequest(
        id=data["id"],
        customer_id=data["customer_id"],
        amount=parse_amount(data["load_amount"]),
        timestamp=parse_timestamp(data["time"])
    )
