"""
payment_splitter.escrow.events — structured events emitted by escrow operations.

Each operation collects its events in a fresh `EventSink`; the events are only
published (returned to the caller / put into a receipt) when the operation
succeeds. Names and argument shapes are validated on emit:

  - name: ASCII identifier-like str, 1..64 chars
  - arg keys: identifier-like str
  - arg values: bytes (<= 4096), bool, u64 int, or str (<= 1024 UTF-8 bytes)

Event names used by the program:

  PaymentRequestCreated   address, creator, target_amount, description, reserve
  ContributionReceived    address, contributor, amount, current_amount
  PaymentRequestCompleted address, current_amount, target_amount
  FundsAutoSettled        address, creator, payout
  FundsClaimed            address, claimant, payout
  PaymentRequestClosed    address, claimant
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Tuple

from ..config import U64_MAX
from ..errors import InvalidArgument

MAX_EVENT_NAME_LEN = 64
MAX_KEY_LEN = 64
MAX_BYTES_LEN = 4096
MAX_STR_BYTES = 1024

_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

PAYMENT_REQUEST_CREATED = "PaymentRequestCreated"
CONTRIBUTION_RECEIVED = "ContributionReceived"
PAYMENT_REQUEST_COMPLETED = "PaymentRequestCompleted"
FUNDS_AUTO_SETTLED = "FundsAutoSettled"
FUNDS_CLAIMED = "FundsClaimed"
PAYMENT_REQUEST_CLOSED = "PaymentRequestClosed"


@dataclass(frozen=True)
class Event:
    name: str
    args: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe form; bytes become 0x-hex."""
        return {
            "name": self.name,
            "args": {
                k: ("0x" + v.hex()) if isinstance(v, bytes) else v
                for k, v in self.args.items()
            },
        }


def _check_ident(kind: str, s: Any, limit: int) -> str:
    if not isinstance(s, str) or not s:
        raise InvalidArgument(f"event {kind} must be a non-empty str", name=kind)
    if len(s) > limit:
        raise InvalidArgument(f"event {kind} too long", name=kind, data={"len": len(s)})
    if not _NAME_RE.match(s):
        raise InvalidArgument(f"event {kind} has invalid characters", name=kind, data={kind: s})
    return s


def _check_value(key: str, value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        b = bytes(value)
        if len(b) > MAX_BYTES_LEN:
            raise InvalidArgument("event bytes arg too long", name=key, data={"len": len(b)})
        return b
    if isinstance(value, bool):
        # bool is a subclass of int, so check it before int.
        return value
    if isinstance(value, int):
        if value < 0 or value > U64_MAX:
            raise InvalidArgument("event int arg out of u64 range", name=key)
        return int(value)
    if isinstance(value, str):
        if len(value.encode("utf-8")) > MAX_STR_BYTES:
            raise InvalidArgument("event str arg too long", name=key)
        return value
    raise InvalidArgument(
        "unsupported event arg type", name=key, data={"py_type": type(value).__name__}
    )


class EventSink:
    """Per-call, ordered collection of validated events."""

    def __init__(self) -> None:
        self._events: List[Event] = []

    def emit(self, name: str, args: Mapping[str, Any]) -> Event:
        n = _check_ident("name", name, MAX_EVENT_NAME_LEN)
        if not isinstance(args, Mapping):
            raise InvalidArgument("event args must be a mapping", name="args")
        checked: Dict[str, Any] = {}
        for k, v in args.items():
            key = _check_ident("key", k, MAX_KEY_LEN)
            checked[key] = _check_value(key, v)
        ev = Event(n, checked)
        self._events.append(ev)
        return ev

    def extend(self, events: Iterable[Event]) -> None:
        """Append already-validated events (publishing a finished call's sink)."""
        self._events.extend(events)

    def clear(self) -> None:
        self._events.clear()

    def events(self) -> Tuple[Event, ...]:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)


__all__ = [
    "Event",
    "EventSink",
    "PAYMENT_REQUEST_CREATED",
    "CONTRIBUTION_RECEIVED",
    "PAYMENT_REQUEST_COMPLETED",
    "FUNDS_AUTO_SETTLED",
    "FUNDS_CLAIMED",
    "PAYMENT_REQUEST_CLOSED",
]
