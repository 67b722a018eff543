"""
payment_splitter.escrow.receipts — outcome records for applied instructions, with
deterministic CBOR encoding.

  Receipt = {
    status:      "SUCCESS" | "REJECTED" | "ERROR",
    instruction: tstr,                  ; CreatePaymentRequest | ContributePayment | ClaimFunds
    address:     bytes / null,          ; record the instruction targeted
    payout:      uint / null,           ; claim / auto-settlement amount
    record:      { ... } / null,        ; PaymentRequest.to_dict() after the call
    events:      [ { name: tstr, args: { tstr => any } } ],
    error:       { code, message, data? } / null,
  }

Maps are encoded *canonically* (`cbor2.dumps(..., canonical=True)`) so equal
receipts always produce identical bytes.

Public API
----------
- receipt_to_cbor(receipt) -> bytes
- receipt_from_cbor(data: bytes) -> Receipt
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import cbor2

from .events import Event

SUCCESS = "SUCCESS"
REJECTED = "REJECTED"
ERROR = "ERROR"

_STATUSES = (SUCCESS, REJECTED, ERROR)


@dataclass
class Receipt:
    status: str
    instruction: str
    address: Optional[bytes] = None
    payout: Optional[int] = None
    record: Optional[Dict[str, Any]] = None
    events: List[Event] = field(default_factory=list)
    error: Optional[Dict[str, Any]] = None

    @property
    def ok(self) -> bool:
        return self.status == SUCCESS


# ------------------------------ Helpers -------------------------------------


def _to_bytes(x: Any) -> bytes:
    if isinstance(x, (bytes, bytearray, memoryview)):
        return bytes(x)
    raise TypeError(f"Expected bytes-like, got {type(x)!r}")


def _event_to_obj(e: Event) -> Dict[str, Any]:
    if not isinstance(e, Event):
        raise TypeError(f"Event expected, got {type(e)!r}")
    return {"name": e.name, "args": dict(e.args)}


def _obj_to_event(obj: Mapping[str, Any]) -> Event:
    try:
        return Event(name=str(obj["name"]), args=dict(obj.get("args", {})))
    except KeyError as e:
        raise ValueError(f"Missing event field: {e}") from None


def _receipt_to_obj(r: Receipt) -> Dict[str, Any]:
    if r.status not in _STATUSES:
        raise ValueError(f"unknown receipt status: {r.status!r}")
    return {
        "status": r.status,
        "instruction": r.instruction,
        "address": _to_bytes(r.address) if r.address is not None else None,
        "payout": int(r.payout) if r.payout is not None else None,
        "record": r.record,
        "events": [_event_to_obj(e) for e in r.events],
        "error": r.error,
    }


def _obj_to_receipt(obj: Mapping[str, Any]) -> Receipt:
    missing = [k for k in ("status", "instruction", "events") if k not in obj]
    if missing:
        raise ValueError(f"Receipt missing required fields: {missing}")
    status = obj["status"]
    if status not in _STATUSES:
        raise ValueError(f"unknown receipt status: {status!r}")
    address = obj.get("address")
    payout = obj.get("payout")
    return Receipt(
        status=status,
        instruction=str(obj["instruction"]),
        address=_to_bytes(address) if address is not None else None,
        payout=int(payout) if payout is not None else None,
        record=obj.get("record"),
        events=[_obj_to_event(e) for e in obj["events"]],
        error=obj.get("error"),
    )


# ------------------------------ Public API ----------------------------------


def receipt_to_cbor(receipt: Receipt) -> bytes:
    """
    Serialize a Receipt to canonical CBOR bytes.
    """
    return cbor2.dumps(_receipt_to_obj(receipt), canonical=True)


def receipt_from_cbor(data: bytes) -> Receipt:
    """
    Deserialize CBOR bytes into a Receipt, validating required fields and shapes.
    """
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError("receipt_from_cbor expects a bytes-like object")
    obj = cbor2.loads(bytes(data))
    if not isinstance(obj, Mapping):
        raise ValueError("Receipt CBOR must decode to a map")
    return _obj_to_receipt(obj)


__all__ = [
    "Receipt",
    "SUCCESS",
    "REJECTED",
    "ERROR",
    "receipt_to_cbor",
    "receipt_from_cbor",
]
