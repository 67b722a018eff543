"""
payment_splitter.escrow — the escrow operations.

- program   : PaymentSplitter (create / contribute / claim + views)
- dispatch  : instruction envelopes and apply() -> Receipt
- receipts  : Receipt + canonical CBOR codec
- events    : per-call event sink
- auth      : Signer
- math      : checked / saturating u64 arithmetic
"""

from __future__ import annotations

from .auth import Signer
from .dispatch import ClaimFunds, ContributePayment, CreatePaymentRequest, apply
from .events import Event, EventSink
from .program import PaymentRequestHandle, PaymentSplitter
from .receipts import Receipt, receipt_from_cbor, receipt_to_cbor

__all__ = [
    "Signer",
    "Event",
    "EventSink",
    "PaymentSplitter",
    "PaymentRequestHandle",
    "CreatePaymentRequest",
    "ContributePayment",
    "ClaimFunds",
    "apply",
    "Receipt",
    "receipt_to_cbor",
    "receipt_from_cbor",
]
