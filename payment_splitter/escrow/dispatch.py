"""
payment_splitter.escrow.dispatch — instruction envelopes and the apply loop.

Hosts that prefer data over method calls build one of the instruction
dataclasses and hand it to `apply(program, instruction)`. `apply` never raises
for SplitterError outcomes; it returns a `Receipt` with status:

  SUCCESS   operation committed; events and payout are filled in
  REJECTED  one of the domain outcomes (AlreadyExists, RequestCompleted,
            Overflow, TransferFailed, NotAuthorized)
  ERROR     any other SplitterError (bad input, missing record, corrupt state)

Failed receipts carry no events: nothing the failed call emitted was committed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Union

from ..errors import SplitterError, error_to_receipt_fields
from ..logging import get_logger
from .auth import Signer
from .events import FUNDS_AUTO_SETTLED, EventSink
from .program import PaymentSplitter
from .receipts import SUCCESS, Receipt

log = get_logger("payment_splitter.dispatch")


@dataclass(frozen=True)
class CreatePaymentRequest:
    creator: bytes
    target_amount: int
    description: str


@dataclass(frozen=True)
class ContributePayment:
    address: bytes
    contributor: bytes
    amount: int
    creator: Optional[Signer] = None


@dataclass(frozen=True)
class ClaimFunds:
    address: bytes
    claimant: bytes


Instruction = Union[CreatePaymentRequest, ContributePayment, ClaimFunds]


def _target_address(program: PaymentSplitter, ix: Instruction) -> Optional[bytes]:
    if isinstance(ix, CreatePaymentRequest):
        try:
            return program.address_for(ix.creator, ix.description)
        except SplitterError:
            return None
    addr = ix.address
    return bytes(addr) if isinstance(addr, (bytes, bytearray)) else None


def apply(program: PaymentSplitter, ix: Instruction) -> Receipt:
    """Execute one instruction against `program` and describe the outcome."""
    name = type(ix).__name__
    sink = EventSink()
    payout: Optional[int] = None

    try:
        if isinstance(ix, CreatePaymentRequest):
            handle = program.create_payment_request(
                ix.creator, ix.target_amount, ix.description, sink=sink
            )
            address, record = handle.address, handle.record
        elif isinstance(ix, ContributePayment):
            record = program.contribute_payment(
                ix.address, ix.contributor, ix.amount, ix.creator, sink=sink
            )
            address = bytes(ix.address)
            for e in sink.events():
                if e.name == FUNDS_AUTO_SETTLED:
                    payout = e.args["payout"]
        elif isinstance(ix, ClaimFunds):
            payout, record = program.claim_with_record(ix.address, ix.claimant, sink=sink)
            address = bytes(ix.address)
        else:
            raise TypeError(f"unknown instruction type: {name}")
    except SplitterError as err:
        fields = error_to_receipt_fields(err)
        log.debug("instruction failed", instruction=name, status=fields["status"], code=err.code)
        return Receipt(
            status=fields["status"],
            instruction=name,
            address=_target_address(program, ix),
            error=fields["error"],
        )

    return Receipt(
        status=SUCCESS,
        instruction=name,
        address=address,
        payout=payout,
        record=record.to_dict() if record is not None else None,
        events=list(sink.events()),
    )


__all__ = [
    "CreatePaymentRequest",
    "ContributePayment",
    "ClaimFunds",
    "Instruction",
    "apply",
]
