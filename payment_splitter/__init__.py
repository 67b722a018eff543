"""
payment_splitter — a minimal escrow state machine.

Contributors fund a named goal owned by a creator; once the goal is met the
accumulated value is released to the creator.

- PaymentSplitter(ledger=None, store=None, cfg=None)
    .create_payment_request(creator, target_amount, description) -> PaymentRequestHandle
    .contribute_payment(address, contributor, amount, creator=None) -> PaymentRequest
    .claim_funds(address, claimant) -> int
- apply(program, instruction) -> Receipt
    Same operations driven by CreatePaymentRequest / ContributePayment / ClaimFunds.
- find_payment_request_address(creator, description) -> bytes
"""

from __future__ import annotations

from .config import SplitterConfig, load_config, units_to_tokens
from .errors import (AlreadyExists, InvalidArgument, NotAuthorized, Overflow,
                     RecordCorrupt, RecordNotFound, RequestCompleted,
                     SeedTooLong, SplitterError, TransferFailed)
from .escrow import (ClaimFunds, ContributePayment, CreatePaymentRequest,
                     PaymentRequestHandle, PaymentSplitter, Receipt, Signer,
                     apply, receipt_from_cbor, receipt_to_cbor)
from .ledger import InMemoryLedger, Ledger, Rent
from .store import (PaymentRequest, RecordStore, find_payment_request_address,
                    open_sqlite_kv, progress_percent)
from .version import __version__


def version() -> str:
    """Return the payment_splitter version string."""
    return __version__


__all__ = [
    "__version__",
    "version",
    "SplitterConfig",
    "load_config",
    "units_to_tokens",
    "SplitterError",
    "AlreadyExists",
    "RequestCompleted",
    "Overflow",
    "TransferFailed",
    "NotAuthorized",
    "RecordNotFound",
    "RecordCorrupt",
    "SeedTooLong",
    "InvalidArgument",
    "PaymentSplitter",
    "PaymentRequestHandle",
    "Signer",
    "CreatePaymentRequest",
    "ContributePayment",
    "ClaimFunds",
    "apply",
    "Receipt",
    "receipt_to_cbor",
    "receipt_from_cbor",
    "Ledger",
    "InMemoryLedger",
    "Rent",
    "PaymentRequest",
    "RecordStore",
    "open_sqlite_kv",
    "find_payment_request_address",
    "progress_percent",
]
