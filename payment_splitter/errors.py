"""
payment_splitter.errors — typed exceptions for the escrow program.

Operations communicate failures via *typed exceptions* that are converted into
receipts and structured error payloads by the dispatcher.

Hierarchy
---------
SplitterError (base)
 ├─ AlreadyExists     : A record already lives at the derived address
 ├─ RequestCompleted  : Contribution to a request whose goal is already met
 ├─ Overflow          : Counter addition left the u64 range
 ├─ TransferFailed    : The ledger could not move the value (e.g. insufficient balance)
 ├─ NotAuthorized     : Claimant is neither the creator nor acting on a completed request
 ├─ RecordNotFound    : No record at the given address
 ├─ RecordCorrupt     : Persisted bytes do not decode to a record
 ├─ SeedTooLong       : Description too long to be used as an address seed
 └─ InvalidArgument   : Malformed input (wrong identity length, non-u64 amount)

All of them are terminal for the call and leave the record and balances as they
were before the call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class SplitterError(Exception):
    """
    Base escrow error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'NOT_AUTHORIZED').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "escrow error"
    code: str = "SPLITTER_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for receipts/logs."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


def _with(data: Optional[Dict[str, Any]], **fields: Any) -> Optional[Dict[str, Any]]:
    d: Dict[str, Any] = {}
    if data:
        d.update(data)
    for k, v in fields.items():
        if v is None:
            continue
        d.setdefault(k, v.hex() if isinstance(v, (bytes, bytearray)) else v)
    return d or None


class AlreadyExists(SplitterError):
    """A record for this (creator, description) pair is already allocated."""

    def __init__(
        self,
        message: str = "payment request already exists",
        *,
        address: Optional[bytes] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="ALREADY_EXISTS", data=_with(data, address=address))


class RequestCompleted(SplitterError):
    """The payment request has already reached its target."""

    def __init__(
        self,
        message: str = "payment request is already completed",
        *,
        address: Optional[bytes] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="REQUEST_COMPLETED", data=_with(data, address=address))


class Overflow(SplitterError):
    """Checked arithmetic left the u64 range."""

    def __init__(
        self,
        message: str = "arithmetic overflow",
        *,
        lhs: Optional[int] = None,
        rhs: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="OVERFLOW", data=_with(data, lhs=lhs, rhs=rhs))


class TransferFailed(SplitterError):
    """
    The ledger refused a value movement.

    Typical triggers:
      - source balance below the requested amount
      - destination balance would leave the u64 range
    """

    def __init__(
        self,
        message: str = "transfer failed",
        *,
        source: Optional[bytes] = None,
        destination: Optional[bytes] = None,
        amount: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            code="TRANSFER_FAILED",
            data=_with(data, source=source, destination=destination, amount=amount),
        )


class NotAuthorized(SplitterError):
    """You are not authorized to claim these funds."""

    def __init__(
        self,
        message: str = "not authorized to claim these funds",
        *,
        claimant: Optional[bytes] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="NOT_AUTHORIZED", data=_with(data, claimant=claimant))


class RecordNotFound(SplitterError):
    def __init__(
        self,
        message: str = "payment request not found",
        *,
        address: Optional[bytes] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="NOT_FOUND", data=_with(data, address=address))


class RecordCorrupt(SplitterError):
    def __init__(
        self,
        message: str = "persisted record is malformed",
        *,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="RECORD_CORRUPT", data=data)


class SeedTooLong(SplitterError):
    def __init__(
        self,
        message: str = "description exceeds the maximum seed length",
        *,
        length: Optional[int] = None,
        limit: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message, code="SEED_TOO_LONG", data=_with(data, length=length, limit=limit)
        )


class InvalidArgument(SplitterError):
    def __init__(
        self,
        message: str = "invalid argument",
        *,
        name: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, code="INVALID_ARGUMENT", data=_with(data, name=name))


# -------- helper utilities ---------------------------------------------------


def error_to_receipt_fields(err: SplitterError) -> Dict[str, Any]:
    """
    Map a SplitterError to canonical receipt-like fields.

    Returns:
        {
          "status": "REJECTED" | "ERROR",
          "error":  {code, message, data?}
        }

    REJECTED marks the five domain outcomes callers are expected to handle;
    anything else is reported as ERROR.
    """
    if isinstance(err, (AlreadyExists, RequestCompleted, Overflow, TransferFailed, NotAuthorized)):
        status = "REJECTED"
    else:
        status = "ERROR"
    return {"status": status, "error": err.to_dict()}


__all__ = [
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
    "error_to_receipt_fields",
]
