"""
payment_splitter.store.record — the PaymentRequest record and its persisted layout.

Layout (big-endian, fixed order):

    header          8 bytes   first 8 bytes of sha3_256(b"account:PaymentRequest")
    creator        32 bytes
    target_amount   8 bytes   u64
    current_amount  8 bytes   u64
    description     4 bytes length (u32) + UTF-8 bytes
    is_completed    1 byte    0x00 | 0x01

The header tags the bytes as a PaymentRequest; decoding anything else fails.
`space(description)` is the allocation size and drives the storage reserve.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict

from ..config import ADDRESS_LEN, U64_MAX
from ..errors import InvalidArgument, RecordCorrupt
from .kv import be_u32, be_u64

HEADER: bytes = hashlib.sha3_256(b"account:PaymentRequest").digest()[:8]

HEADER_LEN = 8
_FIXED_LEN = HEADER_LEN + ADDRESS_LEN + 8 + 8 + 4 + 1


def _require_u64(name: str, v: Any) -> int:
    if not isinstance(v, int) or isinstance(v, bool):
        raise InvalidArgument(f"{name} must be int, got {type(v).__name__}", name=name)
    if v < 0 or v > U64_MAX:
        raise InvalidArgument(f"{name} must fit in u64, got {v}", name=name)
    return v


def space(description: str) -> int:
    """Bytes needed to persist a record with this description."""
    return _FIXED_LEN + len(description.encode("utf-8"))


@dataclass
class PaymentRequest:
    """
    One funding goal.

    Invariants:
    - target_amount and current_amount are u64
    - creator is exactly 32 bytes
    - is_completed never goes back to False once set
    """
    creator: bytes
    target_amount: int
    current_amount: int
    description: str
    is_completed: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.creator, (bytes, bytearray, memoryview)):
            raise InvalidArgument("creator must be bytes-like", name="creator")
        self.creator = bytes(self.creator)
        if len(self.creator) != ADDRESS_LEN:
            raise InvalidArgument(f"creator must be exactly {ADDRESS_LEN} bytes", name="creator")
        self.target_amount = _require_u64("target_amount", self.target_amount)
        self.current_amount = _require_u64("current_amount", self.current_amount)
        if not isinstance(self.description, str):
            raise InvalidArgument("description must be str", name="description")
        self.is_completed = bool(self.is_completed)

    @classmethod
    def new(cls, creator: bytes, target_amount: int, description: str) -> "PaymentRequest":
        return cls(
            creator=creator,
            target_amount=target_amount,
            current_amount=0,
            description=description,
            is_completed=False,
        )

    @property
    def size(self) -> int:
        return space(self.description)

    # ----------------------- (de)serialization ----------------------------- #

    def encode(self) -> bytes:
        desc = self.description.encode("utf-8")
        return b"".join(
            (
                HEADER,
                self.creator,
                be_u64(self.target_amount),
                be_u64(self.current_amount),
                be_u32(len(desc)),
                desc,
                b"\x01" if self.is_completed else b"\x00",
            )
        )

    @classmethod
    def decode(cls, raw: bytes) -> "PaymentRequest":
        b = bytes(raw)
        if len(b) < _FIXED_LEN:
            raise RecordCorrupt("record shorter than fixed layout", data={"len": len(b)})
        if b[:HEADER_LEN] != HEADER:
            raise RecordCorrupt("record header mismatch")
        off = HEADER_LEN
        creator = b[off:off + ADDRESS_LEN]
        off += ADDRESS_LEN
        target = int.from_bytes(b[off:off + 8], "big")
        off += 8
        current = int.from_bytes(b[off:off + 8], "big")
        off += 8
        dlen = int.from_bytes(b[off:off + 4], "big")
        off += 4
        if len(b) != _FIXED_LEN + dlen:
            raise RecordCorrupt(
                "record length does not match description length",
                data={"len": len(b), "desc_len": dlen},
            )
        try:
            desc = b[off:off + dlen].decode("utf-8")
        except UnicodeDecodeError as e:
            raise RecordCorrupt("description is not valid UTF-8") from e
        off += dlen
        flag = b[off]
        if flag not in (0, 1):
            raise RecordCorrupt("is_completed flag must be 0 or 1", data={"flag": flag})
        return cls(
            creator=creator,
            target_amount=target,
            current_amount=current,
            description=desc,
            is_completed=flag == 1,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "creator": self.creator.hex(),
            "target_amount": self.target_amount,
            "current_amount": self.current_amount,
            "description": self.description,
            "is_completed": self.is_completed,
        }


def progress_percent(record: PaymentRequest) -> float:
    """
    Funding progress as a percentage, capped at 100. A zero target counts as
    fully funded.
    """
    if record.target_amount == 0:
        return 100.0
    return min(100.0, record.current_amount * 100.0 / record.target_amount)


__all__ = [
    "HEADER",
    "PaymentRequest",
    "space",
    "progress_percent",
]
