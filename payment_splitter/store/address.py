"""
payment_splitter.store.address — deterministic record addresses.

A payment request lives at an address derived from its seeds; there is no
lookup table. The derivation is:

    sha3_256( b"\\x19splitter:" || b"record-address" || b"\\x00"
              || len|b"payment_request" || len|creator || len|description
              || program_id )

Each seed is length-prefixed (uvarint) so adjacent seeds can never be confused
(`("ab", "c")` and `("a", "bc")` hash differently). The program id is mixed in
last so two deployments never share addresses.
"""

from __future__ import annotations

import hashlib
from typing import Iterable, Optional, Union

from ..config import ADDRESS_LEN, SplitterConfig, load_config
from ..errors import InvalidArgument, SeedTooLong
from .kv import uvarint

NAMESPACE_TAG = b"payment_request"

_DS_PREFIX = b"\x19splitter:"
_DS_DOMAIN = b"record-address"


def _ensure_bytes(buf: object, name: str) -> bytes:
    if isinstance(buf, (bytes, bytearray, memoryview)):
        return bytes(buf)
    raise InvalidArgument(f"{name} must be bytes-like (got {type(buf).__name__})", name=name)


def check_identity(addr: object, name: str = "address") -> bytes:
    """Return `addr` as bytes, requiring exactly ADDRESS_LEN bytes."""
    b = _ensure_bytes(addr, name)
    if len(b) != ADDRESS_LEN:
        raise InvalidArgument(f"{name} must be exactly {ADDRESS_LEN} bytes", name=name)
    return b


def description_seed(description: Union[str, bytes], *, max_len: Optional[int] = None) -> bytes:
    """
    Encode a description to its seed bytes (UTF-8) and enforce the seed limit.
    """
    if isinstance(description, str):
        seed = description.encode("utf-8")
    else:
        seed = _ensure_bytes(description, "description")
    if max_len is not None and len(seed) > max_len:
        raise SeedTooLong(length=len(seed), limit=max_len)
    return seed


def derive_address(seeds: Iterable[bytes], program_id: bytes) -> bytes:
    """Hash length-prefixed seeds plus the program id into a 32-byte address."""
    h = hashlib.sha3_256()
    h.update(_DS_PREFIX)
    h.update(_DS_DOMAIN)
    h.update(b"\x00")
    for i, s in enumerate(seeds):
        sb = _ensure_bytes(s, f"seed[{i}]")
        h.update(uvarint(len(sb)))
        h.update(sb)
    h.update(check_identity(program_id, "program_id"))
    return h.digest()


def find_payment_request_address(
    creator: bytes,
    description: Union[str, bytes],
    program_id: Optional[bytes] = None,
    *,
    cfg: Optional[SplitterConfig] = None,
) -> bytes:
    """
    Client-side helper: the address a request by `creator` named `description`
    lives at (or would live at once created).
    """
    c = cfg or load_config()
    seed = description_seed(description, max_len=c.max_seed_bytes)
    return derive_address(
        (NAMESPACE_TAG, check_identity(creator, "creator"), seed),
        program_id if program_id is not None else c.program_id,
    )


__all__ = [
    "NAMESPACE_TAG",
    "check_identity",
    "description_seed",
    "derive_address",
    "find_payment_request_address",
]
