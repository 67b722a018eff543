"""
payment_splitter.escrow.auth — caller authorization tokens.

A `Signer` pairs an identity with whether the caller actually signed for it.
Hosts build signers from whatever verification they perform; the program only
trusts `is_signer` and compares identities byte-for-byte.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..store.address import check_identity


@dataclass(frozen=True)
class Signer:
    address: bytes
    is_signer: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", check_identity(self.address, "signer"))

    def authorizes(self, identity: bytes) -> bool:
        """True when this signer signed and speaks for `identity`."""
        return self.is_signer and self.address == bytes(identity)


def signed_by(signer: Optional[Signer], identity: bytes) -> bool:
    return signer is not None and signer.authorizes(identity)


__all__ = ["Signer", "signed_by"]
