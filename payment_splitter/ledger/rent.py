"""
payment_splitter.ledger.rent — storage-reserve (rent-exemption) minimum.

An allocated record must keep a minimum balance to stay allocated:

    minimum_balance(size) = (account_storage_overhead + size)
                            * lamports_per_byte_year
                            * exemption_threshold_years

Pure integer arithmetic; the result depends only on the record size and the
configured parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..config import SplitterConfig, load_config


@dataclass(frozen=True)
class Rent:
    lamports_per_byte_year: int = 3_480
    exemption_threshold_years: int = 2
    account_storage_overhead: int = 128

    @classmethod
    def from_config(cls, cfg: Optional[SplitterConfig] = None) -> "Rent":
        c = cfg or load_config()
        return cls(
            lamports_per_byte_year=c.lamports_per_byte_year,
            exemption_threshold_years=c.exemption_threshold_years,
            account_storage_overhead=c.account_storage_overhead,
        )

    def minimum_balance(self, data_len: int) -> int:
        if data_len < 0:
            raise ValueError("data_len must be non-negative")
        return (
            (self.account_storage_overhead + data_len)
            * self.lamports_per_byte_year
            * self.exemption_threshold_years
        )

    def is_exempt(self, balance: int, data_len: int) -> bool:
        return balance >= self.minimum_balance(data_len)


__all__ = ["Rent"]
