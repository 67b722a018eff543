"""
payment_splitter.config — program identity, storage-reserve parameters and logging knobs.

This module centralizes configuration for the escrow program. It has NO
third-party deps and is safe to import very early.

Configuration precedence:
  1) Environment variables (SPLITTER_*)
  2) Hardcoded safe defaults below

Key env vars (case-insensitive where boolean):
  - SPLITTER_PROGRAM_ID               (hex)    default: sha3_256(b"payment_splitter")
  - SPLITTER_MAX_SEED_BYTES           (int)    default: 32
  - SPLITTER_LAMPORTS_PER_BYTE_YEAR   (int)    default: 3_480
  - SPLITTER_EXEMPTION_YEARS          (int)    default: 2
  - SPLITTER_ACCOUNT_OVERHEAD         (int)    default: 128
  - SPLITTER_UNITS_PER_TOKEN          (int)    default: 1_000_000_000
  - SPLITTER_STRICT_CLAIMANT          (bool)   default: true
  - SPLITTER_LOG_LEVEL                (str)    default: INFO
  - SPLITTER_LOG_FORMAT               (str)    default: text

The reserve defaults mirror the usual rent-exemption economics: an account must
hold two years of rent for (overhead + data length) bytes to stay allocated.

Usage:
    from payment_splitter.config import load_config
    CFG = load_config()
    if CFG.strict_claimant: ...
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass, replace
from functools import lru_cache
from typing import Any, Dict, Optional

ADDRESS_LEN = 32
U64_MAX = (1 << 64) - 1


# ----------------------------- helpers ---------------------------------------


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    return val in ("1", "true", "t", "yes", "y", "on")


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw, 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _default_program_id() -> bytes:
    return hashlib.sha3_256(b"payment_splitter").digest()


def _env_program_id() -> bytes:
    raw = os.getenv("SPLITTER_PROGRAM_ID")
    if not raw:
        return _default_program_id()
    h = raw.strip()
    h = h[2:] if h.startswith(("0x", "0X")) else h
    try:
        b = bytes.fromhex(h)
    except ValueError:
        return _default_program_id()
    if len(b) != ADDRESS_LEN:
        return _default_program_id()
    return b


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class SplitterConfig:
    # Program identity, mixed into every derived record address
    program_id: bytes

    # Address seeds longer than this are rejected on create
    max_seed_bytes: int

    # Storage-reserve (rent-exemption) parameters
    lamports_per_byte_year: int
    exemption_threshold_years: int
    account_storage_overhead: int

    # Display only: value units per whole token
    units_per_token: int

    # Claim requires claimant == creator even on completed requests
    strict_claimant: bool

    log_level: str
    log_format: str

    def with_overrides(self, **changes: Any) -> "SplitterConfig":
        """Return a copy with selected fields replaced (tests, embedding hosts)."""
        return replace(self, **changes)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "program_id": self.program_id.hex(),
            "max_seed_bytes": self.max_seed_bytes,
            "lamports_per_byte_year": self.lamports_per_byte_year,
            "exemption_threshold_years": self.exemption_threshold_years,
            "account_storage_overhead": self.account_storage_overhead,
            "units_per_token": self.units_per_token,
            "strict_claimant": self.strict_claimant,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }


@lru_cache(maxsize=1)
def load_config() -> SplitterConfig:
    """
    Build and cache a SplitterConfig from environment + safe defaults.
    """
    return SplitterConfig(
        program_id=_env_program_id(),
        max_seed_bytes=_env_int("SPLITTER_MAX_SEED_BYTES", 32, min_v=1, max_v=1024),
        lamports_per_byte_year=_env_int(
            "SPLITTER_LAMPORTS_PER_BYTE_YEAR", 3_480, min_v=0, max_v=1_000_000_000
        ),
        exemption_threshold_years=_env_int("SPLITTER_EXEMPTION_YEARS", 2, min_v=0, max_v=100),
        account_storage_overhead=_env_int("SPLITTER_ACCOUNT_OVERHEAD", 128, min_v=0, max_v=65_536),
        units_per_token=_env_int(
            "SPLITTER_UNITS_PER_TOKEN", 1_000_000_000, min_v=1, max_v=U64_MAX
        ),
        strict_claimant=_env_bool("SPLITTER_STRICT_CLAIMANT", True),
        log_level=_env_str("SPLITTER_LOG_LEVEL", "INFO").upper(),
        log_format=_env_str("SPLITTER_LOG_FORMAT", "text").lower(),
    )


def reload_config() -> SplitterConfig:
    """Drop the cached config and rebuild it from the current environment."""
    load_config.cache_clear()
    return load_config()


def units_to_tokens(amount: int, cfg: Optional[SplitterConfig] = None) -> float:
    """Convert value units to whole tokens for human-facing messages."""
    c = cfg or load_config()
    return amount / float(c.units_per_token)


# Eagerly construct a module-level singleton for convenience, but keep load_config()
# as the canonical accessor (cached).
CFG: SplitterConfig = load_config()

__all__ = [
    "ADDRESS_LEN",
    "U64_MAX",
    "SplitterConfig",
    "load_config",
    "reload_config",
    "units_to_tokens",
    "CFG",
]
