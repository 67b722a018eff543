"""
payment_splitter.escrow.math — checked and saturating u64 helpers.

Two styles of safety:
  1) **Checked**: raise Overflow when the result leaves [0, U64_MAX].
  2) **Saturating**: clamp (subtraction floors at zero).

Integer-only; inputs are validated to the u64 domain.
"""

from __future__ import annotations

from ..config import U64_MAX
from ..errors import InvalidArgument, Overflow


def require_u64(*values: int) -> None:
    for v in values:
        if not isinstance(v, int) or isinstance(v, bool) or v < 0 or v > U64_MAX:
            raise InvalidArgument(f"value out of u64 range: {v!r}")


def checked_add_u64(x: int, y: int) -> int:
    """x + y, or Overflow when the sum exceeds U64_MAX."""
    require_u64(x, y)
    z = x + y
    if z > U64_MAX:
        raise Overflow(lhs=x, rhs=y)
    return z


def saturating_sub_u64(x: int, y: int) -> int:
    """max(x - y, 0)."""
    require_u64(x, y)
    return x - y if x > y else 0


__all__ = ["require_u64", "checked_add_u64", "saturating_sub_u64"]
