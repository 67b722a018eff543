from __future__ import annotations

import pytest

from payment_splitter.config import U64_MAX
from payment_splitter.errors import InvalidArgument, Overflow
from payment_splitter.escrow.auth import Signer, signed_by
from payment_splitter.escrow.events import Event, EventSink
from payment_splitter.escrow.math import checked_add_u64, saturating_sub_u64

A = b"\x0a" * 32
B = b"\x0b" * 32


def test_checked_add():
    assert checked_add_u64(600, 500) == 1100
    assert checked_add_u64(U64_MAX - 1, 1) == U64_MAX
    with pytest.raises(Overflow) as ei:
        checked_add_u64(U64_MAX, 1)
    assert ei.value.data == {"lhs": U64_MAX, "rhs": 1}


def test_saturating_sub():
    assert saturating_sub_u64(10, 3) == 7
    assert saturating_sub_u64(3, 10) == 0
    assert saturating_sub_u64(5, 5) == 0


@pytest.mark.parametrize("bad", [-1, U64_MAX + 1, True, "1"])
def test_math_rejects_non_u64(bad):
    with pytest.raises(InvalidArgument):
        checked_add_u64(bad, 0)


def test_signer_authorization():
    assert Signer(A).authorizes(A)
    assert not Signer(A).authorizes(B)
    assert not Signer(A, is_signer=False).authorizes(A)
    assert signed_by(Signer(A), A)
    assert not signed_by(None, A)
    with pytest.raises(InvalidArgument):
        Signer(b"\x00" * 8)


def test_event_sink_orders_and_snapshots():
    sink = EventSink()
    sink.emit("FundsClaimed", {"payout": 1, "address": A})
    sink.emit("PaymentRequestClosed", {"address": A})
    snap = sink.events()
    sink.clear()
    assert [e.name for e in snap] == ["FundsClaimed", "PaymentRequestClosed"]
    assert len(sink) == 0


def test_event_to_dict_hexes_bytes():
    ev = Event("FundsClaimed", {"address": b"\x01\x02", "payout": 3, "ok": True})
    assert ev.to_dict() == {
        "name": "FundsClaimed",
        "args": {"address": "0x0102", "payout": 3, "ok": True},
    }


@pytest.mark.parametrize(
    "name, args",
    [
        ("", {}),
        ("has space", {}),
        ("X" * 65, {}),
        ("Ok", {"bad-key": 1}),
        ("Ok", {"k": -1}),
        ("Ok", {"k": U64_MAX + 1}),
        ("Ok", {"k": 1.5}),
        ("Ok", {"k": b"\x00" * 4097}),
        ("Ok", {"k": "x" * 1025}),
        ("Ok", [("k", 1)]),
    ],
)
def test_event_validation(name, args):
    with pytest.raises(InvalidArgument):
        EventSink().emit(name, args)
