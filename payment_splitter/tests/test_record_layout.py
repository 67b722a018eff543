from __future__ import annotations

import pytest

from payment_splitter.config import U64_MAX
from payment_splitter.errors import InvalidArgument, RecordCorrupt
from payment_splitter.store.record import HEADER, PaymentRequest, progress_percent, space

CREATOR = bytes(range(32))


def test_space_matches_layout():
    # 8 header + 32 creator + 8 target + 8 current + 4 len + desc + 1 flag
    assert space("") == 61
    assert space("rent") == 65
    # UTF-8 length, not character count
    assert space("é") == 63


def test_encode_layout_is_big_endian_and_fixed_order():
    rec = PaymentRequest(CREATOR, 1000, 600, "rent", False)
    raw = rec.encode()
    assert len(raw) == rec.size == 65
    assert raw[:8] == HEADER
    assert raw[8:40] == CREATOR
    assert raw[40:48] == (1000).to_bytes(8, "big")
    assert raw[48:56] == (600).to_bytes(8, "big")
    assert raw[56:60] == (4).to_bytes(4, "big")
    assert raw[60:64] == b"rent"
    assert raw[64:] == b"\x00"


def test_decode_restores_every_field():
    rec = PaymentRequest(CREATOR, U64_MAX, 7, "dinner split", True)
    back = PaymentRequest.decode(rec.encode())
    assert back == rec
    assert back.is_completed is True


def test_new_starts_open_and_empty():
    rec = PaymentRequest.new(CREATOR, 100, "x")
    assert rec.current_amount == 0
    assert rec.is_completed is False


@pytest.mark.parametrize(
    "mutate",
    [
        lambda b: b"\x00" * 8 + b[8:],          # wrong header
        lambda b: b[:-1],                         # truncated
        lambda b: b + b"\x00",                    # trailing garbage
        lambda b: b[:-1] + b"\x02",               # bad completion flag
        lambda b: b[:20],                         # shorter than fixed part
    ],
)
def test_decode_rejects_corrupt_bytes(mutate):
    raw = PaymentRequest(CREATOR, 10, 0, "abc").encode()
    with pytest.raises(RecordCorrupt):
        PaymentRequest.decode(mutate(raw))


def test_decode_rejects_invalid_utf8():
    raw = bytearray(PaymentRequest(CREATOR, 10, 0, "ab").encode())
    raw[60:62] = b"\xff\xfe"
    with pytest.raises(RecordCorrupt):
        PaymentRequest.decode(bytes(raw))


@pytest.mark.parametrize(
    "kwargs",
    [
        dict(creator=b"short", target_amount=1, current_amount=0, description="x"),
        dict(creator=CREATOR, target_amount=-1, current_amount=0, description="x"),
        dict(creator=CREATOR, target_amount=U64_MAX + 1, current_amount=0, description="x"),
        dict(creator=CREATOR, target_amount=True, current_amount=0, description="x"),
        dict(creator=CREATOR, target_amount=1, current_amount=0, description=b"x"),
    ],
)
def test_constructor_validates_fields(kwargs):
    with pytest.raises(InvalidArgument):
        PaymentRequest(**kwargs)


def test_progress_percent():
    assert progress_percent(PaymentRequest(CREATOR, 1000, 600, "rent")) == 60.0
    assert progress_percent(PaymentRequest(CREATOR, 1000, 1100, "rent", True)) == 100.0
    assert progress_percent(PaymentRequest(CREATOR, 0, 0, "zero")) == 100.0


def test_to_dict_is_json_safe():
    d = PaymentRequest(CREATOR, 5, 1, "x").to_dict()
    assert d == {
        "creator": CREATOR.hex(),
        "target_amount": 5,
        "current_amount": 1,
        "description": "x",
        "is_completed": False,
    }
