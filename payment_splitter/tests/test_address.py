from __future__ import annotations

import hashlib

import pytest

from payment_splitter.errors import InvalidArgument, SeedTooLong
from payment_splitter.store.address import (NAMESPACE_TAG, derive_address,
                                            description_seed,
                                            find_payment_request_address)

PROGRAM = hashlib.sha3_256(b"program").digest()


def test_address_is_deterministic(make_ident, cfg):
    a = find_payment_request_address(make_ident("creator"), "rent", PROGRAM, cfg=cfg)
    b = find_payment_request_address(make_ident("creator"), "rent", PROGRAM, cfg=cfg)
    assert a == b
    assert len(a) == 32


def test_distinct_creators_or_descriptions_never_share(make_ident, cfg):
    base = find_payment_request_address(make_ident("creator"), "rent", PROGRAM, cfg=cfg)
    assert base != find_payment_request_address(make_ident("other"), "rent", PROGRAM, cfg=cfg)
    assert base != find_payment_request_address(make_ident("creator"), "rent2", PROGRAM, cfg=cfg)


def test_program_id_separates_deployments(make_ident, cfg):
    other = hashlib.sha3_256(b"other program").digest()
    assert find_payment_request_address(make_ident("c"), "x", PROGRAM, cfg=cfg) != (
        find_payment_request_address(make_ident("c"), "x", other, cfg=cfg)
    )


def test_default_program_id_comes_from_config(make_ident, cfg):
    assert find_payment_request_address(make_ident("c"), "x", cfg=cfg) == (
        find_payment_request_address(make_ident("c"), "x", cfg.program_id, cfg=cfg)
    )


def test_seeds_are_length_prefixed():
    assert derive_address((b"ab", b"c"), PROGRAM) != derive_address((b"a", b"bc"), PROGRAM)


def test_namespace_tag_is_first_seed(make_ident, cfg):
    creator = make_ident("c")
    expected = derive_address((NAMESPACE_TAG, creator, b"x"), PROGRAM)
    assert find_payment_request_address(creator, "x", PROGRAM, cfg=cfg) == expected


def test_description_seed_limit():
    assert description_seed("a" * 32, max_len=32) == b"a" * 32
    with pytest.raises(SeedTooLong) as ei:
        description_seed("a" * 33, max_len=32)
    assert ei.value.data == {"length": 33, "limit": 32}


def test_seed_limit_counts_utf8_bytes():
    # 11 three-byte characters = 33 bytes
    with pytest.raises(SeedTooLong):
        description_seed("€" * 11, max_len=32)


def test_identity_must_be_32_bytes(cfg):
    with pytest.raises(InvalidArgument):
        find_payment_request_address(b"\x01" * 20, "x", PROGRAM, cfg=cfg)
    with pytest.raises(InvalidArgument):
        derive_address((b"x",), b"\x00" * 31)
