from __future__ import annotations

import hashlib

import pytest

from payment_splitter.config import load_config
from payment_splitter.escrow.program import PaymentSplitter
from payment_splitter.ledger.memory import InMemoryLedger
from payment_splitter.store.records import RecordStore

FUNDS = 10**12


def ident(tag: str) -> bytes:
    """Deterministic 32-byte identity for a human-readable tag."""
    return hashlib.sha3_256(b"test-identity:" + tag.encode()).digest()


@pytest.fixture
def cfg():
    return load_config().with_overrides(
        max_seed_bytes=32,
        lamports_per_byte_year=3_480,
        exemption_threshold_years=2,
        account_storage_overhead=128,
        strict_claimant=True,
    )


@pytest.fixture
def ledger(cfg):
    return InMemoryLedger.from_config(cfg)


@pytest.fixture
def store():
    return RecordStore()


@pytest.fixture
def program(ledger, store, cfg):
    return PaymentSplitter(ledger=ledger, store=store, cfg=cfg)


@pytest.fixture
def creator(ledger):
    who = ident("creator")
    ledger.credit(who, FUNDS)
    return who


@pytest.fixture
def alice(ledger):
    who = ident("alice")
    ledger.credit(who, FUNDS)
    return who


@pytest.fixture
def bob(ledger):
    who = ident("bob")
    ledger.credit(who, FUNDS)
    return who


@pytest.fixture
def make_ident():
    return ident


@pytest.fixture
def funds():
    return FUNDS
