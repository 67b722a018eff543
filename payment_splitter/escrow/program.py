"""
payment_splitter.escrow.program — the escrow state machine.

`PaymentSplitter` drives three operations over a `RecordStore` and an injected
`Ledger`:

- create_payment_request(creator, target_amount, description) -> PaymentRequestHandle
    Allocates the record at its deterministic address; the creator pays the
    storage reserve for the record size.
- contribute_payment(address, contributor, amount, creator=None) -> PaymentRequest
    Transfers `amount` into the record balance, bumps the counter with checked
    u64 arithmetic and flips `is_completed` the first time the goal is met.
    When that contribution carries the creator's signature the payout is
    released to the creator immediately (auto-settlement).
- claim_funds(address, claimant) -> int
    Releases `balance - reserve` (saturating) from the record to the claimant.
    `claim_with_record` also returns the record read under the lock.

Atomicity
---------
Every operation runs under a per-address re-entrant lock, inside a ledger
checkpoint and a single KV batch. Any SplitterError raised in the body rolls
back both the staged record write and every balance movement, so callers see
either the complete effect or none of it.

Events are collected per call and only published to the caller's sink after the
operation succeeded.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Dict, Iterator, List, Optional, Tuple

from ..config import SplitterConfig, load_config, units_to_tokens
from ..errors import NotAuthorized, RequestCompleted, SplitterError, TransferFailed
from ..ledger.api import Ledger
from ..ledger.memory import InMemoryLedger
from ..logging import get_logger
from ..store.address import (NAMESPACE_TAG, check_identity, derive_address,
                             description_seed)
from ..store.record import PaymentRequest, progress_percent
from ..store.records import RecordStore
from . import events as ev
from .auth import Signer, signed_by
from .events import EventSink
from .math import checked_add_u64, require_u64, saturating_sub_u64

log = get_logger("payment_splitter.escrow")


@dataclass(frozen=True)
class PaymentRequestHandle:
    """A record together with the address it lives at."""
    address: bytes
    record: PaymentRequest


class PaymentSplitter:
    def __init__(
        self,
        ledger: Optional[Ledger] = None,
        store: Optional[RecordStore] = None,
        cfg: Optional[SplitterConfig] = None,
    ) -> None:
        self.cfg = cfg or load_config()
        self.ledger: Ledger = ledger if ledger is not None else InMemoryLedger.from_config(self.cfg)
        self.store = store if store is not None else RecordStore()
        # address -> [lock, holders]; entries live only while an operation uses them
        self._locks: Dict[bytes, list] = {}
        self._locks_guard = threading.Lock()

    # ---- helpers ----

    @contextmanager
    def _locked(self, address: bytes) -> Iterator[None]:
        with self._locks_guard:
            entry = self._locks.get(address)
            if entry is None:
                entry = self._locks[address] = [threading.RLock(), 0]
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[address]

    @contextmanager
    def _atomic(self, address: bytes) -> Iterator:
        """Lock the record, checkpoint the ledger and open one KV batch."""
        with self._locked(address):
            with self.ledger.checkpoint():
                with self.store.transaction() as batch:
                    yield batch

    @contextmanager
    def _rejections(self, op: str, **fields) -> Iterator[None]:
        try:
            yield
        except SplitterError as e:
            log.warning(f"{op} rejected: {e.message}", op=op, code=e.code, **fields)
            raise

    def _publish(self, local: EventSink, sink: Optional[EventSink]) -> None:
        if sink is not None:
            sink.extend(local.events())

    def address_for(self, creator: bytes, description: str) -> bytes:
        seed = description_seed(description, max_len=self.cfg.max_seed_bytes)
        return derive_address(
            (NAMESPACE_TAG, check_identity(creator, "creator"), seed), self.cfg.program_id
        )

    def payout_of(self, address: bytes, record: PaymentRequest) -> int:
        """What a claim would release right now: balance above the reserve."""
        balance = self.ledger.balance_of(address)
        reserve = self.ledger.reserved_minimum(record.size)
        return saturating_sub_u64(balance, reserve)

    # ---- operations ----

    def create_payment_request(
        self,
        creator: bytes,
        target_amount: int,
        description: str,
        *,
        sink: Optional[EventSink] = None,
    ) -> PaymentRequestHandle:
        with self._rejections("create", creator=creator, description=description):
            creator = check_identity(creator, "creator")
            record = PaymentRequest.new(creator, target_amount, description)
            address = self.address_for(creator, description)
            reserve = self.ledger.reserved_minimum(record.size)
            local = EventSink()
            with self._atomic(address) as batch:
                self.store.allocate(address, record, batch)
                self.ledger.transfer(creator, address, reserve)
                local.emit(ev.PAYMENT_REQUEST_CREATED, {
                    "address": address,
                    "creator": creator,
                    "target_amount": record.target_amount,
                    "description": record.description,
                    "reserve": reserve,
                })

        log.info(
            "payment request created",
            address=address,
            creator=creator,
            description=description,
            target_amount=record.target_amount,
            target_tokens=units_to_tokens(record.target_amount, self.cfg),
            reserve=reserve,
        )
        self._publish(local, sink)
        return PaymentRequestHandle(address, record)

    def contribute_payment(
        self,
        address: bytes,
        contributor: bytes,
        amount: int,
        creator: Optional[Signer] = None,
        *,
        sink: Optional[EventSink] = None,
    ) -> PaymentRequest:
        with self._rejections("contribute", address=address, contributor=contributor, amount=amount):
            address = check_identity(address, "address")
            contributor = check_identity(contributor, "contributor")
            require_u64(amount)
            if contributor == address:
                raise TransferFailed(
                    "record cannot fund itself", source=contributor, destination=address, amount=amount
                )
            local = EventSink()
            settled = None
            with self._atomic(address) as batch:
                record = self.store.load(address)
                if record.is_completed:
                    raise RequestCompleted(address=address)

                self.ledger.transfer(contributor, address, amount)
                current = checked_add_u64(record.current_amount, amount)
                record = replace(record, current_amount=current)
                local.emit(ev.CONTRIBUTION_RECEIVED, {
                    "address": address,
                    "contributor": contributor,
                    "amount": amount,
                    "current_amount": current,
                })

                if current >= record.target_amount:
                    record = replace(record, is_completed=True)
                    local.emit(ev.PAYMENT_REQUEST_COMPLETED, {
                        "address": address,
                        "current_amount": current,
                        "target_amount": record.target_amount,
                    })
                    if signed_by(creator, record.creator):
                        settled = self.payout_of(address, record)
                        self.ledger.transfer(address, record.creator, settled)
                        local.emit(ev.FUNDS_AUTO_SETTLED, {
                            "address": address,
                            "creator": record.creator,
                            "payout": settled,
                        })

                self.store.save(address, record, batch)

        log.info(
            "contribution received",
            address=address,
            contributor=contributor,
            amount=amount,
            amount_tokens=units_to_tokens(amount, self.cfg),
            current_amount=record.current_amount,
            target_amount=record.target_amount,
        )
        if record.is_completed:
            log.info("payment request completed", address=address, current_amount=record.current_amount)
        if settled is not None:
            log.info(
                "funds auto-settled to creator",
                address=address,
                payout=settled,
                payout_tokens=units_to_tokens(settled, self.cfg),
            )
        self._publish(local, sink)
        return record

    def claim_funds(
        self,
        address: bytes,
        claimant: bytes,
        *,
        sink: Optional[EventSink] = None,
    ) -> int:
        return self.claim_with_record(address, claimant, sink=sink)[0]

    def claim_with_record(
        self,
        address: bytes,
        claimant: bytes,
        *,
        sink: Optional[EventSink] = None,
    ) -> Tuple[int, PaymentRequest]:
        """`claim_funds`, also returning the record as it was read under the lock."""
        with self._rejections("claim", address=address, claimant=claimant):
            address = check_identity(address, "address")
            claimant = check_identity(claimant, "claimant")
            local = EventSink()
            with self._atomic(address):
                record = self.store.load(address)
                is_creator = claimant == record.creator
                if self.cfg.strict_claimant:
                    authorized = is_creator
                else:
                    authorized = record.is_completed or is_creator
                if not authorized:
                    raise NotAuthorized(claimant=claimant)

                payout = self.payout_of(address, record)
                self.ledger.transfer(address, claimant, payout)
                local.emit(ev.FUNDS_CLAIMED, {
                    "address": address,
                    "claimant": claimant,
                    "payout": payout,
                })
                if record.is_completed:
                    local.emit(ev.PAYMENT_REQUEST_CLOSED, {"address": address, "claimant": claimant})

        log.info(
            "funds claimed",
            address=address,
            claimant=claimant,
            payout=payout,
            payout_tokens=units_to_tokens(payout, self.cfg),
        )
        if record.is_completed:
            log.info("payment request closed", address=address)
        self._publish(local, sink)
        return payout, record

    # ---- views ----

    def get_payment_request(self, address: bytes) -> Optional[PaymentRequest]:
        return self.store.get(check_identity(address, "address"))

    def list_payment_requests(self, creator: Optional[bytes] = None) -> List[PaymentRequestHandle]:
        want = check_identity(creator, "creator") if creator is not None else None
        return [
            PaymentRequestHandle(addr, rec)
            for addr, rec in self.store.iter_records()
            if want is None or rec.creator == want
        ]

    def progress(self, address: bytes) -> float:
        return progress_percent(self.store.load(check_identity(address, "address")))


__all__ = ["PaymentSplitter", "PaymentRequestHandle"]
