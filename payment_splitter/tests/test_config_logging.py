from __future__ import annotations

import hashlib
import io
import json
import logging
import os

import pytest

from payment_splitter import config as cfgmod
from payment_splitter import logging as slog
from payment_splitter.errors import (AlreadyExists, InvalidArgument, NotAuthorized,
                                     RecordNotFound, error_to_receipt_fields)


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@pytest.fixture
def fresh_config(monkeypatch):
    for k in list(os.environ):
        if k.startswith("SPLITTER_"):
            monkeypatch.delenv(k, raising=False)
    yield cfgmod.reload_config
    cfgmod.load_config.cache_clear()


def test_defaults(fresh_config):
    c = fresh_config()
    assert c.program_id == hashlib.sha3_256(b"payment_splitter").digest()
    assert c.max_seed_bytes == 32
    assert (c.lamports_per_byte_year, c.exemption_threshold_years, c.account_storage_overhead) == (
        3_480,
        2,
        128,
    )
    assert c.units_per_token == 1_000_000_000
    assert c.strict_claimant is True
    assert c.log_level == "INFO"
    assert c.log_format == "text"


def test_env_overrides_and_clamping(fresh_config, monkeypatch):
    monkeypatch.setenv("SPLITTER_MAX_SEED_BYTES", "0")
    monkeypatch.setenv("SPLITTER_EXEMPTION_YEARS", "1000")
    monkeypatch.setenv("SPLITTER_STRICT_CLAIMANT", "no")
    monkeypatch.setenv("SPLITTER_LOG_LEVEL", "debug")
    monkeypatch.setenv("SPLITTER_PROGRAM_ID", "0x" + "11" * 32)
    c = fresh_config()
    assert c.max_seed_bytes == 1
    assert c.exemption_threshold_years == 100
    assert c.strict_claimant is False
    assert c.log_level == "DEBUG"
    assert c.program_id == b"\x11" * 32


def test_bad_env_values_fall_back(fresh_config, monkeypatch):
    monkeypatch.setenv("SPLITTER_MAX_SEED_BYTES", "lots")
    monkeypatch.setenv("SPLITTER_PROGRAM_ID", "abcd")
    c = fresh_config()
    assert c.max_seed_bytes == 32
    assert c.program_id == hashlib.sha3_256(b"payment_splitter").digest()


def test_load_config_is_cached(fresh_config):
    assert cfgmod.load_config() is cfgmod.load_config()


def test_with_overrides_and_as_dict(fresh_config):
    c = fresh_config().with_overrides(units_per_token=100)
    d = c.as_dict()
    assert d["units_per_token"] == 100
    assert d["program_id"] == c.program_id.hex()
    assert cfgmod.units_to_tokens(250, c) == 2.5


# ---------------------------------------------------------------------------
# errors
# ---------------------------------------------------------------------------


def test_error_payloads_are_json_safe():
    err = AlreadyExists(address=b"\x01" * 32)
    assert err.to_dict() == {
        "code": "ALREADY_EXISTS",
        "message": "payment request already exists",
        "data": {"address": "01" * 32},
    }
    json.dumps(err.to_dict())


def test_error_to_receipt_fields_status():
    assert error_to_receipt_fields(NotAuthorized())["status"] == "REJECTED"
    assert error_to_receipt_fields(RecordNotFound())["status"] == "ERROR"
    assert error_to_receipt_fields(InvalidArgument(name="amount"))["error"]["data"] == {"name": "amount"}


# ---------------------------------------------------------------------------
# logging
# ---------------------------------------------------------------------------


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for h in list(root.handlers):
        root.removeHandler(h)
    for h in handlers:
        root.addHandler(h)
    root.setLevel(level)
    slog.clear_context()


def test_json_formatter_includes_fields_and_context(restore_root_logger):
    buf = io.StringIO()
    slog.configure(json=True, level="INFO", stream=buf)
    log = slog.get_logger("payment_splitter.test")

    with slog.trace_scope("t-1"):
        log.info("contribution received", amount=600, contributor=b"\xab" * 2)

    line = json.loads(buf.getvalue().strip().splitlines()[-1])
    assert line["msg"] == "contribution received"
    assert line["level"] == "INFO"
    assert line["amount"] == 600
    assert line["contributor"] == "abab"
    assert line["trace_id"] == "t-1"
    assert "trace_id" not in slog.context()


def test_text_formatter_one_liner(restore_root_logger):
    buf = io.StringIO()
    slog.configure(json=False, level="DEBUG", stream=buf)
    slog.bind(program="abc")
    slog.get_logger("payment_splitter.test").warning("claim rejected", code="NOT_AUTHORIZED")

    out = buf.getvalue()
    assert "WARNING" in out
    assert "program=abc" in out
    assert "code=NOT_AUTHORIZED" in out
    assert out.rstrip().endswith("claim rejected")


def test_with_fields_injects_constants(restore_root_logger):
    buf = io.StringIO()
    slog.configure(json=True, level="INFO", stream=buf)
    log = slog.with_fields(logging.getLogger("payment_splitter.test"), op="claim")
    log.info("done")
    assert json.loads(buf.getvalue().strip())["op"] == "claim"


def test_configure_from_config_respects_level(restore_root_logger, cfg):
    slog.configure_from_config(cfg.with_overrides(log_level="WARNING", log_format="json"))
    assert logging.getLogger().level == logging.WARNING


def test_operations_log_rejections_at_warning(program, creator, bob, caplog):
    addr = program.create_payment_request(creator, 100, "x").address
    caplog.set_level(logging.INFO, logger="payment_splitter")

    with pytest.raises(NotAuthorized):
        program.claim_funds(addr, bob)

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert warnings[0].code == "NOT_AUTHORIZED"
    assert warnings[0].op == "claim"


def test_operations_log_contributions_in_tokens(program, creator, alice, caplog):
    caplog.set_level(logging.INFO, logger="payment_splitter")
    addr = program.create_payment_request(creator, 10**9, "x").address
    program.contribute_payment(addr, alice, 5 * 10**8)

    rec = next(r for r in caplog.records if r.getMessage() == "contribution received")
    assert rec.amount == 5 * 10**8
    assert rec.amount_tokens == 0.5


def test_version_facade():
    import payment_splitter

    assert payment_splitter.version() == payment_splitter.__version__
    assert payment_splitter.__version__


@pytest.mark.parametrize("op", ["create", "contribute", "claim"])
def test_bad_identities_are_logged_as_rejections(program, alice, caplog, op):
    caplog.set_level(logging.INFO, logger="payment_splitter")
    calls = {
        "create": lambda: program.create_payment_request(b"short", 1, "x"),
        "contribute": lambda: program.contribute_payment(b"short", alice, 1),
        "claim": lambda: program.claim_funds(b"short", alice),
    }
    with pytest.raises(InvalidArgument):
        calls[op]()

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert [(w.op, w.code) for w in warnings] == [(op, "INVALID_ARGUMENT")]
