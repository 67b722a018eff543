"""
payment_splitter.logging — structured logging for the escrow program.

Log calls take keyword fields, and a context-local set of fields (trace_id,
program, request, signer) rides along with every record emitted in the current
thread/task:

    from payment_splitter import logging as slog

    slog.configure(json=False, level="INFO")  # once, at process start
    log = slog.get_logger(__name__)

    with slog.trace_scope():
        slog.bind(request=address)
        log.info("contribution received", amount=600)

Bytes fields are rendered as hex. Output is one line per record, either JSON
(services, log shippers) or `ts | LEVEL | logger | k=v ... | message` text.
"""

from __future__ import annotations

import datetime as _dt
import json as _json
import logging
import os
import sys
import traceback
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator, Optional, TextIO, Tuple, Union

_LOG_CONTEXT: ContextVar[Dict[str, Any]] = ContextVar("_LOG_CONTEXT", default={})

# Context keys rendered up front by the text formatter, in this order.
DEFAULT_CONTEXT_KEYS = ("trace_id", "program", "request", "signer")

# Attributes every LogRecord carries; anything else on a record is a field.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


# ---- context ----


def context() -> Dict[str, Any]:
    """Snapshot of the fields bound in the current context."""
    return dict(_LOG_CONTEXT.get())


def bind(**fields: Any) -> None:
    merged = context()
    for k, v in fields.items():
        merged[k] = _plain(v)
    _LOG_CONTEXT.set(merged)


def clear_context() -> None:
    _LOG_CONTEXT.set({})


@contextmanager
def trace_scope(trace_id: Optional[str] = None) -> Iterator[str]:
    """Bind a trace id for the duration of the block; the previous context is restored on exit."""
    token = _LOG_CONTEXT.set(context())
    tid = trace_id or uuid.uuid4().hex[:12]
    try:
        bind(trace_id=tid)
        yield tid
    finally:
        _LOG_CONTEXT.reset(token)


# ---- formatting ----


def _plain(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray, memoryview)):
        return bytes(v).hex()
    if v is None or isinstance(v, (bool, int, float, str, list, dict)):
        return v
    to_dict = getattr(v, "to_dict", None)
    if callable(to_dict):
        return to_dict()
    return str(v)


def _fields(record: logging.LogRecord) -> Dict[str, Any]:
    return {
        k: _plain(v)
        for k, v in vars(record).items()
        if k not in _RECORD_ATTRS and not k.startswith("_")
    }


def _now() -> str:
    return _dt.datetime.now(_dt.timezone.utc).isoformat(timespec="milliseconds")


def _exc_text(record: logging.LogRecord) -> Optional[str]:
    if not record.exc_info:
        return None
    return "".join(traceback.format_exception(*record.exc_info)).rstrip()


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        out: Dict[str, Any] = {
            "ts": _now(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "pid": os.getpid(),
        }
        out.update(context())
        for k, v in _fields(record).items():
            out.setdefault(k, v)
        err = _exc_text(record)
        if err:
            out["err"] = err
        return _json.dumps(out, default=str, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    """
    One line per record:
      2025-01-05T12:34:56.789+00:00 | INFO    | payment_splitter.escrow | trace_id=ab12 | amount=600 | contribution received
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = context()
        parts = [_now(), f"{record.levelname:<7}", record.name]
        bound = " ".join(f"{k}={ctx[k]}" for k in DEFAULT_CONTEXT_KEYS if ctx.get(k) is not None)
        if bound:
            parts.append(bound)
        extra = " ".join(f"{k}={v}" for k, v in _fields(record).items() if k not in ctx)
        if extra:
            parts.append(extra)
        parts.append(record.getMessage())
        line = " | ".join(parts)
        err = _exc_text(record)
        return f"{line}\n{err}" if err else line


# ---- setup ----


def _level(level: Union[str, int]) -> int:
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def configure(
    *,
    json: Optional[bool] = None,
    level: Union[str, int] = "INFO",
    stream: Optional[TextIO] = None,
    keep_handlers: bool = False,
) -> None:
    """
    Install one console handler on the root logger.

    json=None picks JSON when SPLITTER_LOG_FORMAT=json, or when the stream is not
    a terminal and the variable is unset. Existing root handlers are removed
    unless keep_handlers is set.
    """
    out = stream if stream is not None else sys.stderr
    if json is None:
        fmt = os.environ.get("SPLITTER_LOG_FORMAT", "").strip().lower()
        json = fmt == "json" if fmt in ("json", "text") else not _isatty(out)

    root = logging.getLogger()
    root.setLevel(_level(level))
    if not keep_handlers:
        for h in list(root.handlers):
            root.removeHandler(h)

    handler = logging.StreamHandler(out)
    handler.setLevel(_level(level))
    handler.setFormatter(JSONFormatter() if json else TextFormatter())
    root.addHandler(handler)


def configure_from_config(cfg: Any) -> None:
    """Configure from a SplitterConfig and bind the program id (shortened) into the context."""
    bind(program=cfg.program_id.hex()[:16])
    configure(json=cfg.log_format == "json", level=cfg.log_level)


def _isatty(stream: Any) -> bool:
    try:
        return bool(stream.isatty())
    except (AttributeError, ValueError):
        return False


# ---- adapters ----


class ContextAdapter(logging.LoggerAdapter):
    """
    Accepts bare keyword fields on each call (`log.info("msg", amount=5)`) and
    merges them with the adapter's constant fields into `extra`.
    """

    _PASSTHROUGH = ("exc_info", "stack_info", "stacklevel", "extra")

    def process(self, msg: Any, kwargs: Dict[str, Any]) -> Tuple[Any, Dict[str, Any]]:
        extra = dict(self.extra or {})
        extra.update(kwargs.pop("extra", None) or {})
        for k in [k for k in kwargs if k not in self._PASSTHROUGH]:
            extra[k] = _plain(kwargs.pop(k))
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: Optional[str] = None) -> ContextAdapter:
    return ContextAdapter(logging.getLogger(name or "payment_splitter"), {})


def with_fields(logger: logging.Logger, **fields: Any) -> ContextAdapter:
    """Adapter that stamps the given constant fields onto every record."""
    return ContextAdapter(logger, {k: _plain(v) for k, v in fields.items()})


__all__ = [
    "DEFAULT_CONTEXT_KEYS",
    "context",
    "bind",
    "clear_context",
    "trace_scope",
    "JSONFormatter",
    "TextFormatter",
    "configure",
    "configure_from_config",
    "get_logger",
    "with_fields",
    "ContextAdapter",
]
