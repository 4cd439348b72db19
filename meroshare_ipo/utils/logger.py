# meroshare_ipo/utils/logger.py
from __future__ import annotations

"""Logging setup
---------------
Rich console output for people watching a run, JSON lines for files (the
optional global log and each run directory's run.log). Bound context such as
run_id rides along on every record. Configured secrets (password, PIN, CRN,
bot token) are masked in every message the handlers write.
"""

import json
import logging
import os
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Iterator, Optional

from rich.console import Console
from rich.logging import RichHandler

from meroshare_ipo.utils.config import LogLevel, get_settings


__all__ = [
    "get_logger",
    "set_log_level",
    "bind",
    "unbind",
    "bound",
    "log_with_context",
    "attach_file_logger",
    "detach_file_logger",
    "JsonFormatter",
]

ROOT_NAME = "meroshare_ipo"
_NOISY = ("asyncio", "urllib3", "requests", "playwright")
_MASK = "***"

_lock = threading.Lock()
_ready = False
_context: Dict[str, Any] = {}
_mask: Optional[logging.Filter] = None


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, msg, then any bound context."""

    def format(self, record: logging.LogRecord) -> str:
        doc: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        ctx = getattr(record, "extra", None)
        if isinstance(ctx, dict):
            doc.update({k: v for k, v in ctx.items() if k not in doc})
        if record.exc_info:
            doc["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(doc, ensure_ascii=False, default=str)


class _SecretMask(logging.Filter):
    """Replace configured secret values in the rendered message."""

    def __init__(self, secrets: list[str]) -> None:
        super().__init__()
        # longest first so a secret containing another is masked whole
        self.secrets = sorted({s for s in secrets if s and len(s) >= 3}, key=len, reverse=True)

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        msg = record.getMessage()
        masked = msg
        for s in self.secrets:
            masked = masked.replace(s, _MASK)
        if masked != msg:
            record.msg, record.args = masked, None
        return True


def _json_file_handler(path: os.PathLike | str, level: int, backups: int) -> RotatingFileHandler:
    p = os.fspath(path)
    os.makedirs(os.path.dirname(p) or ".", exist_ok=True)
    fh = RotatingFileHandler(p, maxBytes=5 * 1024 * 1024, backupCount=backups, encoding="utf-8", delay=True)
    fh.setLevel(level)
    fh.setFormatter(JsonFormatter())
    return fh


def _configure() -> None:
    global _ready, _mask
    if _ready:
        return
    with _lock:
        if _ready:
            return

        settings = get_settings()
        level = getattr(logging, LogLevel(settings.LOG_LEVEL).value, logging.INFO)
        root = logging.getLogger()
        root.setLevel(level)
        for h in list(root.handlers):
            root.removeHandler(h)

        console = RichHandler(
            console=Console(stderr=True, no_color=not settings.COLORIZED_OUTPUT),
            show_path=False,
            rich_tracebacks=True,
            markup=False,
        )
        console.setFormatter(logging.Formatter("%(message)s"))
        console.setLevel(level)
        root.addHandler(console)

        if settings.LOG_TO_FILE:
            root.addHandler(_json_file_handler(settings.LOG_FILE, level, backups=5))

        _mask = _SecretMask([
            settings.MEROSHARE_PASSWORD,
            settings.MEROSHARE_PIN,
            settings.MEROSHARE_CRN_NO,
            settings.TELEGRAM_BOT_TOKEN,
            settings.PROXY_PASSWORD,
        ])
        for h in root.handlers:
            h.addFilter(_mask)

        for name in _NOISY:
            logging.getLogger(name).setLevel(max(level, logging.WARNING))

        _ready = True


def get_logger(name: Optional[str] = None) -> logging.LoggerAdapter:
    """Logger whose records carry the currently bound context under `extra`."""
    _configure()
    return logging.LoggerAdapter(logging.getLogger(name or ROOT_NAME), extra={"extra": _context})


def set_log_level(level: LogLevel | str) -> None:
    _configure()
    value = getattr(logging, LogLevel(level).value)
    root = logging.getLogger()
    root.setLevel(value)
    for h in root.handlers:
        h.setLevel(value)


def bind(**kwargs: Any) -> None:
    """Attach context (e.g. run_id) to every following record."""
    _context.update(kwargs)


def unbind(*keys: str) -> None:
    for k in keys:
        _context.pop(k, None)


@contextmanager
def bound(**kwargs: Any) -> Iterator[None]:
    bind(**kwargs)
    try:
        yield
    finally:
        unbind(*kwargs)


def log_with_context(logger: logging.LoggerAdapter, **kwargs: Any) -> logging.LoggerAdapter:
    """Child adapter with extra context for one section, e.g. a chain step."""
    base = (getattr(logger, "extra", None) or {}).get("extra") or {}
    return logging.LoggerAdapter(logger.logger, extra={"extra": {**_context, **base, **kwargs}})


def attach_file_logger(path: os.PathLike | str, level: Optional[int] = None) -> logging.Handler:
    """Add a JSON file handler (one per run directory); detach it with detach_file_logger."""
    _configure()
    root = logging.getLogger()
    handler = _json_file_handler(path, level if level is not None else root.level, backups=1)
    if _mask is not None:
        handler.addFilter(_mask)
    root.addHandler(handler)
    return handler


def detach_file_logger(handler: logging.Handler) -> None:
    logging.getLogger().removeHandler(handler)
    handler.close()
