"""Logging for the kit's ``fhevm_kit`` logger namespace.

Modules log through ``logging.getLogger(__name__)`` and attach bootstrap
context (chain id, ACL address, status, attempt id, user address) as
``extra`` fields. ``bind_context`` returns an adapter carrying context for
the lifetime of one bootstrap attempt.

Applications opt in to output with ``setup_logging()``; the kit never
configures handlers on import. Format and level come from settings
(``FHEVM_APP_ENV``, ``FHEVM_LOG_LEVEL``) unless given explicitly.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping

from fhevm_kit.core.config import get_settings

ROOT_LOGGER = "fhevm_kit"

CONTEXT_FIELDS = ("chain_id", "acl_address", "status", "attempt_id", "user_address")


def _context_of(record: logging.LogRecord) -> dict[str, Any]:
    return {key: getattr(record, key) for key in CONTEXT_FIELDS if getattr(record, key, None) is not None}


class BootstrapContextAdapter(logging.LoggerAdapter):
    """Adds bound context to every record; per-call ``extra`` wins on conflict."""

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def bind_context(logger: logging.Logger | logging.LoggerAdapter, **context: Any) -> BootstrapContextAdapter:
    """Return ``logger`` with ``context`` attached to everything it emits."""
    if isinstance(logger, logging.LoggerAdapter):
        context = {**(logger.extra or {}), **context}
        logger = logger.logger
    return BootstrapContextAdapter(logger, {k: v for k, v in context.items() if v is not None})


class JSONFormatter(logging.Formatter):
    """One JSON object per record, bootstrap context nested under ``context``."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        context = _context_of(record)
        if context:
            entry["context"] = context
        if record.exc_info and record.exc_info[1]:
            exc = record.exc_info[1]
            entry["error"] = {
                "type": type(exc).__name__,
                "code": getattr(getattr(exc, "code", None), "value", None),
                "message": str(exc),
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(entry, default=str)


class DevFormatter(logging.Formatter):
    """Coloured single-line output with context as trailing ``key=value`` pairs."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.fromtimestamp(record.created, timezone.utc).strftime("%H:%M:%S")
        line = f"{color}{ts} {record.levelname:<7s}{self.RESET} {record.name}: {record.getMessage()}"

        context = _context_of(record)
        if "attempt_id" in context:
            context["attempt_id"] = str(context["attempt_id"])[:8]
        if context:
            line += " [" + " ".join(f"{k}={v}" for k, v in context.items()) + "]"

        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    env: str | None = None,
    log_level: str | None = None,
    stream: Any = None,
) -> logging.Logger:
    """Attach a handler to the ``fhevm_kit`` logger and return it.

    JSON output for staging/production, coloured lines otherwise. Calling
    again replaces the handler rather than adding a second one.
    """
    settings = get_settings()
    env = env or settings.app_env
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)

    kit_logger = logging.getLogger(ROOT_LOGGER)
    kit_logger.setLevel(level)
    for handler in [h for h in kit_logger.handlers if getattr(h, "_fhevm_kit", False)]:
        kit_logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter() if env in ("staging", "production") else DevFormatter())
    handler._fhevm_kit = True  # type: ignore[attr-defined]
    kit_logger.addHandler(handler)

    for noisy in ("httpcore", "httpx", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
    return kit_logger

