"""
Structured logging for the check service.

One JSON line per event: `event_type`, `level`, `timestamp`, `logger`, plus
whatever the request has bound. A /check request binds its (truncated)
address and chain into structlog contextvars, so gateway, fetcher and
pipeline events emitted while serving it carry them without threading a
logger through every call. The HTTP middleware clears that context at the
start of each request.

configure_logging() runs on import with LOG_LEVEL / LOG_FORMAT from the
process environment; main.py calls it again once Settings (and .env) are
loaded. Loggers are resolved lazily, so reconfiguring affects loggers that
modules created at import time.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog
from structlog.typing import BindableLogger

ADDRESS_LOG_CHARS = 10


def _rename_event(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """structlog's positional `event` is published as `event_type`."""
    if "event" in event_dict:
        event_dict["event_type"] = event_dict.pop("event")
    return event_dict


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    (Re)configure structlog.

    level: level name (debug/info/warning/error); defaults to LOG_LEVEL or info.
    fmt: "json" (default, LOG_FORMAT) or anything else for the dev console renderer.
    """
    level_name = (level or os.getenv("LOG_LEVEL") or "info").strip().upper()
    fmt = (fmt or os.getenv("LOG_FORMAT") or "json").strip().lower()

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
    ]
    if fmt == "json":
        processors += [
            _rename_event,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # ConsoleRenderer formats exc_info itself and expects the `event` key
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name, logging.INFO)),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=False,
    )


configure_logging()


def get_logger(name: str) -> BindableLogger:
    """
    Return a lazily-resolved logger tagged with the module name.

        logger = get_logger(__name__)
        logger.info("rpc_retry", method="eth_getCode", attempt=1)
    """
    return structlog.get_logger(logger=name)


def short_address(address: str | None) -> str:
    """Truncate an address for log lines (0x + 8 hex chars)."""
    address = address or ""
    return address[:ADDRESS_LOG_CHARS] + "..." if len(address) > ADDRESS_LOG_CHARS else address


def bind_request(address: str, chain: str) -> BindableLogger:
    """Bind the checked address and chain to every event logged for this request."""
    structlog.contextvars.bind_contextvars(address=short_address(address), chain=chain)
    return get_logger("backend_safesend.check")


def clear_request() -> None:
    """Drop request-scoped context; called by the HTTP middleware per request."""
    structlog.contextvars.clear_contextvars()
