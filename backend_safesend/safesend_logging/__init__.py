"""
Structured logging for Backend SafeSend.

JSON logs with timestamp, event_type and request fields (address, chain, score).
Use get_logger() in all modules for aggregation-friendly output.
"""

from backend_safesend.safesend_logging.logger import (
    bind_request,
    clear_request,
    configure_logging,
    get_logger,
    short_address,
)

__all__ = ["bind_request", "clear_request", "configure_logging", "get_logger", "short_address"]
