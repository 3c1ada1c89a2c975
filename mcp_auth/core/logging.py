"""Logging setup for the MCP auth server.

Every record carries a ``request_id`` attribute, filled from a ContextVar set
by :func:`mcp_auth.core.decorators.track_request`, so log lines of one tool
call can be grepped together.
"""

import logging
import sys
from contextvars import ContextVar

LOGGER_NAME = "mcp-auth-server"
LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(request_id)s%(message)s"

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)


class RequestIdFilter(logging.Filter):
    """Adds the current request id (or an empty string) to each record."""

    def filter(self, record):
        request_id = request_id_ctx.get()
        record.request_id = f"[{request_id}] " if request_id else ""
        return True


def configure_logging(debug: bool = False) -> logging.Logger:
    """Install the stderr handler once and return the application logger."""
    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    for handler in logging.root.handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())

    app_logger = logging.getLogger(LOGGER_NAME)
    set_debug(debug)
    return app_logger


def set_debug(enabled: bool) -> None:
    """Switch the application loggers between DEBUG and INFO."""
    level = logging.DEBUG if enabled else logging.INFO
    for name in (LOGGER_NAME, "mcp_auth"):
        logging.getLogger(name).setLevel(level)
    if enabled:
        logging.getLogger(LOGGER_NAME).debug("Debug mode enabled")


logger = configure_logging()
