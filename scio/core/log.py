"""Logging setup shared by the API process and scripts."""

from __future__ import annotations

import logging
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class RequestIdFilter(logging.Filter):
    """Stamps each record with the id of the request being served."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        return True


def setup_logging(program: str, level: str = "INFO") -> None:
    """Sets up the root logger with a stderr handler.

    Args:
      program: Name prefixed to every line.
      level: Root level name (DEBUG, INFO, ...).
    """
    root = logging.getLogger("")
    for handler in root.handlers:
        if getattr(handler, "_scio", False):
            return

    handler = logging.StreamHandler()
    handler._scio = True  # type: ignore[attr-defined]
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(
        logging.Formatter(
            program + ": [%(levelname)s] [%(request_id)s] %(name)s: %(message)s"
        )
    )
    root.addHandler(handler)
    root.setLevel(getattr(logging, level, logging.INFO))


__all__ = ["RequestIdFilter", "request_id_var", "setup_logging"]
