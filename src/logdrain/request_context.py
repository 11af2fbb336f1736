from __future__ import annotations

import contextvars
import logging
import secrets
from typing import Optional

REQUEST_ID: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s]: %(message)s"


def new_request_id() -> str:
    return secrets.token_hex(8)


def set_request_id(request_id: str) -> contextvars.Token:
    return REQUEST_ID.set(request_id)


def reset_request_id(token: contextvars.Token) -> None:
    REQUEST_ID.reset(token)


def get_request_id() -> Optional[str]:
    return REQUEST_ID.get()


class RequestIdFilter(logging.Filter):
    """Stamps records with the id of the request being handled ("-" outside one)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = REQUEST_ID.get() or "-"
        return True


def configure_logging(level: str = "info") -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestIdFilter())

    root = logging.getLogger("logdrain")
    root.handlers[:] = [handler]
    root.setLevel(level.upper())
    root.propagate = False
