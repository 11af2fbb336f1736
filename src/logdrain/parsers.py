from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Callable, Dict

from pydantic import BaseModel, ConfigDict


class LogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    message: str


class ParseError(ValueError):
    pass


ParseFunc = Callable[[bytes], LogEntry]


# ----------------------------
# Heroku logplex frames
# ----------------------------
# 83 <40>1 2012-11-30T06:45:29+00:00 host app web.3 - State changed from starting to up
_LOGPLEX_RE = re.compile(
    r"""
    ^(?P<length>\d+)\s
    <(?P<pri>\d{1,3})>(?P<version>\d{1,2})\s
    (?P<timestamp>\S+)\s
    (?P<host>\S+)\s
    (?P<app>\S+)\s
    (?P<procid>\S+)\s
    (?P<msgid>\S+)
    (?:\s(?P<msg>.*))?$
    """,
    re.VERBOSE | re.DOTALL,
)

_OCTET_PREFIX_RE = re.compile(r"^\d+ ")


def _decode(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


def _parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        ts = datetime.fromisoformat(value)
    except ValueError as exc:
        raise ParseError(f"invalid timestamp {value!r}") from exc
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts


def parse_logplex(raw: bytes) -> LogEntry:
    """
    Parse one logplex frame. The message is rendered the way `heroku logs`
    shows it (``app[web.1]: text``) and keeps the frame's trailing LF.
    """
    line = _decode(raw)
    m = _LOGPLEX_RE.match(line)
    if not m:
        raise ParseError(f"not a logplex frame: {line!r}")

    msg = m.group("msg") or ""
    message = f"{m.group('app')}[{m.group('procid')}]: {msg}"
    return LogEntry(timestamp=_parse_timestamp(m.group("timestamp")), message=message)


def parse_plain(raw: bytes) -> LogEntry:
    """Raw text lines, optionally octet-counted. Stamped with the receive time."""
    line = _OCTET_PREFIX_RE.sub("", _decode(raw), count=1)
    return LogEntry(timestamp=datetime.now(timezone.utc), message=line)


PARSERS: Dict[str, ParseFunc] = {
    "logplex": parse_logplex,
    "plain": parse_plain,
}


def get_parser(name: str) -> ParseFunc:
    try:
        return PARSERS[name]
    except KeyError:
        raise ValueError(f"unknown log format {name!r} (expected one of: {', '.join(PARSERS)})") from None
