from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from logdrain.parsers import LogEntry, ParseError, get_parser, parse_logplex, parse_plain

FRAME = b"83 <40>1 2012-11-30T06:45:29+00:00 host app web.3 - State changed from starting to up\n"


class TestLogplex:
    def test_parses_frame(self):
        entry = parse_logplex(FRAME)
        assert entry.timestamp == datetime(2012, 11, 30, 6, 45, 29, tzinfo=timezone.utc)
        assert entry.message == "app[web.3]: State changed from starting to up\n"

    def test_unterminated_frame_has_no_lf(self):
        entry = parse_logplex(FRAME.rstrip(b"\n"))
        assert entry.message == "app[web.3]: State changed from starting to up"

    def test_router_line_with_fractional_seconds_and_offset(self):
        raw = (
            b"156 <158>1 2024-03-01T10:00:00.123456-05:00 host heroku router - "
            b"at=info method=GET path=\"/\" status=200\n"
        )
        entry = parse_logplex(raw)
        assert entry.timestamp.utcoffset() == timedelta(hours=-5)
        assert entry.message.startswith("heroku[router]: at=info method=GET")

    def test_z_suffix(self):
        raw = b"50 <40>1 2024-03-01T10:00:00Z host app web.1 - hi\n"
        assert parse_logplex(raw).timestamp.tzinfo is not None

    def test_garbage_raises(self):
        with pytest.raises(ParseError):
            parse_logplex(b"hello world\n")

    def test_bad_timestamp_raises(self):
        with pytest.raises(ParseError):
            parse_logplex(b"50 <40>1 yesterday host app web.1 - hi\n")

    def test_invalid_utf8_is_replaced(self):
        raw = b"50 <40>1 2024-03-01T10:00:00Z host app web.1 - caf\xe9\n"
        assert "�" in parse_logplex(raw).message


class TestPlain:
    def test_strips_octet_count(self):
        assert parse_plain(b"13 <msg1>\n").message == "<msg1>\n"

    def test_without_octet_count(self):
        assert parse_plain(b"just text").message == "just text"

    def test_stamped_with_receive_time(self):
        before = datetime.now(timezone.utc)
        entry = parse_plain(b"x\n")
        assert before <= entry.timestamp <= datetime.now(timezone.utc)


def test_entries_are_immutable():
    entry = parse_plain(b"x")
    with pytest.raises(ValidationError):
        entry.message = "y"
    assert isinstance(entry, LogEntry)


def test_get_parser():
    assert get_parser("logplex") is parse_logplex
    assert get_parser("plain") is parse_plain
    with pytest.raises(ValueError):
        get_parser("json")
