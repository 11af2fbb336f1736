from datetime import datetime, timezone
from unittest import mock

import pytest
import requests

from logdrain.sinks import SinkError
from logdrain.sinks.http import HttpSink, HttpSinkFactory

T0 = datetime(2024, 3, 1, 10, 0, 0, tzinfo=timezone.utc)


def test_posts_batches_with_bearer_token():
    with mock.patch("logdrain.sinks.http.requests.post") as post:
        sink = HttpSink("http://collector/ingest", "myapp", token="tok", timeout=2.0)
        sink.append(T0, "hello")
        sink.append(T0, "world")
        sink.close()

    entries = []
    for call in post.call_args_list:
        assert call.args[0] == "http://collector/ingest"
        assert call.kwargs["headers"] == {"Authorization": "Bearer tok"}
        assert call.kwargs["timeout"] == 2.0
        assert call.kwargs["json"]["destination"] == "myapp"
        entries.extend(call.kwargs["json"]["entries"])
    assert [e["message"] for e in entries] == ["hello", "world"]
    assert entries[0]["timestamp"] == T0.isoformat()


def test_no_auth_header_without_token():
    with mock.patch("logdrain.sinks.http.requests.post") as post:
        sink = HttpSink("http://collector/ingest", "myapp")
        sink.append(T0, "x")
        sink.close()
    assert post.call_args.kwargs["headers"] == {}


def test_http_errors_are_swallowed_by_worker():
    with mock.patch("logdrain.sinks.http.requests.post", side_effect=requests.ConnectionError("down")) as post:
        sink = HttpSink("http://collector/ingest", "myapp")
        sink.append(T0, "x")
        sink.close()
    post.assert_called_once()


def test_factory_rejects_non_http_urls():
    with pytest.raises(SinkError):
        HttpSinkFactory("ftp://nope")("myapp", 0)


def test_factory_builds_sink():
    sink = HttpSinkFactory("https://collector/ingest", token="t")("myapp", 30)
    try:
        assert isinstance(sink, HttpSink)
        assert sink.destination == "myapp"
        assert sink.token == "t"
    finally:
        sink.close()
