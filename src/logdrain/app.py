from __future__ import annotations

import base64
import binascii
import logging
import secrets
from typing import AsyncIterable, Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse, Response
from fastapi.security import HTTPBasicCredentials
from fastapi.security.utils import get_authorization_scheme_param
from starlette.requests import ClientDisconnect

from logdrain.ansi import strip_ansi
from logdrain.config import Settings, load_settings
from logdrain.framing import frame_lines
from logdrain.middleware import AccessLogMiddleware
from logdrain.parsers import ParseError, ParseFunc, get_parser
from logdrain.registry import SinkRegistry
from logdrain.request_context import configure_logging
from logdrain.shutdown import drain_sinks
from logdrain.sinks import Sink, SinkError, SinkFactory, build_sink_factory

logger = logging.getLogger("logdrain.app")

# every method lands on the drain route so the status codes below are ours,
# not the framework's 405s
METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def basic_credentials(request: Request) -> Optional[HTTPBasicCredentials]:
    """
    Basic auth credentials decoded as UTF-8, so non-ASCII users and
    passwords work. None when the header is missing or malformed.
    """
    scheme, param = get_authorization_scheme_param(request.headers.get("Authorization"))
    if scheme.lower() != "basic" or not param:
        return None
    try:
        data = base64.b64decode(param, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, sep, password = data.partition(":")
    if not sep:
        return None
    return HTTPBasicCredentials(username=username, password=password)


def _same(a: str, b: str) -> bool:
    return secrets.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


class DrainHandler:
    """Per-request flow: probe / validate / authenticate / resolve sink / stream body."""

    def __init__(
        self,
        registry: SinkRegistry,
        parse: ParseFunc,
        *,
        user: str,
        password: str,
        strip_ansi_codes: bool = False,
    ):
        self.registry = registry
        self.parse = parse
        self.user = user
        self.password = password
        self.strip_ansi_codes = strip_ansi_codes

    def authorized(self, credentials: Optional[HTTPBasicCredentials]) -> bool:
        # unset credentials lock the drain rather than open it
        if not (self.user and self.password) or credentials is None:
            return False
        user_ok = _same(credentials.username, self.user)
        pass_ok = _same(credentials.password, self.password)
        return user_ok and pass_ok

    async def forward(self, chunks: AsyncIterable[bytes], sink: Sink) -> int:
        n = 0
        async for raw in frame_lines(chunks):
            entry = self.parse(raw)
            message = entry.message
            if self.strip_ansi_codes:
                message = strip_ansi(message)
            if message.endswith("\n"):
                message = message[:-1]
            sink.append(entry.timestamp, message)
            n += 1
        return n

    async def __call__(self, destination: str, request: Request) -> Response:
        if request.method == "GET":
            if destination == "":
                return PlainTextResponse("OK", status_code=200)
            return PlainTextResponse("Not found", status_code=404)

        if request.method != "POST":
            return PlainTextResponse("The only accepted request method is POST", status_code=400)

        if destination == "":
            return PlainTextResponse("Request path must specify the log group name", status_code=400)

        if not self.authorized(basic_credentials(request)):
            logger.warning("rejected credentials for %s", destination)
            return Response(status_code=403)

        try:
            sink = await self.registry.get_or_create(destination)
        except SinkError as exc:
            logger.error("failed to create sink for %s: %s", destination, exc)
            return Response(status_code=500)

        try:
            n = await self.forward(request.stream(), sink)
        except ParseError as exc:
            logger.error("unable to parse message for %s: %s", destination, exc)
            return Response(status_code=500)
        except ClientDisconnect:
            logger.warning("client went away while sending logs for %s", destination)
            return Response(status_code=500)
        except SinkError as exc:
            logger.error("sink for %s refused entry: %s", destination, exc)
            return Response(status_code=500)

        logger.debug("forwarded %d entries to %s", n, destination)
        return Response(status_code=202)


def create_app(
    settings: Settings,
    *,
    sink_factory: Optional[SinkFactory] = None,
    parser: Optional[ParseFunc] = None,
) -> FastAPI:
    factory = sink_factory or build_sink_factory(settings)
    parse = parser or get_parser(settings.log_format)

    registry = SinkRegistry(
        factory,
        retention_days=settings.retention_days,
        cache_failures=settings.cache_sink_failures,
    )
    handler = DrainHandler(
        registry,
        parse,
        user=settings.user,
        password=settings.password,
        strip_ansi_codes=settings.strip_ansi,
    )

    app = FastAPI(title="logdrain", docs_url=None, redoc_url=None, openapi_url=None)
    app.state.settings = settings
    app.state.registry = registry
    app.add_middleware(AccessLogMiddleware)

    @app.api_route("/{destination:path}", methods=METHODS, include_in_schema=False)
    async def drain(destination: str, request: Request) -> Response:
        return await handler(destination, request)

    @app.on_event("shutdown")
    async def _drain_sinks():
        # 0 -> wait for every sink however long it takes
        await drain_sinks(registry, timeout=settings.shutdown_timeout or None)

    return app


def app_from_env() -> FastAPI:
    """For `uvicorn --factory logdrain.app:app_from_env`."""
    settings = load_settings()
    configure_logging(settings.log_level)
    return create_app(settings)
