from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from typing import List, Optional, Tuple

import uvicorn

from logdrain.app import create_app
from logdrain.config import Settings, load_settings, validate
from logdrain.request_context import configure_logging

logger = logging.getLogger("logdrain.cli")


def _split_bind(bind: str) -> Tuple[str, int]:
    host, sep, port = bind.rpartition(":")
    if not sep:
        raise ValueError(f"bind address must look like host:port, got {bind!r}")
    return host or "0.0.0.0", int(port)


def build_parser(defaults: Settings) -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="logdrain", description="Heroku-style HTTPS log drain")
    p.add_argument("--bind", help=f"address to bind to (default {defaults.host}:{defaults.port})")
    p.add_argument("--host", help="address to bind to, overridden by --bind")
    p.add_argument("--port", type=int, help="port to bind to, overridden by --bind")
    p.add_argument("--retention", type=int, default=defaults.retention_days,
                   help="log retention in days for new log groups (0 = never expire)")
    p.add_argument("--user", default=defaults.user, help="username for HTTP basic auth")
    p.add_argument("--pass", dest="password", default=defaults.password, help="password for HTTP basic auth")
    p.add_argument("--strip-ansi-codes", action="store_true", default=defaults.strip_ansi,
                   help="strip ANSI codes from log messages")
    p.add_argument("--format", dest="log_format", choices=("logplex", "plain"), default=defaults.log_format)
    p.add_argument("--sink", choices=("cloudwatch", "http"), default=defaults.sink)
    p.add_argument("--region", dest="aws_region", default=defaults.aws_region)
    p.add_argument("--forward-url", default=defaults.forward_url)
    p.add_argument("--forward-token", default=defaults.forward_token)
    p.add_argument("--no-cache-sink-failures", dest="cache_sink_failures", action="store_false",
                   default=defaults.cache_sink_failures,
                   help="retry sink creation on the next request instead of remembering the failure")
    p.add_argument("--shutdown-timeout", type=float, default=defaults.shutdown_timeout)
    p.add_argument("--log-level", default=defaults.log_level)
    return p


def parse_settings(argv: Optional[List[str]] = None) -> Settings:
    defaults = load_settings(check=False)
    args = build_parser(defaults).parse_args(argv)

    host = args.host or defaults.host
    port = args.port if args.port is not None else defaults.port
    if args.bind:
        host, port = _split_bind(args.bind)

    settings = dataclasses.replace(
        defaults,
        host=host,
        port=port,
        retention_days=args.retention,
        user=args.user,
        password=args.password,
        strip_ansi=args.strip_ansi_codes,
        log_format=args.log_format,
        sink=args.sink,
        aws_region=args.aws_region,
        forward_url=args.forward_url,
        forward_token=args.forward_token,
        cache_sink_failures=args.cache_sink_failures,
        shutdown_timeout=args.shutdown_timeout,
        log_level=args.log_level.lower(),
    )
    validate(settings)
    return settings


def main(argv: Optional[List[str]] = None) -> None:
    try:
        settings = parse_settings(argv)
        configure_logging(settings.log_level)
        app = create_app(settings)
    except ValueError as exc:
        print(f"logdrain: {exc}", file=sys.stderr)
        sys.exit(1)

    if not settings.auth_configured:
        logger.warning("basic auth user/password not set, every ingestion request will be rejected")

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        access_log=False,
        timeout_graceful_shutdown=settings.shutdown_timeout or None,
    )


if __name__ == "__main__":
    main()
