from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

# ----------------------------
# Settings
# ----------------------------
# Everything is fixed at startup. Environment variables provide the
# defaults, command line flags (see cli.py) override them.

TRUE_VALUES = ("1", "true", "yes", "y")


@dataclass(frozen=True)
class Settings:
    host: str = "0.0.0.0"
    port: int = 8080
    retention_days: int = 0          # 0 -> never expire
    user: str = ""
    password: str = ""
    strip_ansi: bool = False
    log_format: str = "logplex"      # logplex | plain
    sink: str = "cloudwatch"         # cloudwatch | http
    aws_region: Optional[str] = None
    forward_url: str = ""
    forward_token: str = ""
    cache_sink_failures: bool = True
    shutdown_timeout: float = 5.0
    log_level: str = "info"

    @property
    def auth_configured(self) -> bool:
        return bool(self.user and self.password)


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in TRUE_VALUES


def _get_int(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from None


def _get_float(environ: Mapping[str, str], key: str, default: float) -> float:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {raw!r}") from None


def _get_bool(environ: Mapping[str, str], key: str, default: bool) -> bool:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    return _parse_bool(raw)


def load_settings(environ: Optional[Mapping[str, str]] = None, *, check: bool = True) -> Settings:
    """Build Settings from DRAIN_* environment variables."""
    env = os.environ if environ is None else environ
    settings = Settings(
        host=env.get("DRAIN_HOST", Settings.host),
        port=_get_int(env, "DRAIN_PORT", Settings.port),
        retention_days=_get_int(env, "DRAIN_RETENTION_DAYS", Settings.retention_days),
        user=env.get("DRAIN_USER", ""),
        password=env.get("DRAIN_PASS", ""),
        strip_ansi=_get_bool(env, "DRAIN_STRIP_ANSI", Settings.strip_ansi),
        log_format=env.get("DRAIN_FORMAT", Settings.log_format).strip().lower(),
        sink=env.get("DRAIN_SINK", Settings.sink).strip().lower(),
        aws_region=env.get("DRAIN_AWS_REGION") or None,
        forward_url=env.get("DRAIN_FORWARD_URL", ""),
        forward_token=env.get("DRAIN_FORWARD_TOKEN", ""),
        cache_sink_failures=_get_bool(env, "DRAIN_CACHE_SINK_FAILURES", Settings.cache_sink_failures),
        shutdown_timeout=_get_float(env, "DRAIN_SHUTDOWN_TIMEOUT", Settings.shutdown_timeout),
        log_level=env.get("DRAIN_LOG_LEVEL", Settings.log_level).strip().lower(),
    )
    if check:
        validate(settings)
    return settings


def validate(settings: Settings) -> None:
    if not 0 < settings.port < 65536:
        raise ValueError(f"port out of range: {settings.port}")
    if settings.retention_days < 0:
        raise ValueError("retention days must be >= 0")
    if settings.shutdown_timeout < 0:
        raise ValueError("shutdown timeout must be >= 0")
    if settings.sink == "http" and not settings.forward_url:
        raise ValueError("DRAIN_FORWARD_URL is required when the http sink is selected")
