"""Service configuration loaded from environment variables."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Callable, Mapping, Optional, TypeVar

T = TypeVar("T")


class ConfigError(ValueError):
    """Raised when an environment variable holds an invalid value."""


@dataclass(frozen=True)
class ServerConfig:
    port: str = "8080"
    host: str = "0.0.0.0"
    read_timeout: timedelta = timedelta(seconds=10)
    write_timeout: timedelta = timedelta(seconds=10)


@dataclass(frozen=True)
class DatabaseConfig:
    host: str = "localhost"
    port: str = "3306"
    user: str = "root"
    password: str = ""
    name: str = "e_ticketing_dev"
    ssl_mode: str = "disable"
    max_conns: int = 25
    max_idle: int = 5


@dataclass(frozen=True)
class RedisConfig:
    host: str = "localhost"
    port: str = "6379"
    password: str = ""
    db: int = 0


@dataclass(frozen=True)
class JWTConfig:
    secret: str = ""
    access_duration: timedelta = timedelta(minutes=15)
    refresh_duration: timedelta = timedelta(hours=168)
    issuer: str = "e-ticketing-system"


@dataclass(frozen=True)
class PaymentConfig:
    is_mocked: bool = True


@dataclass(frozen=True)
class Config:
    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    redis: RedisConfig = field(default_factory=RedisConfig)
    jwt: JWTConfig = field(default_factory=JWTConfig)
    payment: PaymentConfig = field(default_factory=PaymentConfig)


_UNITS_NS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60_000_000_000,
    "h": 3_600_000_000_000,
}
_PART = re.compile(r"(\d*\.?\d*)(ns|us|µs|μs|ms|s|m|h)")


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as "10s", "1h30m" or "1.5ms"."""
    s = text.strip()
    sign = 1
    if s[:1] in "+-" and s:
        sign = -1 if s[0] == "-" else 1
        s = s[1:]
    if s == "0":
        return timedelta(0)
    if not s:
        raise ConfigError(f"invalid duration {text!r}")
    total_ns = 0.0
    pos = 0
    while pos < len(s):
        match = _PART.match(s, pos)
        if not match or match.group(1) in ("", "."):
            raise ConfigError(f"invalid duration {text!r}")
        total_ns += float(match.group(1)) * _UNITS_NS[match.group(2)]
        pos = match.end()
    return timedelta(microseconds=sign * total_ns / 1000)


_TRUE = {"1", "t", "T", "TRUE", "true", "True"}
_FALSE = {"0", "f", "F", "FALSE", "false", "False"}


def _parse_bool(text: str) -> bool:
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"invalid boolean {text!r}")


def _parse_int(text: str) -> int:
    try:
        return int(text.strip())
    except ValueError:
        raise ConfigError(f"invalid integer {text!r}") from None


def load(environ: Optional[Mapping[str, str]] = None) -> Config:
    """Build a Config from the environment, falling back to defaults."""
    env = os.environ if environ is None else environ

    def get(key: str, default: T, convert: Callable[[str], T] = str) -> T:  # type: ignore[assignment]
        if key not in env:
            return default
        try:
            return convert(env[key])
        except ConfigError as exc:
            raise ConfigError(f"{key}: {exc}") from None

    server_d, db_d, redis_d, jwt_d, pay_d = (
        ServerConfig(), DatabaseConfig(), RedisConfig(), JWTConfig(), PaymentConfig()
    )
    return Config(
        server=ServerConfig(
            port=get("SERVER_PORT", server_d.port),
            host=get("SERVER_HOST", server_d.host),
            read_timeout=get("SERVER_READ_TIMEOUT", server_d.read_timeout, parse_duration),
            write_timeout=get("SERVER_WRITE_TIMEOUT", server_d.write_timeout, parse_duration),
        ),
        database=DatabaseConfig(
            host=get("DB_HOST", db_d.host),
            port=get("DB_PORT", db_d.port),
            user=get("DB_USER", db_d.user),
            password=get("DB_PASSWORD", db_d.password),
            name=get("DB_NAME", db_d.name),
            ssl_mode=get("DB_SSL_MODE", db_d.ssl_mode),
            max_conns=get("DB_MAX_CONNS", db_d.max_conns, _parse_int),
            max_idle=get("DB_MAX_IDLE", db_d.max_idle, _parse_int),
        ),
        redis=RedisConfig(
            host=get("REDIS_HOST", redis_d.host),
            port=get("REDIS_PORT", redis_d.port),
            password=get("REDIS_PASSWORD", redis_d.password),
            db=get("REDIS_DB", redis_d.db, _parse_int),
        ),
        jwt=JWTConfig(
            secret=get("JWT_SECRET", jwt_d.secret),
            access_duration=get("JWT_ACCESS_DURATION", jwt_d.access_duration, parse_duration),
            refresh_duration=get("JWT_REFRESH_DURATION", jwt_d.refresh_duration, parse_duration),
            issuer=get("JWT_ISSUER", jwt_d.issuer),
        ),
        payment=PaymentConfig(
            is_mocked=get("PAYMENT_IS_MOCKED", pay_d.is_mocked, _parse_bool),
        ),
    )