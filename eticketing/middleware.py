"""WSGI middleware: CORS, panic recovery, access logging and rate limiting."""

from __future__ import annotations

import json
import logging
import sys
import time
from datetime import datetime
from typing import Callable, Iterable, Optional, TextIO

from .ratelimit import RateLimiter

log = logging.getLogger(__name__)

_CORS_HEADERS = [
    ("Access-Control-Allow-Origin", "*"),
    ("Access-Control-Allow-Credentials", "true"),
    (
        "Access-Control-Allow-Headers",
        "Content-Type, Content-Length, Accept-Encoding, X-CSRF-Token, Authorization, "
        "accept, origin, Cache-Control, X-Requested-With",
    ),
    ("Access-Control-Allow-Methods", "POST, GET, OPTIONS, PUT, DELETE, PATCH"),
]


def _json_response(start_response, status: str, body: dict) -> list:
    payload = json.dumps(body).encode()
    start_response(status, [
        ("Content-Type", "application/json; charset=utf-8"),
        ("Content-Length", str(len(payload))),
    ])
    return [payload]


def _client_ip(environ: dict) -> str:
    forwarded = environ.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded.strip():
        return forwarded.split(",")[0].strip()
    real_ip = environ.get("HTTP_X_REAL_IP", "").strip()
    return real_ip or environ.get("REMOTE_ADDR", "")


def cors_middleware(app: Callable) -> Callable:
    """Add permissive CORS headers and answer preflight requests with 204."""

    def wrapped(environ, start_response):
        if environ.get("REQUEST_METHOD") == "OPTIONS":
            start_response("204 No Content", list(_CORS_HEADERS))
            return []

        def cors_start(status, headers, exc_info=None):
            return start_response(status, list(headers) + _CORS_HEADERS, exc_info)

        return app(environ, cors_start)

    return wrapped


def recovery_middleware(app: Callable) -> Callable:
    """Turn unhandled exceptions into a JSON 500 response."""

    def wrapped(environ, start_response):
        try:
            return list(app(environ, start_response))
        except Exception as exc:  # noqa: BLE001 - any failure becomes a 500
            log.error("Panic recovered: %s", exc)
            return _json_response(start_response, "500 Internal Server Error", {
                "success": False,
                "message": "Internal server error",
                "error": "Something went wrong",
            }) if not _started(start_response) else []

    return wrapped


def _started(start_response) -> bool:
    return getattr(start_response, "called", False)


def _fraction(value: int, unit: int) -> str:
    whole, rest = divmod(value, unit)
    if not rest:
        return str(whole)
    digits = str(rest).rjust(len(str(unit)) - 1, "0").rstrip("0")
    return f"{whole}.{digits}"


def _format_latency(ns: int) -> str:
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return f"{sign}{_fraction(ns, 1_000)}µs"
    if ns < 1_000_000_000:
        return f"{sign}{_fraction(ns, 1_000_000)}ms"
    hours, rest = divmod(ns, 3_600_000_000_000)
    minutes, rest = divmod(rest, 60_000_000_000)
    text = f"{_fraction(rest, 1_000_000_000)}s"
    if hours or minutes:
        text = f"{minutes}m{text}"
    if hours:
        text = f"{hours}h{text}"
    return sign + text


def format_access_line(client_ip: str, timestamp: datetime, method: str, path: str,
                       protocol: str, status: int, latency: float, user_agent: str,
                       error_message: str) -> str:
    """Format one access-log line; `latency` is in seconds."""
    when = timestamp.strftime("%a, %d %b %Y %H:%M:%S %Z")
    duration = _format_latency(round(latency * 1_000_000_000))
    return (f'{client_ip} - [{when}] "{method} {path} {protocol} {status} {duration} '
            f'"{user_agent}" {error_message}"\n')


def logging_middleware(app: Callable, stream: Optional[TextIO] = None) -> Callable:
    """Write an access-log line for every request to `stream` (stderr by default)."""

    def wrapped(environ, start_response):
        out = stream if stream is not None else sys.stderr
        state = {"status": 0}

        def logging_start(status, headers, exc_info=None):
            state["status"] = int(status.split(" ", 1)[0])
            return start_response(status, headers, exc_info)

        started = time.perf_counter()
        body: Iterable[bytes] = list(app(environ, logging_start))
        elapsed = time.perf_counter() - started
        out.write(format_access_line(
            _client_ip(environ),
            datetime.now().astimezone(),
            environ.get("REQUEST_METHOD", ""),
            environ.get("PATH_INFO", ""),
            environ.get("SERVER_PROTOCOL", ""),
            state["status"],
            elapsed,
            environ.get("HTTP_USER_AGENT", ""),
            "",
        ))
        return body

    return wrapped


def rate_limit_middleware(app: Callable, limiter: Optional[RateLimiter] = None) -> Callable:
    """Reject clients that exceed the limiter with a JSON 429 response."""
    limiter = limiter if limiter is not None else RateLimiter(60.0, 500)
    state = {"last_cleanup": time.monotonic()}

    def wrapped(environ, start_response):
        now = time.monotonic()
        if now - state["last_cleanup"] >= 60.0:
            state["last_cleanup"] = now
            limiter.cleanup(3600.0)
        if not limiter.allow(_client_ip(environ)):
            return _json_response(start_response, "429 Too Many Requests", {
                "success": False,
                "message": "Rate limit exceeded",
                "error": "Too many requests",
            })
        return app(environ, start_response)

    return wrapped