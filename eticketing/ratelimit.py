"""Per-client token bucket rate limiting."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict


@dataclass
class _Visitor:
    tokens: int
    last_seen: float
    lock: threading.Lock


class RateLimiter:
    """Grants each client `capacity` tokens, refilling one every `rate` seconds."""

    def __init__(self, rate: float, capacity: int, clock: Callable[[], float] = time.monotonic):
        if rate <= 0:
            raise ValueError("rate must be positive")
        self.rate = rate
        self.capacity = capacity
        self._clock = clock
        self._visitors: Dict[str, _Visitor] = {}
        self._lock = threading.Lock()

    def _visitor(self, ip: str) -> _Visitor:
        with self._lock:
            visitor = self._visitors.get(ip)
            if visitor is None:
                visitor = _Visitor(self.capacity, self._clock(), threading.Lock())
                self._visitors[ip] = visitor
            return visitor

    def allow(self, ip: str) -> bool:
        """Take a token for `ip`; return False when none is left."""
        visitor = self._visitor(ip)
        with visitor.lock:
            now = self._clock()
            visitor.tokens = min(
                self.capacity, visitor.tokens + int((now - visitor.last_seen) // self.rate)
            )
            visitor.last_seen = now
            if visitor.tokens > 0:
                visitor.tokens -= 1
                return True
            return False

    def cleanup(self, max_idle: float = 3600.0) -> int:
        """Forget clients idle for longer than `max_idle` seconds; return how many."""
        now = self._clock()
        with self._lock:
            stale = [ip for ip, v in self._visitors.items() if now - v.last_seen > max_idle]
            for ip in stale:
                del self._visitors[ip]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._visitors)