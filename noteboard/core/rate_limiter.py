"""
Per-client attempt limits for sensitive form posts.

Each (scope, client IP) pair keeps the timestamps of its recent attempts in a
sliding window held in process memory. Routes opt in with
`Depends(limit_attempts("scope"))`; the attempt budget and window length come
from settings so deployments and tests can tune them.
"""
from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict

from fastapi import HTTPException, Request

from noteboard.core.config import get_settings

TOO_MANY_ATTEMPTS = "Too many attempts. Try again in a moment."


class AttemptLog:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._attempts: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def record(self, key: str, limit: int, window_seconds: int) -> float:
        """Register one attempt for `key`.

        Returns 0 when the attempt is allowed, otherwise the number of seconds
        until the oldest attempt in the window expires. Refused attempts are not
        recorded.
        """
        now = self._clock()
        with self._lock:
            attempts = self._attempts.setdefault(key, deque())
            while attempts and attempts[0] <= now - window_seconds:
                attempts.popleft()
            if len(attempts) >= limit:
                return attempts[0] + window_seconds - now
            attempts.append(now)
            return 0.0

    def clear(self) -> None:
        with self._lock:
            self._attempts.clear()


_log = AttemptLog()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def limit_attempts(scope: str):
    """Build a dependency that refuses a client once it spends the scope's budget."""

    def dependency(request: Request) -> None:
        settings = get_settings()
        retry_after = _log.record(
            f"{scope}:{client_ip(request)}",
            settings.rate_limit_attempts,
            settings.rate_limit_window_seconds,
        )
        if retry_after > 0:
            raise HTTPException(
                429,
                TOO_MANY_ATTEMPTS,
                headers={"Retry-After": str(max(1, math.ceil(retry_after)))},
            )

    return dependency


def reset_limits() -> None:
    _log.clear()
