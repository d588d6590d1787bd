"""In-memory per-client rate limiting for the prediction endpoints."""

from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import Callable, Deque

from fastapi import Request
from starlette.responses import JSONResponse

from ..config import settings

EXEMPT_PATHS = frozenset({"/healthz"})


class RateLimitMiddleware:
    """Sliding window limiter keyed on client IP."""

    def __init__(self, app: Callable) -> None:
        self.app = app
        self._requests: dict[str, Deque[float]] = defaultdict(deque)

    def _allow(self, client_ip: str, now: float) -> bool:
        window_start = now - settings.rate_limit_window_seconds
        request_times = self._requests[client_ip]
        while request_times and request_times[0] <= window_start:
            request_times.popleft()
        if len(request_times) >= settings.rate_limit_requests:
            return False
        request_times.append(now)
        return True

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http" or scope.get("path") in EXEMPT_PATHS:
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive=receive)
        client_ip = request.client.host if request.client else "unknown"
        if not self._allow(client_ip, time.monotonic()):
            response = JSONResponse({"detail": {"error": "rate_limited"}}, status_code=429)
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
