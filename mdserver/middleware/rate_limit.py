"""
Fixed-window rate limiting per client address.

Each client gets max_requests per window; the counter resets when the
window that started with the client's first request has elapsed.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from mdserver.config.server_config import RateLimitConfig
from mdserver.exceptions import error_response

logger = logging.getLogger(__name__)


@dataclass
class WindowState:
    """Request count within the current window for one client."""
    window_start: float
    count: int = 0


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one rate-limit check."""
    allowed: bool
    limit: int
    remaining: int
    reset_after: float


class FixedWindowRateLimiter:
    """
    In-memory fixed-window counter keyed by client identifier.

    Features:
    - One window per client, started by its first request
    - Expired windows are purged lazily, at most once per window length
    - Thread-safe operations
    """

    def __init__(
        self,
        max_requests: int = 1000,
        window_seconds: float = 15 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._clients: Dict[str, WindowState] = {}
        self._lock = threading.Lock()
        self._last_purge = clock()
        self._blocked = 0

    def check(self, client_id: str) -> RateLimitDecision:
        """
        Count one request for a client and decide whether it may proceed.

        Args:
            client_id: Client identifier, normally the remote address

        Returns:
            RateLimitDecision describing the outcome
        """
        now = self._clock()
        with self._lock:
            self._purge_expired(now)

            state = self._clients.get(client_id)
            if state is None or now - state.window_start >= self.window_seconds:
                state = WindowState(window_start=now)
                self._clients[client_id] = state

            reset_after = max(0.0, self.window_seconds - (now - state.window_start))
            if state.count >= self.max_requests:
                self._blocked += 1
                return RateLimitDecision(False, self.max_requests, 0, reset_after)

            state.count += 1
            return RateLimitDecision(
                True,
                self.max_requests,
                self.max_requests - state.count,
                reset_after,
            )

    def _purge_expired(self, now: float) -> None:
        if now - self._last_purge < self.window_seconds:
            return
        expired = [
            client_id for client_id, state in self._clients.items()
            if now - state.window_start >= self.window_seconds
        ]
        for client_id in expired:
            del self._clients[client_id]
        self._last_purge = now

    def reset(self) -> None:
        with self._lock:
            self._clients.clear()
            self._blocked = 0

    def stats(self) -> dict:
        with self._lock:
            return {
                "clients": len(self._clients),
                "blocked": self._blocked,
                "max_requests": self.max_requests,
                "window_seconds": self.window_seconds,
            }


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests over the per-client limit with 429."""

    def __init__(
        self,
        app: ASGIApp,
        config: Optional[RateLimitConfig] = None,
        limiter: Optional[FixedWindowRateLimiter] = None,
    ):
        super().__init__(app)
        self.config = config or RateLimitConfig()
        self.limiter = limiter or FixedWindowRateLimiter(
            max_requests=self.config.max_requests,
            window_seconds=self.config.window_seconds,
        )

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not self.config.enabled:
            return await call_next(request)

        client_id = request.client.host if request.client else "unknown"
        decision = self.limiter.check(client_id)
        if not decision.allowed:
            logger.warning(f"Rate limit exceeded for {client_id} on {request.url.path}")
            response = error_response(
                429,
                "Too many requests, please try again later",
                "RATE_LIMITED",
                {"limit": decision.limit, "window_seconds": self.limiter.window_seconds},
            )
            response.headers["Retry-After"] = str(int(decision.reset_after) + 1)
        else:
            response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(decision.limit)
        response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
        return response
