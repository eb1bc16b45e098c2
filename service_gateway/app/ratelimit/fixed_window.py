"""
Fixed-window rate limiter for Gateway service.
"""

import math
import threading
import time
from typing import Any, Callable, Dict, Optional

from fastapi import Request

from shared.base_service import endpoint_label
from shared.errors import RateLimitedError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from service_gateway.app.domain.models import RateWindow


class FixedWindowRateLimiter:
    """In-process fixed-window counter keyed by client address."""

    def __init__(self, max_requests: int = 100, window_seconds: float = 15 * 60,
                 clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.logger = get_logger("gateway.rate_limiter")
        self._clock = clock
        self._windows: Dict[str, RateWindow] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    @property
    def tracked_clients(self) -> int:
        return len(self._windows)

    def check_rate_limit(self, client_id: str) -> Dict[str, Any]:
        """Count one request from ``client_id`` and say whether it is admitted."""
        with self._lock:
            now = self._clock()
            self._sweep_expired(now)

            window = self._windows.get(client_id)
            if window is None or now - window.window_start >= self.window_seconds:
                window = RateWindow(window_start=now, count=1)
                self._windows[client_id] = window
            else:
                window.count += 1

            current_count = window.count
            reset_in = max(0.0, window.window_start + self.window_seconds - now)

        result = {
            "allowed": current_count <= self.max_requests,
            "current_count": current_count,
            "limit": self.max_requests,
            "remaining": max(0, self.max_requests - current_count),
            "reset_in_seconds": int(math.ceil(reset_in)),
        }
        if not result["allowed"]:
            self.logger.warning(
                "Rate limit exceeded",
                client_id=client_id,
                current_count=current_count,
                limit=self.max_requests
            )
        return result

    def _sweep_expired(self, now: float) -> None:
        # Drop windows that would be reset on their next use anyway
        if now - self._last_sweep < self.window_seconds:
            return
        expired = [
            key for key, window in self._windows.items()
            if now - window.window_start >= self.window_seconds
        ]
        for key in expired:
            del self._windows[key]
        self._last_sweep = now
        if expired:
            self.logger.debug("Expired rate windows swept", count=len(expired))


class RateLimitMiddleware:
    """Applies the rate limiter to incoming FastAPI requests."""

    def __init__(self, rate_limiter: FixedWindowRateLimiter, trust_forwarded_headers: bool = False,
                 metrics: Optional[MetricsCollector] = None):
        self.rate_limiter = rate_limiter
        self.trust_forwarded_headers = trust_forwarded_headers
        self.metrics = metrics
        self.logger = get_logger("gateway.rate_limit_middleware")

    def check_request(self, request: Request) -> Dict[str, Any]:
        """Admit the request or raise RateLimitedError."""
        client_id = self._get_client_id(request)
        result = self.rate_limiter.check_rate_limit(client_id)

        if not result["allowed"]:
            if self.metrics is not None:
                self.metrics.increment_counter("rate_limit_hits_total", endpoint=endpoint_label(request))
            raise RateLimitedError(
                "Too many requests, please try again later.",
                details={
                    "limit": result["limit"],
                    "current_count": result["current_count"],
                    "reset_in_seconds": result["reset_in_seconds"],
                },
                retry_after=result["reset_in_seconds"],
            )
        return result

    def _get_client_id(self, request: Request) -> str:
        """Extract the caller address, honoring proxy headers only when trusted."""
        if self.trust_forwarded_headers:
            forwarded_for = request.headers.get('X-Forwarded-For')
            if forwarded_for:
                return forwarded_for.split(',')[0].strip()

            real_ip = request.headers.get('X-Real-IP')
            if real_ip:
                return real_ip

        return request.client.host if request.client else 'unknown'
