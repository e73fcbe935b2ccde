"""
Rate limiting for API endpoints
"""
import time
from collections import deque
from typing import Deque, Dict, Tuple
import logging

from fastapi import Request

from campaign_quiz.config import settings
from campaign_quiz.errors import ServiceError

logger = logging.getLogger(__name__)


class RateLimited(ServiceError):
    code = "resource-exhausted"
    status_code = 429

    def __init__(self, message: str, retry_after: int):
        super().__init__(message)
        self.retry_after = retry_after


class RateLimiter:
    """
    In-memory sliding-window rate limiter, per process

    Clients are keyed by IP address. Bearer tokens are not verified at this
    layer, so they cannot pick the key.
    """

    def __init__(self, requests_per_minute: int = 60, requests_per_hour: int = 1000):
        self.windows: Tuple[Tuple[int, int], ...] = (
            (60, requests_per_minute),
            (3600, requests_per_hour),
        )
        self.history: Dict[str, Deque[float]] = {}

    def _get_client_id(self, request: Request) -> str:
        """Extract client identifier from request"""
        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    def _cleanup_old_entries(self, now: float) -> None:
        """Drop timestamps outside the widest window and forget idle clients"""
        cutoff = now - max(window for window, _ in self.windows)

        for client_id in list(self.history.keys()):
            timestamps = self.history[client_id]
            while timestamps and timestamps[0] <= cutoff:
                timestamps.popleft()

            # Remove empty entries
            if not timestamps:
                del self.history[client_id]

    async def check_rate_limit(self, request: Request) -> None:
        """
        Record the request and raise if any window is exhausted

        Raises:
            RateLimited: 429 if rate limit exceeded
        """
        client_id = self._get_client_id(request)
        now = time.monotonic()

        self._cleanup_old_entries(now)
        timestamps = self.history.get(client_id, deque())

        for window, limit in self.windows:
            in_window = sum(1 for ts in timestamps if ts > now - window)
            if in_window >= limit:
                logger.warning(f"Rate limit exceeded ({window}s window): {client_id}")
                raise RateLimited(
                    f"Too many requests. Limit: {limit} requests per {window} seconds",
                    retry_after=window,
                )

        timestamps.append(now)
        self.history[client_id] = timestamps


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR
)
