"""
Per-route rate limiting on top of the ``limits`` library.

Each sensitive route gets its own RateLimiter with an independent attempt
budget, keyed by client address. The moving-window strategy gives an exact
"N attempts per window" guarantee, and ``hit`` is an atomic
increment-and-check inside the storage backend.
"""

import logging
import math
import time
from dataclasses import dataclass

from fastapi import Request
from limits import RateLimitItem, parse
from limits.aio.storage import Storage
from limits.aio.strategies import MovingWindowRateLimiter
from limits.storage import storage_from_string

from storefront.core.config import Settings

logger = logging.getLogger(__name__)

ROUTE_LOGIN = "login"
ROUTE_REGISTER = "register"
ROUTE_FORGOT_PASSWORD = "forgot_password"
ROUTE_RESET_PASSWORD = "reset_password"
ROUTE_RESEND_VERIFICATION = "resend_verification"


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    retry_after: int = 0


def client_key_from_request(request: Request) -> str:
    """
    Derive the rate-limit key for a request.

    Uses the first address of X-Forwarded-For when present (the original
    client behind a proxy), otherwise the direct peer address.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class RateLimiter:
    """
    Attempt budget for a single route.

    Args:
        route_key: Namespace for this route's counters
        limit: Limit in ``limits`` notation, e.g. "5/15minute"
        storage: Async ``limits`` storage; a private in-memory one by default
        enabled: When False every check is allowed
    """

    def __init__(
        self,
        route_key: str,
        limit: str | RateLimitItem,
        storage: Storage | None = None,
        enabled: bool = True,
    ):
        self.route_key = route_key
        self.limit = parse(limit) if isinstance(limit, str) else limit
        self.storage = storage or storage_from_string("async+memory://")
        self.strategy = MovingWindowRateLimiter(self.storage)
        self.enabled = enabled

    async def check(self, client_key: str) -> RateLimitResult:
        """
        Count an attempt and report whether it is within budget.

        Rejected attempts are not counted against the window.
        """
        if not self.enabled:
            return RateLimitResult(allowed=True)

        if await self.strategy.hit(self.limit, self.route_key, client_key):
            return RateLimitResult(allowed=True)

        stats = await self.strategy.get_window_stats(self.limit, self.route_key, client_key)
        retry_after = max(1, math.ceil(stats.reset_time - time.time()))
        logger.warning(
            f"Rate limit hit: route={self.route_key} client={client_key} "
            f"limit={self.limit} retry_after={retry_after}s"
        )
        return RateLimitResult(allowed=False, retry_after=retry_after)


class RateLimiterRegistry:
    """Holds the limiter of every rate-limited route, sharing one storage backend."""

    def __init__(self, limiters: dict[str, RateLimiter]):
        self._limiters = limiters

    @classmethod
    def from_settings(cls, settings: Settings) -> "RateLimiterRegistry":
        storage = storage_from_string(settings.rate_limit_storage_uri)
        routes = {
            ROUTE_LOGIN: settings.rate_limit_login,
            ROUTE_REGISTER: settings.rate_limit_register,
            ROUTE_FORGOT_PASSWORD: settings.rate_limit_forgot_password,
            ROUTE_RESET_PASSWORD: settings.rate_limit_reset_password,
            ROUTE_RESEND_VERIFICATION: settings.rate_limit_resend_verification,
        }
        return cls(
            {
                route: RateLimiter(
                    route,
                    limit,
                    storage=storage,
                    enabled=settings.rate_limit_enabled,
                )
                for route, limit in routes.items()
            }
        )

    def get(self, route_key: str) -> RateLimiter:
        return self._limiters[route_key]
