"""Per-client-address rate limiting."""

import time

from limits import parse
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.datastructures import MutableHeaders
from starlette.requests import Request
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.config import Settings
from app.core.errors import RateLimitError, error_response

RATE_LIMIT_SCOPE = "global"


def create_limiter(settings: Settings) -> Limiter:
    """
    Build the limiter shared by every route.

    Counters are keyed by client address and held in process memory. The
    moving-window strategy keeps one timestamp per hit and drops hits older
    than the window, so the limit is a true sliding window rather than fixed
    buckets.
    """
    return Limiter(
        key_func=get_remote_address,
        strategy="moving-window",
        storage_uri="memory://",
    )


class RateLimitMiddleware:
    """
    Count every HTTP request against ``RATE_LIMIT`` for its client address.

    Matched and unmatched paths share one counter per address. Responses carry
    X-RateLimit-* headers; requests over the limit get a 429 without reaching
    the router.
    """

    def __init__(self, app: ASGIApp, limiter: Limiter, settings: Settings):
        self.app = app
        self.limiter = limiter
        self.settings = settings
        self.rate = parse(settings.RATE_LIMIT)

    def _headers(self, key: str, allowed: bool) -> dict:
        reset_time, remaining = self.limiter.limiter.get_window_stats(self.rate, RATE_LIMIT_SCOPE, key)
        headers = {
            "X-RateLimit-Limit": str(self.rate.amount),
            "X-RateLimit-Remaining": str(max(remaining, 0)),
            "X-RateLimit-Reset": str(int(reset_time)),
        }
        if not allowed:
            headers["Retry-After"] = str(max(int(reset_time - time.time()), 0) + 1)
        return headers

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or not self.limiter.enabled:
            await self.app(scope, receive, send)
            return

        key = get_remote_address(Request(scope))
        allowed = self.limiter.limiter.hit(self.rate, RATE_LIMIT_SCOPE, key)
        headers = self._headers(key, allowed)

        if not allowed:
            response = error_response(RateLimitError(str(self.rate)), self.settings, scope.get("path", ""))
            response.headers.update(headers)
            await response(scope, receive, send)
            return

        async def send_with_headers(message: Message) -> None:
            if message["type"] == "http.response.start":
                MutableHeaders(scope=message).update(headers)
            await send(message)

        await self.app(scope, receive, send_with_headers)
