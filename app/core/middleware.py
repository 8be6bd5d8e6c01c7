"""HTTP middleware: hardening headers, access logging and request body limits."""

import logging
import time
from datetime import datetime, timezone
from typing import List

from fastapi import Request
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from app.core.config import Settings
from app.core.errors import PayloadTooLargeError, error_response

access_logger = logging.getLogger("app.access")

SECURITY_HEADERS = {
    "Content-Security-Policy": (
        "default-src 'self';base-uri 'self';font-src 'self' https: data:;"
        "form-action 'self';frame-ancestors 'self';img-src 'self' data:;"
        "object-src 'none';script-src 'self';script-src-attr 'none';"
        "style-src 'self' https: 'unsafe-inline';upgrade-insecure-requests"
    ),
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "Origin-Agent-Cluster": "?1",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-DNS-Prefetch-Control": "off",
    "X-Download-Options": "noopen",
    "X-Frame-Options": "SAMEORIGIN",
    "X-Permitted-Cross-Domain-Policies": "none",
    "X-XSS-Protection": "0",
}


async def add_security_headers(request: Request, call_next):
    response = await call_next(request)
    for name, value in SECURITY_HEADERS.items():
        response.headers.setdefault(name, value)
    return response


def _request_target(request: Request) -> str:
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


async def log_requests(request: Request, call_next):
    """Log one access line per request: short dev format, or Apache combined in production."""
    settings: Settings = request.app.state.settings
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    length = response.headers.get("content-length", "-")

    if settings.is_production:
        client = request.client.host if request.client else "-"
        timestamp = datetime.now(timezone.utc).strftime("%d/%b/%Y:%H:%M:%S +0000")
        http_version = request.scope.get("http_version", "1.1")
        access_logger.info(
            f'{client} - - [{timestamp}] "{request.method} {_request_target(request)} HTTP/{http_version}" '
            f'{response.status_code} {length} "{request.headers.get("referer", "-")}" '
            f'"{request.headers.get("user-agent", "-")}"'
        )
    else:
        access_logger.info(
            f"{request.method} {_request_target(request)} {response.status_code} "
            f"{elapsed_ms:.3f} ms - {length}"
        )
    return response


class BodySizeLimitMiddleware:
    """
    Reject request bodies larger than ``max_body_size`` with a 413.

    The declared Content-Length is checked first. The body is then read in
    full and counted before the app runs, so chunked uploads are limited too;
    the buffered messages are replayed to the app unchanged.
    """

    def __init__(self, app: ASGIApp, max_body_size: int, settings: Settings):
        self.app = app
        self.max_body_size = max_body_size
        self.settings = settings

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = Headers(scope=scope).get("content-length")
        if content_length is not None and content_length.isdigit() and int(content_length) > self.max_body_size:
            await self._reject(scope, receive, send)
            return

        buffered: List[Message] = []
        received = 0
        more_body = True
        while more_body:
            message = await receive()
            buffered.append(message)
            if message["type"] != "http.request":
                break
            received += len(message.get("body", b""))
            if received > self.max_body_size:
                await self._reject(scope, receive, send)
                return
            more_body = message.get("more_body", False)

        async def replay() -> Message:
            if buffered:
                return buffered.pop(0)
            return await receive()

        await self.app(scope, replay, send)

    async def _reject(self, scope: Scope, receive: Receive, send: Send) -> None:
        response = error_response(PayloadTooLargeError(self.max_body_size), self.settings, scope.get("path", ""))
        await response(scope, receive, send)


class UnhandledErrorMiddleware:
    """Turn exceptions no handler caught into the structured 500, inside CORS and the header middleware."""

    def __init__(self, app: ASGIApp, settings: Settings):
        self.app = app
        self.settings = settings

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, tracking_send)
        except Exception as exc:
            if response_started:
                raise
            response = error_response(exc, self.settings, scope.get("path", ""))
            await response(scope, receive, send)
