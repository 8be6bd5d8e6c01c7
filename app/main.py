#run it with uvicorn app.main:app --reload  or  contact-relay
import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from slowapi import Limiter
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.endpoints.contact import router as contact_router
from app.core.config import Settings, get_settings
from app.core.errors import ContactAPIError, RouteNotFoundError, error_response
from app.core.middleware import (
    BodySizeLimitMiddleware,
    UnhandledErrorMiddleware,
    add_security_headers,
    log_requests,
)
from app.core.ratelimit import RateLimitMiddleware, create_limiter
from app.services.ContactMailer import ContactMailer

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Log startup and check the mail server once without holding up requests."""
    settings: Settings = app.state.settings
    logger.info(f"🚀 Server listening on port {settings.PORT} ({settings.ENVIRONMENT})")
    verify_task = asyncio.create_task(app.state.mailer.verify_connectivity())
    try:
        yield
    finally:
        if not verify_task.done():
            verify_task.cancel()
            try:
                await verify_task
            except asyncio.CancelledError:
                logger.info("⏹️ Mail verification cancelled")
        logger.info("👋 Application shutdown complete")


def create_app(
    settings: Optional[Settings] = None,
    mailer: Optional[ContactMailer] = None,
    limiter: Optional[Limiter] = None,
) -> FastAPI:
    """
    Build the contact relay application.

    Args:
        settings: Configuration; read from the environment when omitted.
        mailer: Mail transport; built from ``settings`` when omitted.
        limiter: Rate limiter; a fresh in-memory one when omitted.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=f"{settings.ORGANIZATION_NAME} Contact API",
        description="Relays website contact form submissions to the organization mailbox",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.mailer = mailer or ContactMailer(settings)
    app.state.limiter = limiter or create_limiter(settings)
    app.state.started_at = time.monotonic()

    @app.exception_handler(ContactAPIError)
    async def contact_api_error_handler(request: Request, exc: ContactAPIError):
        return error_response(exc, settings, request.url.path)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # A known path with the wrong method is as unmatched as an unknown path.
        if exc.status_code in (404, 405):
            target = request.url.path + (f"?{request.url.query}" if request.url.query else "")
            return error_response(RouteNotFoundError(target), settings, request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    # Innermost first: each add_middleware call wraps the ones before it.
    # GZip stays inside the two function middlewares, which stream their responses.
    app.add_middleware(RateLimitMiddleware, limiter=app.state.limiter, settings=settings)
    app.add_middleware(BodySizeLimitMiddleware, max_body_size=settings.MAX_BODY_SIZE, settings=settings)
    app.add_middleware(UnhandledErrorMiddleware, settings=settings)
    app.add_middleware(GZipMiddleware, minimum_size=settings.GZIP_MINIMUM_SIZE)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.CLIENT_URL],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    app.middleware("http")(log_requests)
    app.middleware("http")(add_security_headers)

    @app.get("/health", tags=["Health Check"])
    async def health_check(request: Request):
        return {"ok": True, "uptime": time.monotonic() - request.app.state.started_at}

    @app.get("/", tags=["Health Check"], response_class=PlainTextResponse)
    async def root():
        return f"✅ {settings.ORGANIZATION_NAME} Backend is running..."

    app.include_router(contact_router)

    return app


def run():
    """Console entry point: serve on PORT behind a trusted proxy."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host="0.0.0.0",
        port=settings.PORT,
        proxy_headers=True,
        forwarded_allow_ips=settings.FORWARDED_ALLOW_IPS,
        server_header=False,
    )


app = create_app()
