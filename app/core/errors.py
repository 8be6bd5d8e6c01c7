"""Error kinds raised by the contact relay and the single mapping from error kind to HTTP response."""

import logging
from typing import Dict, List, Optional

from fastapi.responses import JSONResponse

from app.core.config import Settings

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Too many requests, please try again later."
GENERIC_SERVER_ERROR = "Server error"


class ContactAPIError(Exception):
    """Base class for errors that map to a structured JSON response."""

    status_code = 500

    def __init__(self, message: str = GENERIC_SERVER_ERROR):
        super().__init__(message)
        self.message = message

    def to_content(self, settings: Settings) -> dict:
        return {"success": False, "error": self.message}


class SubmissionValidationError(ContactAPIError):
    """One or more submission fields failed validation."""

    status_code = 400

    def __init__(self, errors: List[Dict[str, str]]):
        super().__init__("Invalid contact submission")
        self.errors = errors

    def to_content(self, settings: Settings) -> dict:
        return {"success": False, "errors": self.errors}


class MalformedBodyError(ContactAPIError):
    status_code = 400

    def __init__(self, message: str = "Malformed JSON body"):
        super().__init__(message)


class RouteNotFoundError(ContactAPIError):
    status_code = 404

    def __init__(self, path: str):
        super().__init__(f"Not Found - {path}")


class PayloadTooLargeError(ContactAPIError):
    status_code = 413

    def __init__(self, limit: Optional[int] = None):
        super().__init__("Request entity too large")
        self.limit = limit


class RateLimitError(ContactAPIError):
    """The client address used up its requests for the current window."""

    status_code = 429

    def __init__(self, limit: str = ""):
        super().__init__(RATE_LIMIT_MESSAGE)
        self.limit = limit


class MailTransportError(ContactAPIError):
    """The mail server could not be reached, refused the login, or rejected the message."""

    status_code = 500

    def to_content(self, settings: Settings) -> dict:
        detail = GENERIC_SERVER_ERROR if settings.is_production else (self.message or GENERIC_SERVER_ERROR)
        return {"success": False, "error": detail}


def error_response(exc: Exception, settings: Settings, path: str = "") -> JSONResponse:
    """
    Map any error reaching the HTTP edge to its status code and JSON body.

    Client errors (validation, malformed body, not found, too large, rate limit)
    are returned with their detail. Everything else is a 500 whose message is
    hidden in production.
    """
    if isinstance(exc, RateLimitError):
        logger.info(f"Rate limit {exc.limit} hit on {path}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_content(settings))

    if isinstance(exc, ContactAPIError):
        if exc.status_code >= 500:
            logger.error(f"❌ Error on {path}: {exc.message}", exc_info=exc)
        else:
            logger.warning(f"{exc.status_code} on {path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_content(settings))

    logger.error(f"❌ Unhandled error on {path}: {exc}", exc_info=exc)
    detail = GENERIC_SERVER_ERROR if settings.is_production else (str(exc) or GENERIC_SERVER_ERROR)
    return JSONResponse(status_code=500, content={"success": False, "error": detail})
