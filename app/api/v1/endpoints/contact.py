"""Contact form endpoint."""

import json

from fastapi import APIRouter, Depends, Request

from app.core.errors import MalformedBodyError
from app.schemas.contactmessageSchema import ContactErrorResponse, ContactMessageResponse
from app.services.ContactMailer import ContactMailer
from app.services.ContactSubmissionService import submit_contact_message

router = APIRouter(
    prefix="/api/contact",
    tags=["Contact"]
)


def get_mailer(request: Request) -> ContactMailer:
    return request.app.state.mailer


@router.post("/", response_model=ContactMessageResponse, include_in_schema=False)
@router.post(
    "",
    response_model=ContactMessageResponse,
    responses={
        400: {"model": ContactErrorResponse},
        413: {"model": ContactErrorResponse},
        429: {"model": ContactErrorResponse},
        500: {"model": ContactErrorResponse},
    },
)
async def send_contact_message(request: Request, mailer: ContactMailer = Depends(get_mailer)):
    """Validate a contact form submission and email it to the organization mailbox."""
    body = await request.body()
    # an empty body is treated as an empty form so every field is reported
    try:
        payload = json.loads(body) if body.strip() else {}
    except ValueError as exc:
        raise MalformedBodyError() from exc

    if not isinstance(payload, dict):
        raise MalformedBodyError("Request body must be a JSON object")

    return await submit_contact_message(payload, mailer, request.app.state.settings.PHONE_REGION)
