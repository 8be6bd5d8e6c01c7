"""Validation and dispatch of contact form submissions."""

from typing import Any, Dict, List

from pydantic import ValidationError

from app.core.errors import SubmissionValidationError
from app.schemas.contactmessageSchema import (
    DEFAULT_PHONE_REGION,
    FIELD_ERROR_MESSAGES,
    ContactMessageRequest,
)
from app.services.ContactMailer import ContactMailer

SUCCESS_MESSAGE = "Message sent successfully."


def _field_errors(exc: ValidationError) -> List[Dict[str, str]]:
    """Collapse pydantic errors into one {field, message} entry per failing field."""
    errors: List[Dict[str, str]] = []
    seen = set()
    for error in exc.errors():
        field = str(error["loc"][0]) if error["loc"] else "body"
        if field in seen:
            continue
        seen.add(field)
        errors.append({
            "field": field,
            "message": FIELD_ERROR_MESSAGES.get(field, error["msg"]),
        })
    return errors


def validate_submission(payload: Any, phone_region: str = DEFAULT_PHONE_REGION) -> ContactMessageRequest:
    """
    Check every field of a raw submission before anything is sent.

    Raises:
        SubmissionValidationError: Listing each invalid or missing field.
    """
    try:
        return ContactMessageRequest.model_validate(payload, context={"phone_region": phone_region})
    except ValidationError as exc:
        raise SubmissionValidationError(_field_errors(exc)) from exc


async def submit_contact_message(
    payload: Any,
    mailer: ContactMailer,
    phone_region: str = DEFAULT_PHONE_REGION,
) -> Dict[str, Any]:
    """Validate the payload and relay it as exactly one email."""
    submission = validate_submission(payload, phone_region)
    message_id = await mailer.send_email(submission)
    return {"success": True, "id": message_id, "message": SUCCESS_MESSAGE}
