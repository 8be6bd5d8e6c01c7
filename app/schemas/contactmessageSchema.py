from typing import Dict, List, Optional
import phonenumbers
from pydantic import BaseModel, ConfigDict, EmailStr, ValidationInfo, field_validator

DEFAULT_PHONE_REGION = "KE"

FIELD_ERROR_MESSAGES: Dict[str, str] = {
    "name": "Name is required",
    "email": "Valid email is required",
    "phone": "Valid phone required",
    "subject": "Subject is required",
    "message": "Message is required",
}


class ContactMessageRequest(BaseModel):
    """Request schema for contact form submission."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    name: str
    email: EmailStr
    phone: Optional[str] = None
    subject: str
    message: str

    @field_validator("email", mode="before")
    @classmethod
    def bare_address_only(cls, value):
        # EmailStr would accept "Jane <jane@example.com>" and keep only the address
        if isinstance(value, str) and ("<" in value or ">" in value):
            raise ValueError("display names are not allowed")
        return value

    @field_validator("name", "subject", "message")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value:
            raise ValueError("must not be empty")
        return value

    @field_validator("phone")
    @classmethod
    def valid_phone(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        """Blank means no phone; anything else must parse as a real number."""
        if not value:
            return None
        region = (info.context or {}).get("phone_region", DEFAULT_PHONE_REGION)
        try:
            parsed = phonenumbers.parse(value, region)
        except phonenumbers.NumberParseException as exc:
            raise ValueError("not a phone number") from exc
        if not phonenumbers.is_valid_number(parsed):
            raise ValueError("not a valid phone number")
        return value


class FieldError(BaseModel):
    field: str
    message: str


class ContactMessageResponse(BaseModel):
    """Response schema for contact form submission."""
    success: bool = True
    id: str
    message: str = "Message sent successfully."


class ContactErrorResponse(BaseModel):
    success: bool = False
    errors: Optional[List[FieldError]] = None
    error: Optional[str] = None
