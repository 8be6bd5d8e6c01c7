import logging
from functools import lru_cache
from typing import List, Optional
from pydantic import Field, computed_field
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(".env")
logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Class to store all the settings of the contact relay application."""

    # ------------------------------
    # Mail - Required for sending
    # ------------------------------
    MAIL_USER: str = Field(default="")
    MAIL_PASS: str = Field(default="")
    MAIL_RECEIVER: str = Field(default="")

    # ------------------------------
    # Mail transport - Optional with defaults
    # ------------------------------
    MAIL_HOST: str = Field(default="mail.helbsacco.co.ke")
    MAIL_PORT: int = Field(default=465)
    MAIL_SECURE: Optional[bool] = Field(default=None)
    MAIL_TIMEOUT: float = Field(default=30.0)
    MAIL_FROM_NAME: str = Field(default="HELB SACCO Website")

    # ------------------------------
    # Server
    # ------------------------------
    PORT: int = Field(default=5000)
    CLIENT_URL: str = Field(default="https://helbsacco.co.ke")
    FORWARDED_ALLOW_IPS: str = Field(default="127.0.0.1")
    ORGANIZATION_NAME: str = Field(default="HELB SACCO")

    # ------------------------------
    # Environment
    # ------------------------------
    ENVIRONMENT: str = Field(default="development")

    # ------------------------------
    # Request limits
    # ------------------------------
    RATE_LIMIT: str = Field(default="100/15 minutes")
    MAX_BODY_SIZE: int = Field(default=100 * 1024)
    GZIP_MINIMUM_SIZE: int = Field(default=1024)
    PHONE_REGION: str = Field(default="KE")

    # ------------------------------
    # Computed Fields
    # ------------------------------
    @computed_field
    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @computed_field
    @property
    def mail_use_tls(self) -> bool:
        """Implicit TLS unless MAIL_SECURE says otherwise; port 465 is SMTPS."""
        if self.MAIL_SECURE is not None:
            return self.MAIL_SECURE
        return self.MAIL_PORT == 465

    @property
    def missing_mail_settings(self) -> List[str]:
        """Names of the mail settings that must be set before email can be sent."""
        return [
            name
            for name in ("MAIL_USER", "MAIL_PASS", "MAIL_RECEIVER")
            if not getattr(self, name)
        ]

    class Config:
        """Configuration for the settings class."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    return Settings()
