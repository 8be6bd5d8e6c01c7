import pytest
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.main import create_app
from app.services.ContactMailer import ContactMailer


VALID_SUBMISSION = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "phone": "+254712345678",
    "subject": "Loan query",
    "message": "Hello",
}


class RecordingMailer(ContactMailer):
    """ContactMailer that builds real messages but keeps them instead of sending."""

    def __init__(self, settings: Settings):
        super().__init__(settings)
        self.sent = []
        self.fail_with = None
        self.verified = False

    async def verify_connectivity(self) -> bool:
        self.verified = True
        return True

    async def send_email(self, submission) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        message = self.build_message(submission)
        self.sent.append(message)
        return message["Message-ID"]


def make_settings(**overrides) -> Settings:
    values = {
        "MAIL_USER": "info@helbsacco.co.ke",
        "MAIL_PASS": "mailbox-password",
        "MAIL_RECEIVER": "memberservices@helbsacco.co.ke",
        "MAIL_HOST": "mail.helbsacco.co.ke",
        "MAIL_PORT": 465,
        "CLIENT_URL": "https://helbsacco.co.ke",
        "ENVIRONMENT": "development",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def mailer(settings):
    return RecordingMailer(settings)


@pytest.fixture
def app(settings, mailer):
    return create_app(settings=settings, mailer=mailer)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def valid_submission():
    return dict(VALID_SUBMISSION)
