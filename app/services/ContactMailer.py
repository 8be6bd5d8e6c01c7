"""SMTP client for relaying contact form submissions to the organization mailbox."""

import html
import logging
from email.message import EmailMessage
from email.utils import formataddr, make_msgid

import aiosmtplib

from app.core.config import Settings
from app.core.errors import MailTransportError
from app.schemas.contactmessageSchema import ContactMessageRequest

logger = logging.getLogger(__name__)


CONTACT_TEXT_TEMPLATE = """From: {name} <{email}>
Phone: {phone}

Message:
{message}"""

CONTACT_HTML_TEMPLATE = """
    <h2>New Contact Form Submission</h2>
    <p><strong>Name:</strong> {name}</p>
    <p><strong>Email:</strong> {email}</p>
    <p><strong>Phone:</strong> {phone}</p>
    <p><strong>Subject:</strong> {subject}</p>
    <p><strong>Message:</strong></p>
    <pre style="white-space:pre-wrap;font-family:inherit">{message}</pre>
"""


def _template_vars(submission: ContactMessageRequest, escape: bool = False) -> dict:
    values = {
        "name": submission.name,
        "email": submission.email,
        "phone": submission.phone or "N/A",
        "subject": submission.subject,
        "message": submission.message,
    }
    if escape:
        values = {key: html.escape(value) for key, value in values.items()}
    return values


def render_text_body(submission: ContactMessageRequest) -> str:
    return CONTACT_TEXT_TEMPLATE.format(**_template_vars(submission))


def render_html_body(submission: ContactMessageRequest) -> str:
    return CONTACT_HTML_TEMPLATE.format(**_template_vars(submission, escape=True))


class ContactMailer:
    """
    Sends contact form emails through one authenticated SMTP mailbox.

    The sender is always the authenticated mailbox so SPF/DMARC checks pass;
    the submitter is reachable through the Reply-To header.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.host = settings.MAIL_HOST
        self.port = settings.MAIL_PORT
        self.use_tls = settings.mail_use_tls
        self.username = settings.MAIL_USER
        self.password = settings.MAIL_PASS
        self.receiver = settings.MAIL_RECEIVER
        self.from_name = settings.MAIL_FROM_NAME
        self.timeout = settings.MAIL_TIMEOUT

        self.missing = settings.missing_mail_settings
        if self.missing:
            logger.error(f"❌ {', '.join(self.missing)} must be set.")

    @property
    def sender_domain(self) -> str:
        if "@" in self.username:
            return self.username.rsplit("@", 1)[1]
        return self.host

    def build_message(self, submission: ContactMessageRequest) -> EmailMessage:
        """Build the multipart email for a validated submission."""
        message = EmailMessage()
        message["From"] = formataddr((self.from_name, self.username))
        message["Reply-To"] = submission.email
        message["To"] = self.receiver
        # headers must stay on one line
        message["Subject"] = f"New Contact Form: {' '.join(submission.subject.split())}"
        message["Message-ID"] = make_msgid(domain=self.sender_domain)
        message.set_content(render_text_body(submission))
        message.add_alternative(render_html_body(submission), subtype="html")
        return message

    async def verify_connectivity(self) -> bool:
        """
        Open a connection, authenticate and disconnect.

        Returns:
            bool: Whether the server accepted the handshake. Failures are
            logged and never raised; sending may still work later.
        """
        try:
            async with aiosmtplib.SMTP(
                hostname=self.host,
                port=self.port,
                use_tls=self.use_tls,
                timeout=self.timeout,
            ) as smtp:
                if self.username and self.password:
                    await smtp.login(self.username, self.password)
            logger.info("📫 Mail transporter verified and ready.")
            return True
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.warning(f"⚠️  Mail transporter verification failed: {e}")
            return False

    async def send_email(self, submission: ContactMessageRequest) -> str:
        """
        Send one email for the submission.

        Args:
            submission: The validated contact form submission.

        Returns:
            str: The Message-ID assigned to the outgoing email.

        Raises:
            MailTransportError: If the mailbox is not configured or the SMTP
                server cannot be reached, refuses the login, or rejects the message.
        """
        if self.missing:
            raise MailTransportError(f"Mail transport is not configured: missing {', '.join(self.missing)}")

        message = self.build_message(submission)
        try:
            await aiosmtplib.send(
                message,
                hostname=self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                use_tls=self.use_tls,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            raise MailTransportError(str(e) or e.__class__.__name__) from e

        message_id = message["Message-ID"]
        logger.info(f"✅ [EMAIL] Contact message {message_id} sent to {self.receiver}")
        return message_id
