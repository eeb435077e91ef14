"""Email service for welcome messages sent to provisioned students."""

from dataclasses import dataclass
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Optional

import aiosmtplib
import structlog

from school_portal.config import Settings, get_settings

logger = structlog.get_logger(__name__)


@dataclass
class EmailResult:
    """Outcome of one send attempt."""

    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class EmailService:
    """SMTP transport for transactional email. Never raises on send failure."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    @property
    def login_url(self) -> str:
        return f"{self.settings.frontend_url.rstrip('/')}/login"

    def _build_message(self, to_email: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.settings.email_from
        message["To"] = to_email
        message["Subject"] = subject
        message["Message-ID"] = make_msgid(domain="school-portal")
        message.set_content(body)
        return message

    async def _send(self, message: EmailMessage) -> None:
        await aiosmtplib.send(
            message,
            hostname=self.settings.smtp_host,
            port=self.settings.smtp_port,
            username=self.settings.smtp_username or None,
            password=self.settings.smtp_password or None,
            use_tls=self.settings.smtp_use_tls,
        )

    async def send_welcome_email(
        self,
        to_email: str,
        first_name: str,
        last_name: str,
        temporary_password: str,
    ) -> EmailResult:
        """Send login details to a newly provisioned student.

        The temporary password appears only in the message body.

        Returns:
            EmailResult with the Message-ID on success or the error text
        """
        body = (
            f"Welcome {first_name} {last_name}!\n\n"
            f"Your account has been created.\n\n"
            f"Your login details:\n"
            f"- Email: {to_email}\n"
            f"- Temporary password: {temporary_password}\n\n"
            f"IMPORTANT: this password is temporary. You will be asked to "
            f"change it when you first sign in.\n\n"
            f"Sign in now: {self.login_url}\n"
        )
        message = self._build_message(
            to_email, "Welcome - your login details", body
        )

        try:
            await self._send(message)
        except Exception as e:
            logger.error("welcome_email_failed", to=to_email, error=str(e))
            return EmailResult(success=False, error=str(e) or type(e).__name__)

        logger.info(
            "welcome_email_sent",
            to=to_email,
            message_id=message["Message-ID"],
        )
        return EmailResult(success=True, message_id=message["Message-ID"])

    async def send_test_email(self, to_email: str) -> bool:
        """Send a short message to check the SMTP setup end to end."""
        sent_at = datetime.now(timezone.utc).isoformat()
        message = self._build_message(
            to_email,
            "Email configuration test",
            f"If you received this email, the configuration is correct.\n"
            f"Sent at: {sent_at}\n",
        )

        try:
            await self._send(message)
        except Exception as e:
            logger.error("test_email_failed", to=to_email, error=str(e))
            return False

        logger.info("test_email_sent", to=to_email)
        return True

    async def verify_configuration(self) -> bool:
        """Connect (and log in, if configured) to the SMTP server.

        Returns:
            True if the server accepted the connection
        """
        smtp = aiosmtplib.SMTP(
            hostname=self.settings.smtp_host,
            port=self.settings.smtp_port,
            use_tls=self.settings.smtp_use_tls,
        )

        try:
            await smtp.connect()
            if self.settings.smtp_username:
                await smtp.login(
                    self.settings.smtp_username, self.settings.smtp_password
                )
            await smtp.quit()
        except Exception as e:
            logger.error("smtp_configuration_invalid", error=str(e))
            return False

        logger.info("smtp_configuration_verified", host=self.settings.smtp_host)
        return True
