"""
app/services/email_service.py

Purpose: Transactional email over SMTP

- Sends plain-text messages (password recovery)
- Runs the blocking SMTP session in the threadpool
- Raises EmailDeliveryError with the transport's message on failure
"""

from email.mime.text import MIMEText
import smtplib
import ssl

from fastapi.concurrency import run_in_threadpool

from app.core.config import Settings
from app.core.exceptions import EmailDeliveryError
from app.core.logging import get_logger

logger = get_logger(__name__)


class EmailService:
    """SMTP mail sender configured from Settings"""

    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT or 465
        self.user = settings.SMTP_USER
        self.password = settings.SMTP_PASSWORD
        self.sender = settings.SMTP_FROM

    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.password and self.sender)

    def _deliver(self, to_email: str, subject: str, body: str) -> None:
        msg = MIMEText(body, "plain", "utf-8")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to_email

        context = ssl.create_default_context()
        if self.port == 465:
            with smtplib.SMTP_SSL(self.host, self.port, context=context) as server:
                server.login(self.user, self.password)
                server.sendmail(self.sender, [to_email], msg.as_string())
        else:
            with smtplib.SMTP(self.host, self.port) as server:
                server.ehlo()
                server.starttls(context=context)
                server.login(self.user, self.password)
                server.sendmail(self.sender, [to_email], msg.as_string())

    async def send(self, to_email: str, subject: str, body: str) -> None:
        """
        Sends an email.

        Raises:
            EmailDeliveryError: Not configured or the SMTP exchange failed
        """
        if not self.is_configured():
            raise EmailDeliveryError("Email service is not configured")

        try:
            await run_in_threadpool(self._deliver, to_email, subject, body)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"Failed to send email: {exc}", extra={"email": to_email})
            raise EmailDeliveryError(str(exc) or "Email could not be sent") from exc

        logger.info(f"Email sent: {subject}", extra={"email": to_email})
