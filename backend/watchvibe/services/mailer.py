# watchvibe/services/mailer.py
"""
SMTP mailer for transactional email (verification links, OTP codes).

Sending is best effort: send_templated_email never raises. Failures are logged
and swallowed so a mail outage cannot fail registration or login.
"""
import logging
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import aiosmtplib

from watchvibe.services.mail_templates import MailContent, render

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MailConfig:
    """SMTP transport and branding settings, built once at startup."""
    smtp_host: Optional[str]
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    use_tls: bool = False
    start_tls: bool = True
    timeout: float = 30.0
    from_email: str = "no-reply@watchvibe.local"
    product_name: str = "WatchVibe"
    product_link: str = "http://localhost:2000"

    @classmethod
    def from_settings(cls, settings) -> "MailConfig":
        return cls(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_username=settings.smtp_username,
            smtp_password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
            start_tls=settings.smtp_start_tls,
            timeout=settings.smtp_timeout,
            from_email=settings.mail_from,
            product_name=settings.product_name,
            product_link=settings.product_link,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.smtp_host)


class Mailer:
    def __init__(self, config: MailConfig):
        self.config = config

    def build_message(self, to: str, subject: str, content: MailContent) -> MIMEMultipart:
        html, text = render(content, self.config.product_name, self.config.product_link)
        msg = MIMEMultipart("alternative")
        msg["From"] = f"{self.config.product_name} <{self.config.from_email}>"
        msg["To"] = to
        msg["Subject"] = subject
        # Plain part first so HTML-capable clients prefer the last (HTML) part
        msg.attach(MIMEText(text, "plain", "utf-8"))
        msg.attach(MIMEText(html, "html", "utf-8"))
        return msg

    async def send_templated_email(self, to: str, subject: str, content: MailContent) -> bool:
        """
        Render and send one email.

        Returns:
            True if the SMTP server accepted the message, False otherwise.
            Never raises.
        """
        if not self.config.enabled:
            logger.warning("[mail] SMTP_HOST not configured -> skip '%s' to %s", subject, to)
            return False
        try:
            message = self.build_message(to, subject, content)
            await self._send(message)
        except Exception:
            logger.exception("[mail] sending '%s' to %s failed; continuing without email", subject, to)
            return False
        logger.info("[mail] sent '%s' to %s", subject, to)
        return True

    async def _send(self, message: MIMEMultipart) -> None:
        smtp = aiosmtplib.SMTP(
            hostname=self.config.smtp_host,
            port=self.config.smtp_port,
            use_tls=self.config.use_tls,
            start_tls=self.config.start_tls and not self.config.use_tls,
            timeout=self.config.timeout,
        )
        await smtp.connect()
        try:
            if self.config.smtp_username and self.config.smtp_password:
                await smtp.login(self.config.smtp_username, self.config.smtp_password)
            await smtp.send_message(message)
        finally:
            try:
                await smtp.quit()
            except aiosmtplib.SMTPException as exc:
                logger.debug("[mail] quit failed: %s", exc)
