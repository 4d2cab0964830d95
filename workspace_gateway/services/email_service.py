"""
SMTP email service.
Renders the fixed HTML/text template, verifies the SMTP session and sends.
"""

import html
import logging
import smtplib
from email.errors import MessageError
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid, formatdate
from typing import Any, Dict, Optional

from workspace_gateway.utils.config_loader import SmtpConfig
from workspace_gateway.utils.exceptions import ConfigurationError, EmailDeliveryError

logger = logging.getLogger(__name__)

IMPLICIT_TLS_PORT = 465

HTML_TEMPLATE = """
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background-color: #f8f9fa; padding: 20px; border-radius: 8px;">
    {body}
  </div>
  <div style="margin-top: 20px; padding: 15px; border-top: 1px solid #dee2e6;">
    <p style="margin: 0; color: #6c757d; font-size: 14px;">
      Best regards,<br>
      <strong>{sender_name}</strong>
    </p>
  </div>
</div>
"""

TEXT_TEMPLATE = "{body}\n\nBest regards,\n{sender_name}"


def render_html_body(body: str, sender_name: str) -> str:
    """Render the HTML part; newlines in the body become <br>."""
    escaped = html.escape(body).replace("\n", "<br>")
    return HTML_TEMPLATE.format(body=escaped, sender_name=html.escape(sender_name))


def render_text_body(body: str, sender_name: str) -> str:
    """Render the plain-text part."""
    return TEXT_TEMPLATE.format(body=body, sender_name=sender_name)


class EmailService:
    """Sends templated emails through the configured SMTP server."""

    def __init__(self, config: SmtpConfig):
        """
        Initialize email service.

        Args:
            config: SMTP configuration
        """
        self.config = config
        logger.info(
            "SMTP configuration loaded",
            extra={"extra_data": {
                "smtp_host": config.host or "NOT SET",
                "smtp_port": config.port,
                "smtp_user": config.user or "NOT SET",
                "smtp_pass": "***SET***" if config.password else "NOT SET",
            }}
        )

    def _connect(self) -> smtplib.SMTP:
        """Open an authenticated SMTP session."""
        if self.config.port == IMPLICIT_TLS_PORT:
            server = smtplib.SMTP_SSL(self.config.host, self.config.port, timeout=self.config.timeout)
        else:
            server = smtplib.SMTP(self.config.host, self.config.port, timeout=self.config.timeout)

        try:
            server.ehlo()
            if server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
            server.login(self.config.user, self.config.password)
        except Exception:
            server.close()
            raise
        return server

    def _verify(self, server: smtplib.SMTP) -> None:
        code, response = server.noop()
        if code != 250:
            raise smtplib.SMTPResponseException(code, response)

    def build_message(self, to: str, subject: str, body: str) -> MIMEMultipart:
        """Build the multipart/alternative message from the template."""
        sender_name = self.config.sender_name
        domain = self.config.user.rpartition("@")[2] or None

        message = MIMEMultipart("alternative")
        message["From"] = formataddr((sender_name, self.config.user))
        message["To"] = to
        message["Subject"] = subject
        message["Date"] = formatdate(localtime=True)
        message["Message-ID"] = make_msgid(domain=domain)

        message.attach(MIMEText(render_text_body(body, sender_name), "plain", "utf-8"))
        message.attach(MIMEText(render_html_body(body, sender_name), "html", "utf-8"))
        return message

    def send_email(
        self,
        to: str,
        subject: str,
        body: str,
        request_id: str = "unknown"
    ) -> Dict[str, Any]:
        """
        Send an email.

        Args:
            to: Recipient address
            subject: Subject line
            body: Plain-text body
            request_id: Request identifier for logging

        Returns:
            Dict with messageId, accepted and rejected recipients

        Raises:
            ConfigurationError: If SMTP settings are incomplete
            EmailDeliveryError: If the SMTP session or delivery fails
        """
        log_extra = {"extra_data": {"request_id": request_id}}
        logger.info(f"EmailService: Starting email send process, subject: {subject}", extra=log_extra)

        if not self.config.is_complete():
            logger.error("EmailService: SMTP configuration incomplete", extra=log_extra)
            raise ConfigurationError(
                "SMTP configuration is incomplete. Please check your environment variables.",
                config_key="SMTP_HOST"
            )

        try:
            message = self.build_message(to, subject, body)
            raw_message = message.as_string()
        except MessageError as e:
            logger.error(f"EmailService: Could not build message: {e}", extra=log_extra)
            raise EmailDeliveryError(f"Failed to send email: {e}") from e

        try:
            logger.info("EmailService: Verifying SMTP connection...", extra=log_extra)
            with self._connect() as server:
                self._verify(server)
                logger.info("EmailService: SMTP connection verified successfully", extra=log_extra)

                refused = server.sendmail(self.config.user, [to], raw_message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"EmailService: Error sending email: {e}", extra=log_extra)
            raise EmailDeliveryError(f"Failed to send email: {e}") from e

        result = {
            "messageId": message["Message-ID"],
            "accepted": [address for address in [to] if address not in refused],
            "rejected": list(refused),
        }
        logger.info(f"EmailService: Email sent successfully - MessageID: {result['messageId']}", extra=log_extra)
        return result

    def test_connection(self, request_id: str = "unknown") -> bool:
        """
        Verify that an authenticated SMTP session can be opened.

        Raises:
            ConfigurationError: If SMTP settings are incomplete
            EmailDeliveryError: If the connection or login fails
        """
        log_extra = {"extra_data": {"request_id": request_id}}
        logger.info("EmailService: Testing SMTP connection...", extra=log_extra)

        if not self.config.is_complete():
            raise ConfigurationError(
                "SMTP configuration is incomplete. Please check your environment variables.",
                config_key="SMTP_HOST"
            )

        try:
            with self._connect() as server:
                self._verify(server)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"EmailService: SMTP connection failed: {e}", extra=log_extra)
            raise EmailDeliveryError(f"SMTP connection failed: {e}") from e

        logger.info("EmailService: SMTP connection verified successfully", extra=log_extra)
        return True


# Global email service instance
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """
    Get the global email service, built from the current configuration.

    Returns:
        EmailService instance
    """
    global _email_service

    if _email_service is None:
        from workspace_gateway.utils.config_loader import get_config
        _email_service = EmailService(get_config().smtp)

    return _email_service


def reset_email_service() -> None:
    """Drop the cached service so the next call picks up new configuration."""
    global _email_service
    _email_service = None
