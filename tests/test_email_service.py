"""
Tests for the SMTP email service.
"""

import smtplib
from email import message_from_string
from unittest.mock import MagicMock, patch

import pytest

from workspace_gateway.services.email_service import (
    EmailService,
    get_email_service,
    render_html_body,
    render_text_body,
)
from workspace_gateway.utils.config_loader import SmtpConfig
from workspace_gateway.utils.exceptions import ConfigurationError, EmailDeliveryError


def test_render_text_body():
    assert render_text_body("Hello", "Shreyas") == "Hello\n\nBest regards,\nShreyas"


def test_render_html_body_converts_newlines():
    rendered = render_html_body("Line one\nLine two", "Shreyas")
    assert "Line one<br>Line two" in rendered
    assert "<strong>Shreyas</strong>" in rendered
    assert "Best regards,<br>" in rendered


def test_render_html_body_escapes_markup():
    rendered = render_html_body("<script>alert(1)</script>", "A & B")
    assert "<script>" not in rendered
    assert "&lt;script&gt;" in rendered
    assert "<strong>A &amp; B</strong>" in rendered


def test_sender_name_defaults(smtp_env, monkeypatch):
    monkeypatch.delenv("MAIL_SENDER_NAME")
    assert SmtpConfig.from_env().sender_name == "Shreyas"


class TestSendEmail:
    """EmailService.send_email against a fake SMTP session."""

    def test_sends_multipart_message(self, smtp_env, smtp_server):
        service = EmailService(smtp_env.smtp)

        result = service.send_email("friend@example.com", "Greetings", "Hi\nthere")

        smtp_server.smtp_cls.assert_called_once_with("smtp.example.com", 587, timeout=30.0)
        smtp_server.starttls.assert_called_once()
        smtp_server.login.assert_called_once_with("sender@example.com", "app-password")
        smtp_server.noop.assert_called_once()

        from_addr, to_addrs, raw = smtp_server.sendmail.call_args.args
        assert from_addr == "sender@example.com"
        assert to_addrs == ["friend@example.com"]

        message = message_from_string(raw)
        assert message["From"] == "Test Sender <sender@example.com>"
        assert message["To"] == "friend@example.com"
        assert message["Subject"] == "Greetings"
        assert message.get_content_type() == "multipart/alternative"

        text_part, html_part = message.get_payload()
        assert text_part.get_payload(decode=True).decode() == "Hi\nthere\n\nBest regards,\nTest Sender"
        assert "Hi<br>there" in html_part.get_payload(decode=True).decode()

        assert result["messageId"] == message["Message-ID"]
        assert result["messageId"].endswith("@example.com>")
        assert result["accepted"] == ["friend@example.com"]
        assert result["rejected"] == []

    def test_skips_starttls_when_not_offered(self, smtp_env, smtp_server):
        smtp_server.has_extn.return_value = False

        EmailService(smtp_env.smtp).send_email("friend@example.com", "S", "B")

        smtp_server.starttls.assert_not_called()
        smtp_server.login.assert_called_once()

    def test_refused_recipient(self, smtp_env, smtp_server):
        smtp_server.sendmail.return_value = {"friend@example.com": (550, b"No such user")}

        result = EmailService(smtp_env.smtp).send_email("friend@example.com", "S", "B")

        assert result["accepted"] == []
        assert result["rejected"] == ["friend@example.com"]

    def test_implicit_tls_port(self, smtp_env, monkeypatch):
        monkeypatch.setenv("SMTP_PORT", "465")
        config = SmtpConfig.from_env()

        with patch("workspace_gateway.services.email_service.smtplib.SMTP_SSL") as smtp_ssl:
            server = MagicMock()
            server.__enter__.return_value = server
            server.has_extn.return_value = False
            server.noop.return_value = (250, b"OK")
            server.sendmail.return_value = {}
            smtp_ssl.return_value = server

            EmailService(config).send_email("friend@example.com", "S", "B")

        smtp_ssl.assert_called_once_with("smtp.example.com", 465, timeout=30.0)
        server.sendmail.assert_called_once()

    def test_incomplete_config(self, smtp_server):
        service = EmailService(SmtpConfig(SMTP_HOST="smtp.example.com"))

        with pytest.raises(ConfigurationError) as exc_info:
            service.send_email("friend@example.com", "S", "B")

        assert exc_info.value.message == (
            "SMTP configuration is incomplete. Please check your environment variables."
        )
        smtp_server.smtp_cls.assert_not_called()

    def test_embedded_header_in_subject(self, smtp_env, smtp_server):
        """A subject that would inject a header fails before any SMTP session."""
        with pytest.raises(EmailDeliveryError) as exc_info:
            EmailService(smtp_env.smtp).send_email(
                "friend@example.com", "Hello\nBcc: victim@example.com", "B"
            )

        assert exc_info.value.message.startswith("Failed to send email:")
        smtp_server.smtp_cls.assert_not_called()

    def test_login_failure(self, smtp_env, smtp_server):
        smtp_server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"Bad credentials")

        with pytest.raises(EmailDeliveryError) as exc_info:
            EmailService(smtp_env.smtp).send_email("friend@example.com", "S", "B")

        assert exc_info.value.message.startswith("Failed to send email:")
        smtp_server.close.assert_called_once()
        smtp_server.sendmail.assert_not_called()

    def test_verification_failure(self, smtp_env, smtp_server):
        smtp_server.noop.return_value = (421, b"Service not available")

        with pytest.raises(EmailDeliveryError):
            EmailService(smtp_env.smtp).send_email("friend@example.com", "S", "B")

        smtp_server.sendmail.assert_not_called()

    def test_connection_refused(self, smtp_env, smtp_server):
        smtp_server.smtp_cls.side_effect = ConnectionRefusedError("Connection refused")

        with pytest.raises(EmailDeliveryError):
            EmailService(smtp_env.smtp).send_email("friend@example.com", "S", "B")


class TestConnectionCheck:
    """EmailService.test_connection."""

    def test_success(self, smtp_env, smtp_server):
        assert EmailService(smtp_env.smtp).test_connection() is True
        smtp_server.sendmail.assert_not_called()

    def test_failure(self, smtp_env, smtp_server):
        smtp_server.login.side_effect = smtplib.SMTPAuthenticationError(535, b"Bad credentials")

        with pytest.raises(EmailDeliveryError) as exc_info:
            EmailService(smtp_env.smtp).test_connection()

        assert exc_info.value.message.startswith("SMTP connection failed:")


def test_get_email_service_uses_global_config(smtp_env):
    service = get_email_service()
    assert service.config.host == "smtp.example.com"
    assert get_email_service() is service
