"""
Pytest configuration and fixtures for testing.
"""

from unittest.mock import MagicMock, patch

import pytest

from workspace_gateway.services.email_service import reset_email_service
from workspace_gateway.utils.config_loader import reload_config


GATEWAY_ENV_VARS = [
    "SMTP_HOST", "SMTP_PORT", "SMTP_USER", "SMTP_PASS", "SMTP_TIMEOUT", "MAIL_SENDER_NAME",
    "GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REDIRECT_URI",
    "GOOGLE_REFRESH_TOKEN", "GOOGLE_TOKEN_PATH",
    "APP_LOG_LEVEL", "API_CORS_ORIGINS", "LOG_TO_FILE",
]


@pytest.fixture(autouse=True)
def gateway_env(monkeypatch, tmp_path):
    """Isolate every test from the developer's environment."""
    for name in GATEWAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GOOGLE_TOKEN_PATH", str(tmp_path / "token.json"))
    reload_config()
    reset_email_service()
    yield tmp_path
    reset_email_service()


@pytest.fixture
def smtp_env(monkeypatch):
    """Complete SMTP configuration."""
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMTP_PORT", "587")
    monkeypatch.setenv("SMTP_USER", "sender@example.com")
    monkeypatch.setenv("SMTP_PASS", "app-password")
    monkeypatch.setenv("MAIL_SENDER_NAME", "Test Sender")
    reset_email_service()
    return reload_config()


@pytest.fixture
def google_env(monkeypatch):
    """OAuth client with a configured refresh token."""
    monkeypatch.setenv("GOOGLE_CLIENT_ID", "client-id.apps.googleusercontent.com")
    monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "client-secret")
    monkeypatch.setenv("GOOGLE_REFRESH_TOKEN", "refresh-from-env")
    return reload_config()


@pytest.fixture
def smtp_server():
    """Patch smtplib.SMTP and return the fake session."""
    with patch("workspace_gateway.services.email_service.smtplib.SMTP") as smtp_cls:
        server = MagicMock()
        server.__enter__.return_value = server
        server.has_extn.return_value = True
        server.noop.return_value = (250, b"2.0.0 OK")
        server.sendmail.return_value = {}
        smtp_cls.return_value = server
        server.smtp_cls = smtp_cls
        yield server


@pytest.fixture
def gmail_api():
    """Patch the Gmail discovery client and return the fake service."""
    with patch("workspace_gateway.services.gmail_service.build") as build:
        service = MagicMock()
        build.return_value = service
        yield service


@pytest.fixture
def calendar_api():
    """Patch the Calendar discovery client and return the fake service."""
    with patch("workspace_gateway.services.calendar_service.build") as build:
        service = MagicMock()
        build.return_value = service
        yield service


@pytest.fixture
def client(google_env, smtp_env):
    """Test client with SMTP and Google configured."""
    from fastapi.testclient import TestClient
    from workspace_gateway.api.server import app

    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
