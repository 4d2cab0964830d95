"""
Configuration loader with type-safe Pydantic models.
Loads and validates environment variables for the gateway.
"""

import os
import json
import logging
from pathlib import Path
from typing import Optional, List
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv


# Load .env file from the working directory if it exists
load_dotenv(Path.cwd() / ".env")

DEFAULT_REDIRECT_URI = "urn:ietf:wg:oauth:2.0:oob"
DEFAULT_CORS_ORIGINS = ["*"]


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    return int(value) if value else default


class SmtpConfig(BaseModel):
    """
    SMTP transport configuration."""

    host: str = Field(default="", alias="SMTP_HOST")
    port: int = Field(default=587, alias="SMTP_PORT")
    user: str = Field(default="", alias="SMTP_USER")
    password: str = Field(default="", alias="SMTP_PASS")
    timeout: float = Field(default=30.0, alias="SMTP_TIMEOUT")
    sender_name: str = Field(default="Shreyas", alias="MAIL_SENDER_NAME")

    @field_validator("host", "user", "password", "sender_name")
    @classmethod
    def strip_value(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v):
        if not 0 < v < 65536:
            raise ValueError("SMTP port must be between 1 and 65535")
        return v

    @classmethod
    def from_env(cls) -> "SmtpConfig":
        """
        Create SmtpConfig from environment variables."""
        return cls(
            SMTP_HOST=os.getenv("SMTP_HOST", ""),
            SMTP_PORT=_env_int("SMTP_PORT", 587),
            SMTP_USER=os.getenv("SMTP_USER", ""),
            SMTP_PASS=os.getenv("SMTP_PASS", ""),
            SMTP_TIMEOUT=float(os.getenv("SMTP_TIMEOUT") or 30),
            MAIL_SENDER_NAME=os.getenv("MAIL_SENDER_NAME") or "Shreyas",
        )

    def is_complete(self) -> bool:
        """Check that host and login credentials are all present."""
        return bool(self.host and self.user and self.password)


class GoogleAuthConfig(BaseModel):
    """
    Google OAuth 2.0 configuration."""

    client_id: str = Field(default="", alias="GOOGLE_CLIENT_ID")
    client_secret: str = Field(default="", alias="GOOGLE_CLIENT_SECRET")
    redirect_uri: str = Field(default=DEFAULT_REDIRECT_URI, alias="GOOGLE_REDIRECT_URI")
    refresh_token: Optional[str] = Field(default=None, alias="GOOGLE_REFRESH_TOKEN")
    token_path: Path = Field(default=Path("token.json"), alias="GOOGLE_TOKEN_PATH")

    @field_validator("client_id", "client_secret", "redirect_uri")
    @classmethod
    def strip_value(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("refresh_token")
    @classmethod
    def empty_refresh_token_is_none(cls, v):
        if v is None or not v.strip():
            return None
        return v.strip()

    @classmethod
    def from_env(cls) -> "GoogleAuthConfig":
        """
        Create GoogleAuthConfig from environment variables."""
        return cls(
            GOOGLE_CLIENT_ID=os.getenv("GOOGLE_CLIENT_ID", ""),
            GOOGLE_CLIENT_SECRET=os.getenv("GOOGLE_CLIENT_SECRET", ""),
            GOOGLE_REDIRECT_URI=os.getenv("GOOGLE_REDIRECT_URI") or DEFAULT_REDIRECT_URI,
            GOOGLE_REFRESH_TOKEN=os.getenv("GOOGLE_REFRESH_TOKEN"),
            GOOGLE_TOKEN_PATH=Path(os.getenv("GOOGLE_TOKEN_PATH") or Path.cwd() / "token.json"),
        )

    def has_client_credentials(self) -> bool:
        return bool(self.client_id and self.client_secret)


class AppConfig(BaseSettings):
    """
    Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        env_prefix=""
    )

    # Application settings
    debug: bool = Field(default=False, alias="APP_DEBUG")
    log_level: str = Field(default="INFO", alias="APP_LOG_LEVEL")
    log_dir: Path = Field(default=Path("logs"), alias="LOG_DIR")
    log_to_file: bool = Field(default=False, alias="LOG_TO_FILE")

    # FastAPI settings
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=3000, alias="API_PORT")
    api_cors_origins_raw: str = Field(default="*", alias="API_CORS_ORIGINS")

    smtp: SmtpConfig = Field(default_factory=SmtpConfig.from_env)
    google_auth: GoogleAuthConfig = Field(default_factory=GoogleAuthConfig.from_env)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in allowed:
            raise ValueError(f"Log level must be one of {allowed}")
        return v.upper()

    @property
    def api_cors_origins(self) -> List[str]:
        """
        Parse CORS origins from a comma-separated string or a JSON list."""
        v = (self.api_cors_origins_raw or "").strip()
        if not v:
            return list(DEFAULT_CORS_ORIGINS)

        try:
            parsed = json.loads(v)
            if isinstance(parsed, list):
                origins = [str(origin).strip() for origin in parsed if str(origin).strip()]
                return origins or list(DEFAULT_CORS_ORIGINS)
        except (json.JSONDecodeError, ValueError, TypeError):
            # Not JSON, treat as comma-separated string
            pass

        origins = [origin.strip() for origin in v.split(",") if origin.strip()]
        return origins or list(DEFAULT_CORS_ORIGINS)

    def validate_required_credentials(self) -> List[str]:
        """
        Validate that service credentials are present.

        Returns:
            List of missing credential names (empty if all present)
        """
        missing = []

        if not self.smtp.is_complete():
            missing.append("SMTP credentials (SMTP_HOST, SMTP_USER and SMTP_PASS)")

        if not self.google_auth.has_client_credentials():
            missing.append("Google OAuth client (GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET)")

        return missing


# Global config instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get the global application configuration.

    Missing credentials are only logged so that the health check keeps
    working; the affected endpoints fail on use.

    Returns:
        AppConfig instance
    """
    global _config

    if _config is None:
        _config = AppConfig()

        missing = _config.validate_required_credentials()
        if missing:
            logger = logging.getLogger(__name__)
            logger.warning(
                f"Missing configuration: {', '.join(missing)}. "
                f"Some endpoints will not work until these are set."
            )

    return _config


def reload_config() -> AppConfig:
    """
    Reload configuration from environment."""
    global _config
    _config = None
    return get_config()
