"""
Google OAuth 2.0 helper.
Builds consent URLs, exchanges authorization codes and resolves the
credentials used by the Gmail and Calendar services.
"""

import json
import logging
from datetime import timezone
from pathlib import Path
from typing import Optional, Dict, Any, List

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from workspace_gateway.utils.exceptions import AuthenticationError, ConfigurationError
from workspace_gateway.utils.config_loader import GoogleAuthConfig

logger = logging.getLogger(__name__)

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
TOKEN_URI = "https://oauth2.googleapis.com/token"

GMAIL_SCOPES = ["https://www.googleapis.com/auth/gmail.readonly"]
CALENDAR_SCOPES = ["https://www.googleapis.com/auth/calendar.events"]
DEFAULT_SCOPES = GMAIL_SCOPES + CALENDAR_SCOPES


class OAuthAuth:
    """
    OAuth 2.0 authentication for a single Google account.

    Credentials come from a configured refresh token first, then from the
    locally persisted token file.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        refresh_token: Optional[str] = None,
        token_path: Optional[Path] = None,
        scopes: Optional[List[str]] = None
    ):
        """
        Initialize OAuth authentication.

        Args:
            client_id: OAuth client ID
            client_secret: OAuth client secret
            redirect_uri: Redirect URI registered for the client
            refresh_token: Refresh token from configuration (takes priority)
            token_path: Path of the persisted token file (default: ./token.json)
            scopes: Default scopes for consent URLs and code exchange
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.refresh_token = refresh_token
        self.token_path = Path(token_path) if token_path else Path.cwd() / "token.json"
        self.scopes = scopes or list(DEFAULT_SCOPES)

    @classmethod
    def from_config(cls, config: Optional[GoogleAuthConfig] = None) -> "OAuthAuth":
        """
        Create OAuthAuth from configuration.

        Args:
            config: GoogleAuthConfig instance (uses global config if None)

        Returns:
            OAuthAuth instance
        """
        if config is None:
            from workspace_gateway.utils.config_loader import get_config
            config = get_config().google_auth

        return cls(
            client_id=config.client_id,
            client_secret=config.client_secret,
            redirect_uri=config.redirect_uri,
            refresh_token=config.refresh_token,
            token_path=config.token_path
        )

    def _require_client_credentials(self) -> None:
        if not self.client_id or not self.client_secret:
            raise ConfigurationError(
                "Missing GOOGLE_CLIENT_ID or GOOGLE_CLIENT_SECRET",
                config_key="GOOGLE_CLIENT_ID"
            )

    def _build_flow(self, scopes: Optional[List[str]] = None) -> Flow:
        flow = Flow.from_client_config(
            {
                "web": {
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "auth_uri": AUTH_URI,
                    "token_uri": TOKEN_URI,
                    "redirect_uris": [self.redirect_uri],
                }
            },
            scopes=scopes or self.scopes,
            # URL generation and code exchange run in separate requests
            autogenerate_code_verifier=False
        )
        flow.redirect_uri = self.redirect_uri
        return flow

    def get_authorization_url(self, scopes: Optional[List[str]] = None) -> str:
        """
        Get the consent URL for the OAuth flow.

        Always requests offline access with a forced consent screen so that
        Google returns a refresh token.

        Args:
            scopes: Scopes to request (defaults to Gmail readonly + Calendar events)

        Returns:
            Authorization URL
        """
        self._require_client_credentials()
        flow = self._build_flow(scopes)
        authorization_url, _ = flow.authorization_url(
            access_type="offline",
            prompt="consent"
        )
        return authorization_url

    def exchange_code_for_tokens(self, authorization_code: str) -> Dict[str, Any]:
        """
        Exchange an authorization code for tokens and persist them.

        Args:
            authorization_code: Code returned by the consent screen

        Returns:
            Token dict (access_token, refresh_token, scope, token_type, expiry_date)

        Raises:
            ConfigurationError: If the client id/secret are missing
            AuthenticationError: If Google rejects the code
        """
        self._require_client_credentials()

        try:
            flow = self._build_flow()
            flow.fetch_token(code=authorization_code)
            credentials = flow.credentials
        except Exception as e:
            raise AuthenticationError(f"Failed to exchange code for tokens: {e}") from e

        try:
            self._save_token(credentials)
        except OSError as e:
            # The caller still receives the tokens
            logger.warning(f"Could not persist token file {self.token_path}: {e}")

        return self._token_response(credentials)

    def create_credentials(self) -> Credentials:
        """
        Resolve credentials for Google API calls.

        Returns:
            Credentials built from GOOGLE_REFRESH_TOKEN or the token file

        Raises:
            ConfigurationError: If neither source is available
        """
        if self.refresh_token:
            self._require_client_credentials()
            return Credentials(
                token=None,
                refresh_token=self.refresh_token,
                token_uri=TOKEN_URI,
                client_id=self.client_id,
                client_secret=self.client_secret
            )

        credentials = self._load_token()
        if credentials is not None:
            return credentials

        raise ConfigurationError(
            "No Google OAuth credentials found. Set GOOGLE_REFRESH_TOKEN or provide token.json.",
            config_key="GOOGLE_REFRESH_TOKEN"
        )

    def _load_token(self) -> Optional[Credentials]:
        """Load token from file."""
        if not self.token_path.exists():
            return None

        try:
            with open(self.token_path, "r", encoding="utf-8") as f:
                token_data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable token file {self.token_path}: {e}")
            return None

        if not isinstance(token_data, dict):
            logger.warning(f"Ignoring token file {self.token_path}: expected a JSON object")
            return None

        # Fill client fields the file may lack
        token_data.setdefault("client_id", self.client_id)
        token_data.setdefault("client_secret", self.client_secret)
        token_data.setdefault("token_uri", TOKEN_URI)

        try:
            return Credentials.from_authorized_user_info(token_data)
        except ValueError as e:
            logger.warning(f"Ignoring invalid token file {self.token_path}: {e}")
            return None

    def _save_token(self, credentials: Credentials) -> None:
        """Save token to file."""
        self.token_path.parent.mkdir(parents=True, exist_ok=True)

        token_data = {
            "token": credentials.token,
            "refresh_token": credentials.refresh_token,
            "token_uri": credentials.token_uri,
            "client_id": credentials.client_id,
            "client_secret": credentials.client_secret,
            "scopes": credentials.scopes,
        }
        if credentials.expiry:
            token_data["expiry"] = credentials.expiry.isoformat() + "Z"

        with open(self.token_path, "w", encoding="utf-8") as f:
            json.dump(token_data, f, indent=2)

    @staticmethod
    def _token_response(credentials: Credentials) -> Dict[str, Any]:
        expiry_date = None
        if credentials.expiry:
            # google-auth keeps expiry as naive UTC
            expiry_date = int(credentials.expiry.replace(tzinfo=timezone.utc).timestamp() * 1000)

        return {
            "access_token": credentials.token,
            "refresh_token": credentials.refresh_token,
            "scope": " ".join(credentials.scopes or []),
            "token_type": "Bearer",
            "expiry_date": expiry_date,
        }


def create_credentials(config: Optional[GoogleAuthConfig] = None) -> Credentials:
    """Resolve Google credentials from the global (or given) configuration."""
    return OAuthAuth.from_config(config).create_credentials()
