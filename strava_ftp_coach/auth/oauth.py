"""Strava OAuth2 implementation."""

import logging
import webbrowser
from typing import Optional, Dict, Any
from urllib.parse import urlencode
import requests
from http.server import HTTPServer, BaseHTTPRequestHandler
from urllib.parse import urlparse, parse_qs

from ..config import config
from ..db import Database, get_db
from ..db.models import AuthToken

logger = logging.getLogger(__name__)


class RefreshFailedError(Exception):
    """Strava rejected the refresh token; the account must be reconnected."""
    pass


class OAuthCallbackHandler(BaseHTTPRequestHandler):
    """HTTP request handler for OAuth callback."""

    def do_GET(self):
        """Handle GET request with authorization code."""
        params = parse_qs(urlparse(self.path).query)

        if "code" in params:
            self.server.auth_code = params["code"][0]
            self.send_response(200)
            self.send_header("Content-type", "text/html")
            self.end_headers()
            self.wfile.write(
                b"<html><body><h1>Strava connected</h1>"
                b"<p>You can close this window and return to the terminal.</p></body></html>"
            )
        else:
            self.server.auth_code = None
            error = params.get("error", ["Unknown error"])[0]
            self.send_response(400)
            self.send_header("Content-type", "text/html")
            self.end_headers()
            self.wfile.write(
                f"<html><body><h1>Authorization failed</h1><p>Error: {error}</p></body></html>".encode()
            )

    def log_message(self, format, *args):
        """Suppress log messages."""
        pass


class StravaOAuth:
    """Handle Strava OAuth2 flow."""

    def __init__(self):
        self.client_id = config.STRAVA_CLIENT_ID
        self.client_secret = config.STRAVA_CLIENT_SECRET
        self.redirect_uri = config.STRAVA_REDIRECT_URI
        self.auth_base_url = config.STRAVA_AUTH_BASE_URL
        self.token_url = f"{self.auth_base_url}/token"
        self.timeout = config.REQUEST_TIMEOUT

    def get_authorization_url(self, scope: str = "read,activity:read_all") -> str:
        """Generate the authorization URL."""
        params = {
            "client_id": self.client_id,
            "response_type": "code",
            "redirect_uri": self.redirect_uri,
            "approval_prompt": "auto",
            "scope": scope,
        }
        return f"{self.auth_base_url}/authorize?{urlencode(params)}"

    def authorize_browser(self, scope: str = "read,activity:read_all") -> Optional[str]:
        """Open browser for authorization and capture the code."""
        auth_url = self.get_authorization_url(scope)

        port = urlparse(self.redirect_uri).port or 8000

        # Local server captures the single redirect back from Strava
        server = HTTPServer(("localhost", port), OAuthCallbackHandler)
        server.auth_code = None

        logger.info(f"Opening browser for authorization: {auth_url}")
        webbrowser.open(auth_url)

        server.handle_request()
        server.server_close()

        return server.auth_code

    def exchange_code_for_token(self, code: str) -> Dict[str, Any]:
        """Exchange authorization code for access token."""
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
        }

        response = requests.post(self.token_url, data=data, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """Refresh an expired access token.

        Raises:
            RefreshFailedError: If Strava rejects the refresh token or cannot be reached
        """
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": refresh_token,
            "grant_type": "refresh_token",
        }

        try:
            response = requests.post(self.token_url, data=data, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise RefreshFailedError(f"Failed to refresh Strava token: {e}") from e

        return response.json()


class AuthManager:
    """Manage authentication tokens and sessions."""

    def __init__(self, user_id: str = "default", db: Optional[Database] = None, oauth: Optional[StravaOAuth] = None):
        self.user_id = user_id
        self.oauth = oauth or StravaOAuth()
        self.db = db or get_db()

    def _load_token(self) -> Optional[Dict[str, Any]]:
        with self.db.get_session() as session:
            token_record = session.query(AuthToken).filter_by(user_id=self.user_id).first()
            if not token_record:
                return None
            return {
                "access_token": token_record.access_token,
                "refresh_token": token_record.refresh_token,
                "expired": token_record.is_expired(),
            }

    def get_valid_token(self) -> Optional[str]:
        """Get a valid access token, refreshing if necessary.

        Returns:
            Access token, or None if the user never connected Strava

        Raises:
            RefreshFailedError: If the stored token expired and cannot be refreshed
        """
        token = self._load_token()
        if not token:
            return None

        if token["expired"]:
            logger.info(f"Access token for {self.user_id} expired, refreshing")
            return self._refresh_with(token["refresh_token"])

        return token["access_token"]

    def refresh(self) -> str:
        """Force a token refresh, e.g. after Strava answered 401.

        Raises:
            RefreshFailedError: If no token is stored or the refresh is rejected
        """
        token = self._load_token()
        if not token:
            raise RefreshFailedError("Strava account not connected")

        logger.info(f"Forcing token refresh for {self.user_id}")
        return self._refresh_with(token["refresh_token"])

    def _refresh_with(self, refresh_token: str) -> str:
        new_token_data = self.oauth.refresh_access_token(refresh_token)
        self.save_token(new_token_data)
        return new_token_data["access_token"]

    def authenticate(self, scope: str = "read,activity:read_all") -> bool:
        """Perform full authentication flow."""
        code = self.oauth.authorize_browser(scope)

        if not code:
            logger.warning("Authorization failed or was cancelled")
            return False

        try:
            token_data = self.oauth.exchange_code_for_token(code)
        except requests.RequestException as e:
            logger.error(f"Failed to exchange code for token: {e}")
            return False

        self.save_token(token_data)
        logger.info(
            f"Authenticated as {token_data.get('athlete', {}).get('firstname', 'Unknown')}"
        )
        return True

    def save_token(self, token_data: Dict[str, Any]) -> None:
        """Save token data to database."""
        with self.db.get_session() as session:
            token_record = session.query(AuthToken).filter_by(user_id=self.user_id).first()

            if not token_record:
                token_record = AuthToken(user_id=self.user_id)
                session.add(token_record)

            token_record.access_token = token_data["access_token"]
            # Strava may omit the refresh token when it is unchanged
            token_record.refresh_token = token_data.get("refresh_token") or token_record.refresh_token
            token_record.expires_at = token_data["expires_at"]

            if "athlete" in token_data:
                athlete = token_data["athlete"]
                token_record.athlete_id = str(athlete.get("id", ""))
                token_record.athlete_name = f"{athlete.get('firstname', '')} {athlete.get('lastname', '')}".strip()

    def is_authenticated(self) -> bool:
        """Check if user is authenticated."""
        try:
            return self.get_valid_token() is not None
        except RefreshFailedError as e:
            logger.warning(str(e))
            return False

    def logout(self) -> bool:
        """Remove stored authentication tokens."""
        with self.db.get_session() as session:
            token_record = session.query(AuthToken).filter_by(user_id=self.user_id).first()
            if not token_record:
                return False
            session.delete(token_record)

        logger.info(f"Removed Strava token for {self.user_id}")
        return True
