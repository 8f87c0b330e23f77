"""
Xray Cloud Authentication.

Exchanges a client id / secret pair for a bearer token. The token is kept
for the lifetime of the AuthSession object; there is no refresh or revoke.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from loguru import logger

from xray_sync.config.loader import XraySettings


@dataclass(frozen=True)
class Credentials:
    """Xray API client credentials."""

    client_id: str = ""
    client_secret: str = ""

    @classmethod
    def from_settings(cls, settings: XraySettings) -> "Credentials":
        return cls(client_id=settings.client_id, client_secret=settings.client_secret)

    @property
    def is_complete(self) -> bool:
        """Both the client id and the client secret are set."""
        return bool(self.client_id and self.client_secret)

    def __repr__(self) -> str:
        return f"Credentials(client_id={self.client_id!r}, client_secret='***')"


class AuthSession:
    """
    Holds the Xray bearer token for one run.

    The session is either unauthenticated (no token) or authenticated
    (non-empty token). The token is written once by a successful
    ``authenticate()`` and reused by every later call.

    Usage::

        auth = AuthSession(settings, http=requests.Session())
        if auth.authenticate():
            headers = auth.auth_headers()
    """

    def __init__(
        self,
        settings: XraySettings,
        http: Optional[Any] = None,
        credentials: Optional[Credentials] = None,
    ) -> None:
        """
        Initialize the session.

        Args:
            settings: Run settings (endpoint, timeouts).
            http: requests.Session-like transport. Created lazily if omitted.
            credentials: Overrides the credentials from settings.
        """
        self._settings = settings
        self._http = http
        self._credentials = credentials or Credentials.from_settings(settings)
        self._token: Optional[str] = None

    @property
    def http(self) -> Any:
        """The HTTP transport, created on first use."""
        if self._http is None:
            self._http = requests.Session()
            self._http.verify = self._settings.verify_ssl
        return self._http

    @property
    def token(self) -> Optional[str]:
        return self._token

    def is_authenticated(self) -> bool:
        """Local check only; never touches the network."""
        return bool(self._token)

    def authenticate(self) -> bool:
        """
        Obtain a bearer token from Xray Cloud.

        Returns:
            True if a token is held after the call, False otherwise.
            Missing credentials return False without a network call.
        """
        if self.is_authenticated():
            return True

        if not self._credentials.is_complete:
            logger.warning(
                "Xray credentials not configured. Set XRAY_CLIENT_ID and "
                "XRAY_CLIENT_SECRET environment variables."
            )
            return False

        url = self._settings.url(self._settings.xray_base_url, self._settings.auth_endpoint)
        payload = {
            "client_id": self._credentials.client_id,
            "client_secret": self._credentials.client_secret,
        }
        logger.debug(f"Xray API POST {url}")

        try:
            response = self.http.post(
                url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self._settings.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Error during Xray authentication: {e}")
            return False

        if response.status_code != 200:
            logger.error(f"Xray authentication failed: {response.status_code}")
            return False

        token = self._parse_token(response.text)
        if not token:
            logger.error("Xray authentication returned an empty token")
            return False

        self._token = token
        logger.info("Successfully authenticated with Xray")
        return True

    def auth_headers(self) -> Dict[str, str]:
        """Authorization header for authenticated requests."""
        if not self._token:
            return {}
        return {"Authorization": f"Bearer {self._token}"}

    def close(self) -> None:
        """Close the HTTP transport. The token is kept."""
        if self._http is not None:
            self._http.close()
            self._http = None

    @staticmethod
    def _parse_token(body: Optional[str]) -> str:
        # Xray returns the token as a bare JSON string: "eyJ..."
        if not isinstance(body, str):
            return ""
        return body.strip().strip('"').strip()
