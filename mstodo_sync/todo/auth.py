"""Access token handling for Microsoft Graph (personal accounts)."""

import base64
import json
import time
from typing import Optional
from urllib.parse import parse_qs, unquote, urlencode
import logging

from ..core.exceptions import AuthenticationError


class TokenManager:
    """Holds the bearer token used for Graph requests.

    Tokens come from the implicit-grant redirect: the user opens
    ``authorize_url()``, signs in, and pastes the redirect URL (or the bare
    token) back into ``set_manual_token``.
    """

    SCOPES = (
        "https://graph.microsoft.com/Tasks.ReadWrite",
        "https://graph.microsoft.com/User.Read",
    )
    REDIRECT_URI = "https://login.microsoftonline.com/common/oauth2/nativeclient"
    LOGIN_HOST = "https://login.microsoftonline.com"
    MIN_TOKEN_LENGTH = 50

    def __init__(
        self,
        client_id: str = "",
        tenant_id: str = "consumers",
        access_token: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.client_id = client_id
        self.tenant_id = tenant_id or "consumers"
        self.logger = logger or logging.getLogger(__name__)
        self._access_token = access_token or None

    @property
    def authority(self) -> str:
        return f"{self.LOGIN_HOST}/{self.tenant_id}"

    def authorize_url(self) -> str:
        """Build the sign-in URL that redirects back with an access token."""
        if not self.client_id:
            raise AuthenticationError("Client ID not configured")
        params = {
            "client_id": self.client_id,
            "response_type": "token",
            "redirect_uri": self.REDIRECT_URI,
            "scope": " ".join(self.SCOPES),
            "response_mode": "fragment",
        }
        return f"{self.authority}/oauth2/v2.0/authorize?{urlencode(params)}"

    def manual_auth_instructions(self) -> str:
        return "\n".join([
            "Manual Authentication Steps (Personal Microsoft Accounts Only):",
            f"1. Open this URL in your browser: {self.authorize_url()}",
            "2. Sign in with your personal Microsoft account (outlook.com, hotmail.com, live.com)",
            "3. After login you will land on a blank page - this is expected",
            "4. Copy the ENTIRE URL from the browser address bar",
            "5. Run: mstodo-sync auth --token '<pasted URL>'",
        ])

    @staticmethod
    def extract_token_from_url(url: str) -> str:
        """Pull ``access_token`` out of a redirect URL fragment."""
        _, sep, fragment = url.partition('#')
        if not sep:
            raise AuthenticationError(
                "No URL fragment found. Please ensure you copied the complete redirect URL."
            )
        values = parse_qs(fragment).get("access_token")
        if not values:
            raise AuthenticationError(
                "No access_token found in URL. Please ensure you copied the correct redirect URL."
            )
        return values[0]

    def set_manual_token(self, value: str) -> str:
        """Store a token pasted by the user; accepts the full redirect URL.

        Returns:
            The stored token
        """
        text = value.strip()
        if text.startswith(self.LOGIN_HOST):
            self.logger.debug("Detected full redirect URL, extracting access token")
            text = self.extract_token_from_url(text)

        token = unquote(text)
        if len(token) <= self.MIN_TOKEN_LENGTH:
            raise AuthenticationError(
                "Invalid token format. Please ensure you copied the complete access_token value."
            )

        self._access_token = token
        self.logger.info("Manual token set (%d characters, %d segments)", len(token), len(token.split('.')))
        return token

    def clear_token(self) -> None:
        self._access_token = None

    def is_authenticated(self) -> bool:
        return bool(self._access_token)

    @property
    def stored_token(self) -> Optional[str]:
        return self._access_token

    def token_expiry(self) -> Optional[float]:
        """Best-effort ``exp`` claim (epoch seconds) of a JWT access token."""
        if not self._access_token:
            return None
        parts = self._access_token.split('.')
        if len(parts) != 3:
            return None
        payload = parts[1] + '=' * (-len(parts[1]) % 4)
        try:
            claims = json.loads(base64.urlsafe_b64decode(payload.encode('ascii')))
        except (ValueError, UnicodeEncodeError):
            return None
        exp = claims.get("exp") if isinstance(claims, dict) else None
        return float(exp) if isinstance(exp, (int, float)) else None

    def is_expired(self, now: Optional[float] = None) -> bool:
        expiry = self.token_expiry()
        if expiry is None:
            return False
        return (now if now is not None else time.time()) >= expiry

    async def get_access_token(self) -> str:
        """Return the current token or raise AuthenticationError."""
        if not self._access_token:
            raise AuthenticationError("No access token available. Run 'mstodo-sync auth' first.")
        if self.is_expired():
            raise AuthenticationError("Access token has expired. Run 'mstodo-sync auth' to sign in again.")
        return self._access_token
