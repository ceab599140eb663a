"""Google service-account OAuth for the Sheets mirror.

Signs an RS256 JWT assertion with the service account's private key and
exchanges it at the token endpoint for a short-lived bearer token.
"""

import logging
import time

import httpx
from jose import jwt
from jose.exceptions import JOSEError

from tpv_api.core.config import settings
from tpv_api.core.errors import AuthError, ConfigurationError

logger = logging.getLogger(__name__)

SHEETS_SCOPE = "https://www.googleapis.com/auth/spreadsheets"
JWT_BEARER_GRANT = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600


def normalize_private_key(private_key: str) -> str:
    """Env vars usually carry the PEM with literal '\\n' sequences."""
    return private_key.replace("\\n", "\n").strip()


class ServiceAccountTokenProvider:
    """Obtains access tokens for a Google service account."""

    def __init__(
        self,
        client_email: str | None = None,
        private_key: str | None = None,
        token_uri: str | None = None,
        scope: str = SHEETS_SCOPE,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client_email = client_email if client_email is not None else settings.GOOGLE_SHEETS_CLIENT_EMAIL
        self.private_key = private_key if private_key is not None else settings.GOOGLE_SHEETS_PRIVATE_KEY
        self.token_uri = token_uri or settings.GOOGLE_TOKEN_URI
        self.scope = scope
        self.transport = transport

    def build_claims(self, now: int | None = None) -> dict:
        now = int(time.time()) if now is None else now
        return {
            "iss": self.client_email,
            "scope": self.scope,
            "aud": self.token_uri,
            "iat": now,
            "exp": now + ASSERTION_LIFETIME_SECONDS,
        }

    def sign_assertion(self, now: int | None = None) -> str:
        """Return the signed JWT (header: alg=RS256, typ=JWT)."""
        if not self.client_email or not self.private_key:
            raise ConfigurationError("Google Sheets credentials not configured")
        try:
            return jwt.encode(
                self.build_claims(now),
                normalize_private_key(self.private_key),
                algorithm="RS256",
                headers={"typ": "JWT"},
            )
        except (JOSEError, ValueError, TypeError) as e:
            raise AuthError(f"Invalid service account private key: {e}") from e

    async def fetch_access_token(self) -> str:
        assertion = self.sign_assertion()
        async with httpx.AsyncClient(transport=self.transport) as client:
            response = await client.post(
                self.token_uri,
                data={"grant_type": JWT_BEARER_GRANT, "assertion": assertion},
            )

        if not response.is_success:
            logger.error("Google token exchange failed: %s %s", response.status_code, response.text)
            raise AuthError(f"Token exchange rejected: {response.status_code} - {response.text}")

        token = response.json().get("access_token")
        if not token:
            raise AuthError("Token endpoint returned no access_token")
        return token
