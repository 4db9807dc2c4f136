"""Authentication API Client for the Roble auth service.

Provides login, registration, token refresh and logout against the auth
base URL. Login stores the returned token pair on the client; the other
operations leave the stored tokens untouched.
"""

import logging
from typing import Any, Dict

from .base_client import REFRESH_ENDPOINT, RobleAPIClient

logger = logging.getLogger(__name__)

LOGIN_ENDPOINT = "login"
SIGNUP_ENDPOINT = "signup-direct"
LOGOUT_ENDPOINT = "logout"


class AuthAPIClient(RobleAPIClient):
    """API client for authentication operations extending base functionality."""

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Authenticate and store the returned access and refresh tokens.

        Args:
            email: Account email
            password: Account password

        Returns:
            Decoded login payload, or an empty dict if the reply was not a
            JSON object

        Raises:
            HTTPStatusError: If the credentials are rejected
            APIClientError: If the request fails
        """
        response = await self.execute(
            "POST",
            LOGIN_ENDPOINT,
            body={"email": email, "password": password},
            is_auth_request=True,
        )

        payload = response.as_dict()
        if payload is None:
            logger.warning("Login reply was not a JSON object, tokens not stored")
            return {}

        self.tokens.set(payload.get("accessToken"), payload.get("refreshToken"))
        logger.info(f"Logged in as {email}")
        return dict(payload)

    async def register(self, email: str, password: str, name: str) -> Dict[str, Any]:
        """Create an account. Does not log in or store tokens.

        Returns:
            Decoded signup payload, or an empty dict
        """
        response = await self.execute(
            "POST",
            SIGNUP_ENDPOINT,
            body={"email": email, "password": password, "name": name},
            is_auth_request=True,
        )
        logger.info(f"Registered account {email}")
        return dict(response.as_dict() or {})

    async def refresh_token(self, refresh_token: str) -> Dict[str, Any]:
        """Exchange a caller-supplied refresh token; stored tokens are untouched.

        Returns:
            Decoded refresh payload, or an empty dict
        """
        response = await self.execute(
            "POST",
            REFRESH_ENDPOINT,
            body={"refreshToken": refresh_token},
            is_auth_request=True,
        )
        return dict(response.as_dict() or {})

    async def logout(self, access_token: str) -> None:
        """Invalidate ``access_token`` on the server.

        The token is sent in an explicit Authorization header, so logout
        works even after the stored tokens were cleared. The stored tokens
        are not cleared here; call ``clear_tokens()`` afterwards.
        """
        await self.execute(
            "POST",
            LOGOUT_ENDPOINT,
            is_auth_request=True,
            extra_headers={"Authorization": f"Bearer {access_token}"},
        )
        logger.info("Logged out on server")
