"""Google Calendar OAuth 2.0 Flow Handler"""

import asyncio
import os
import logging
from typing import Callable, Optional, Tuple
from urllib.parse import urlencode

import aiohttp
from cryptography.fernet import Fernet

from portal.services.scheduling.errors import ProviderUnavailable, ReauthRequired

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

# Get encryption key from env (same as app secrets key)
ENCRYPTION_KEY = os.getenv("ENCRYPTION_KEY")
if not ENCRYPTION_KEY:
    logger.warning("ENCRYPTION_KEY not set; stored Google tokens will not survive a restart")
    ENCRYPTION_KEY = Fernet.generate_key()
cipher_suite = Fernet(ENCRYPTION_KEY)


def default_session_factory() -> aiohttp.ClientSession:
    timeout = aiohttp.ClientTimeout(total=float(os.getenv("GOOGLE_API_TIMEOUT_SECONDS", "30")))
    return aiohttp.ClientSession(timeout=timeout)


class GoogleCalendarOAuth:
    """Handle Google Calendar OAuth 2.0 flow"""

    def __init__(self, session_factory: Optional[Callable[[], aiohttp.ClientSession]] = None):
        self.client_id = os.getenv("GOOGLE_CLIENT_ID")
        self.client_secret = os.getenv("GOOGLE_CLIENT_SECRET")
        self.redirect_uri = os.getenv(
            "GOOGLE_REDIRECT_URI",
            "http://localhost:8000/api/v1/auth/google-calendar/callback",
        )
        self.scopes = [
            "https://www.googleapis.com/auth/calendar",
        ]
        self._session_factory = session_factory or default_session_factory

        if not all([self.client_id, self.client_secret]):
            logger.warning("Google Calendar OAuth credentials not configured")

    def get_authorization_url(self, state: str) -> str:
        """
        Generate the Google OAuth authorization URL

        Args:
            state: Signed value Google echoes back to the callback

        Returns:
            Authorization URL for the admin to visit
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.scopes),
            "access_type": "offline",  # Get refresh token
            "prompt": "consent",  # Force consent screen so a refresh token is always issued
            "state": state,
        }

        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def exchange_code_for_tokens(
        self,
        code: str
    ) -> Tuple[str, Optional[str], int]:
        """
        Exchange authorization code for access and refresh tokens

        Args:
            code: Authorization code from OAuth callback

        Returns:
            Tuple of (access_token, refresh_token, expires_in_seconds)
        """
        data = await self._post_token_endpoint(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "code": code,
                "redirect_uri": self.redirect_uri,
                "grant_type": "authorization_code",
            },
            action="exchange code",
        )

        access_token = data.get("access_token")
        if not access_token:
            raise ReauthRequired("No access token in response")

        logger.info("Successfully exchanged code for tokens")
        return access_token, data.get("refresh_token"), int(data.get("expires_in", 3600))

    async def refresh_access_token(self, refresh_token: str) -> Tuple[str, int]:
        """
        Use refresh token to get new access token

        Args:
            refresh_token: Refresh token from initial auth

        Returns:
            Tuple of (new_access_token, expires_in_seconds)

        Raises:
            ReauthRequired: the token endpoint answered outside 2xx
            ProviderUnavailable: Google could not be reached
        """
        data = await self._post_token_endpoint(
            {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            },
            action="refresh token",
        )

        access_token = data.get("access_token")
        if not access_token:
            raise ReauthRequired("No access token in response")

        logger.info("Successfully refreshed access token")
        return access_token, int(data.get("expires_in", 3600))

    async def _post_token_endpoint(self, form: dict, action: str) -> dict:
        try:
            async with self._session_factory() as session:
                async with session.post(GOOGLE_TOKEN_URL, data=form) as resp:
                    if resp.status < 200 or resp.status >= 300:
                        error_text = await resp.text()
                        logger.error(f"Failed to {action}: {resp.status} {error_text}")
                        raise ReauthRequired()
                    return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Google token endpoint unreachable ({action}): {e}")
            raise ProviderUnavailable() from e

    @staticmethod
    def encrypt_token(token: str) -> str:
        """Encrypt a token for storage"""
        return cipher_suite.encrypt(token.encode()).decode()

    @staticmethod
    def decrypt_token(encrypted_token: str) -> str:
        """Decrypt a stored token"""
        return cipher_suite.decrypt(encrypted_token.encode()).decode()


# Singleton instance
google_oauth = GoogleCalendarOAuth()
