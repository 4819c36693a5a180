from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from portal.integrations.google_calendar.models import CalendarCredential
from portal.services.scheduling.errors import PersistenceError, ReauthRequired

logger = logging.getLogger(__name__)


class TokenRefreshClient(Protocol):
    async def refresh_access_token(self, refresh_token: str) -> tuple[str, int]:
        ...


class TokenStore(Protocol):
    async def save_calendar_tokens(
        self,
        credential: CalendarCredential,
        access_token: str,
        token_expiry: datetime,
    ) -> CalendarCredential:
        ...


@dataclass(frozen=True)
class TokenResult:
    access_token: str
    credential: CalendarCredential
    refreshed: bool = False


async def ensure_valid_access_token(
    credential: CalendarCredential,
    *,
    oauth: TokenRefreshClient,
    store: TokenStore,
    now: datetime,
) -> TokenResult:
    """Return a usable access token, refreshing and persisting it if expired.

    A credential whose expiry is still in the future is returned as-is
    without touching the network. On refresh the new token is written to
    the store before it is handed back; a failed refresh leaves the stored
    credential untouched.

    Raises:
        ReauthRequired: no refresh token, or Google rejected it
        ProviderUnavailable: Google could not be reached
        PersistenceError: the refreshed token could not be stored
    """
    if not credential.is_expired(now):
        return TokenResult(access_token=credential.access_token, credential=credential)

    if not credential.refresh_token:
        logger.warning(f"Calendar token for user {credential.owner_id} expired and no refresh token is stored")
        raise ReauthRequired("No refresh token available. Please reconnect Google Calendar.")

    logger.info(f"Calendar token for user {credential.owner_id} expired, refreshing")
    access_token, expires_in = await oauth.refresh_access_token(credential.refresh_token)
    token_expiry = now + timedelta(seconds=expires_in)

    try:
        updated = await store.save_calendar_tokens(credential, access_token, token_expiry)
    except SQLAlchemyError as e:
        logger.error(f"Failed to store refreshed calendar token for user {credential.owner_id}: {e}")
        raise PersistenceError("Failed to save the refreshed calendar token") from e
    return TokenResult(access_token=access_token, credential=updated, refreshed=True)
