"""Google Calendar OAuth endpoints for the admin calendar"""

import logging
from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from portal.api.v1.errors import to_http_exception
from portal.api.v1.meetings import get_db_service
from portal.core.auth import get_current_user_id, sign_oauth_state, verify_oauth_state
from portal.core.timeutils import utcnow
from portal.integrations.google_calendar import google_calendar, google_oauth
from portal.models import User, UserRole
from portal.services.db_service import DBService
from portal.services.scheduling.errors import SchedulingError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/google-calendar", tags=["google-calendar"])


class GoogleCalendarStartResponse(BaseModel):
    authorization_url: str


class GoogleCalendarAuthSuccess(BaseModel):
    success: bool
    message: str
    calendar_id: Optional[str] = None


async def _require_admin(db: DBService, user_id: str) -> User:
    user = await db.get_user(user_id)
    if not user or user.role != UserRole.ADMIN:
        raise HTTPException(status_code=403, detail="Admin access required")
    return user


@router.get("/start", response_model=GoogleCalendarStartResponse)
async def start_oauth_flow(
    user_id: str = Depends(get_current_user_id),
    db: DBService = Depends(get_db_service),
) -> GoogleCalendarStartResponse:
    """
    Initiate Google Calendar OAuth flow

    Returns authorization URL for the admin to visit
    """
    admin = await _require_admin(db, user_id)
    auth_url = google_oauth.get_authorization_url(state=sign_oauth_state(admin.id))
    logger.info(f"Generated OAuth URL for admin {admin.id}")
    return GoogleCalendarStartResponse(authorization_url=auth_url)


@router.get("/callback", response_model=GoogleCalendarAuthSuccess)
async def oauth_callback(
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),  # signed admin id from /start
    error: Optional[str] = Query(None),
    db: DBService = Depends(get_db_service),
) -> GoogleCalendarAuthSuccess:
    """
    Google OAuth callback endpoint

    Exchanges authorization code for tokens and stores them on the admin
    """
    if error:
        logger.error(f"Google OAuth error: {error}")
        raise HTTPException(status_code=400, detail="Google authorization was denied")
    if not code or not state:
        raise HTTPException(status_code=400, detail="Missing code or state")

    admin_id = verify_oauth_state(state)
    if not admin_id:
        raise HTTPException(status_code=400, detail="Invalid or expired state")

    admin = await db.get_user(admin_id)
    if not admin or admin.role != UserRole.ADMIN:
        logger.error(f"Admin {admin_id} not found during OAuth callback")
        raise HTTPException(status_code=404, detail="Admin not found")

    try:
        access_token, refresh_token, expires_in = await google_oauth.exchange_code_for_tokens(code)
    except SchedulingError as e:
        logger.error(f"Token exchange failed for admin {admin.id}: {e.message}")
        raise to_http_exception(e)

    if not refresh_token:
        logger.error(f"No refresh token received for admin {admin.id}")
        raise HTTPException(status_code=500, detail="Failed to get refresh token")

    calendar_id = await google_calendar.get_calendar_id(access_token)
    expires_at = utcnow() + timedelta(seconds=expires_in)

    await db.connect_calendar(admin, access_token, refresh_token, expires_at, calendar_id)
    logger.info(f"Saved Google Calendar credentials for admin {admin.id} (calendar {calendar_id})")

    return GoogleCalendarAuthSuccess(
        success=True,
        message="Google Calendar connected successfully",
        calendar_id=calendar_id,
    )


@router.post("/disconnect", response_model=GoogleCalendarAuthSuccess)
async def disconnect_google_calendar(
    user_id: str = Depends(get_current_user_id),
    db: DBService = Depends(get_db_service),
) -> GoogleCalendarAuthSuccess:
    """
    Disconnect Google Calendar from the admin

    Clears all stored credentials
    """
    admin = await _require_admin(db, user_id)
    await db.disconnect_calendar(admin)
    logger.info(f"Disconnected Google Calendar for admin {admin.id}")

    return GoogleCalendarAuthSuccess(
        success=True,
        message="Google Calendar disconnected successfully",
    )
