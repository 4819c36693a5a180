"""Session verification and signed OAuth state.

Login and token issuance live elsewhere; this only verifies the session
JWT and hands the user id to the routes. The same secret signs the
``state`` round-tripped through Google's consent screen.
"""

import logging
import os
from datetime import timedelta
from typing import Optional

import jwt
from fastapi import HTTPException, Request

from portal.core.timeutils import utcnow

logger = logging.getLogger(__name__)

JWT_ALGORITHM = "HS256"
SESSION_COOKIE = "token"
OAUTH_STATE_PURPOSE = "google-calendar-connect"
OAUTH_STATE_TTL = timedelta(minutes=int(os.getenv("OAUTH_STATE_TTL_MINUTES", "10")))


def _jwt_secret() -> str:
    secret = os.getenv("JWT_SECRET")
    if not secret:
        logger.error("JWT_SECRET not configured")
        raise HTTPException(status_code=500, detail="Authentication not configured")
    return secret


def _extract_token(request: Request) -> Optional[str]:
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    if auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip()
    return None


async def get_current_user_id(request: Request) -> str:
    """FastAPI dependency returning the verified ``userId`` claim"""
    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Authentication required")

    secret = _jwt_secret()

    try:
        payload = jwt.decode(token, secret, algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.info(f"Rejected session token: {e}")
        raise HTTPException(status_code=401, detail="Invalid or expired session")

    user_id = payload.get("userId")
    if not user_id:
        raise HTTPException(status_code=401, detail="Invalid session")
    return str(user_id)


def sign_oauth_state(user_id: str) -> str:
    """Short-lived token naming the admin who started the consent flow"""
    now = utcnow()
    claims = {
        "userId": str(user_id),
        "purpose": OAUTH_STATE_PURPOSE,
        "iat": now,
        "exp": now + OAUTH_STATE_TTL,
    }
    return jwt.encode(claims, _jwt_secret(), algorithm=JWT_ALGORITHM)


def verify_oauth_state(state: str) -> Optional[str]:
    """
    Check a ``state`` value returned by Google

    Returns:
        The admin user id, or None when the state does not verify
    """
    try:
        payload = jwt.decode(state, _jwt_secret(), algorithms=[JWT_ALGORITHM])
    except jwt.PyJWTError as e:
        logger.warning(f"Rejected OAuth state: {e}")
        return None

    if payload.get("purpose") != OAUTH_STATE_PURPOSE or not payload.get("userId"):
        logger.warning("Rejected OAuth state with unexpected claims")
        return None
    return str(payload["userId"])
