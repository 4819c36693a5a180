import logging
import uuid
from datetime import datetime
from typing import Optional, List

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portal.core.timeutils import as_utc, utcnow
from portal.integrations.google_calendar.models import DEFAULT_CALENDAR_ID, CalendarCredential
from portal.integrations.google_calendar.oauth import GoogleCalendarOAuth
from portal.models import Meeting, User, UserRole
from portal.services.scheduling.errors import ReauthRequired

logger = logging.getLogger(__name__)


def _to_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (ValueError, TypeError):
        return None


class DBService:
    """
    Service for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    # ==================== USERS ====================

    async def get_user(self, user_id: str) -> Optional[User]:
        """Get user by ID"""
        u_uuid = _to_uuid(user_id)
        if u_uuid is None:
            return None

        result = await self.session.execute(
            select(User).where(User.id == u_uuid)
        )
        return result.scalar_one_or_none()

    async def get_calendar_owner(self) -> Optional[User]:
        """Get the admin whose Google Calendar is scheduled against"""
        result = await self.session.execute(
            select(User)
            .where(User.role == UserRole.ADMIN)
            .order_by(User.google_access_token.is_(None), User.created_at)
            .limit(1)
        )
        return result.scalars().first()

    async def create_user(self, data: dict) -> User:
        """Create new user"""
        if data.get("email"):
            data = {**data, "email": data["email"].strip().lower()}
        user = User(**data)
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)
        return user

    # ==================== CALENDAR CREDENTIAL ====================

    @staticmethod
    def credential_from_user(user: User) -> Optional[CalendarCredential]:
        """Build the decrypted credential for a user, or None if not connected"""
        if not user.google_access_token:
            return None
        refresh_token = None
        if user.google_refresh_token:
            refresh_token = GoogleCalendarOAuth.decrypt_token(user.google_refresh_token)
        return CalendarCredential(
            owner_id=str(user.id),
            access_token=GoogleCalendarOAuth.decrypt_token(user.google_access_token),
            refresh_token=refresh_token,
            token_expiry=as_utc(user.google_token_expiry),
            calendar_id=user.google_calendar_id or DEFAULT_CALENDAR_ID,
            version=user.google_token_version or 0,
        )

    async def save_calendar_tokens(
        self,
        credential: CalendarCredential,
        access_token: str,
        token_expiry: datetime,
    ) -> CalendarCredential:
        """Replace access token and expiry in one write; returns the updated copy.

        The refresh token is left untouched. Concurrent refreshes race
        harmlessly: the last write wins and both tokens are valid.
        """
        if not credential.refresh_token:
            raise ReauthRequired("No refresh token stored. Please reconnect Google Calendar.")
        new_version = credential.version + 1
        await self.session.execute(
            update(User)
            .where(User.id == _to_uuid(credential.owner_id))
            .values(
                google_access_token=GoogleCalendarOAuth.encrypt_token(access_token),
                google_token_expiry=token_expiry,
                google_token_version=new_version,
                updated_at=utcnow(),
            )
        )
        await self.session.commit()
        logger.info(f"Stored refreshed calendar token for user {credential.owner_id} (v{new_version})")
        return CalendarCredential(
            owner_id=credential.owner_id,
            access_token=access_token,
            refresh_token=credential.refresh_token,
            token_expiry=token_expiry,
            calendar_id=credential.calendar_id,
            version=new_version,
        )

    async def connect_calendar(
        self,
        user: User,
        access_token: str,
        refresh_token: str,
        token_expiry: datetime,
        calendar_id: str,
    ) -> User:
        """Store a freshly consented credential on the user"""
        if not refresh_token:
            raise ValueError("A refresh token is required to store a calendar credential")
        user.google_access_token = GoogleCalendarOAuth.encrypt_token(access_token)
        user.google_refresh_token = GoogleCalendarOAuth.encrypt_token(refresh_token)
        user.google_token_expiry = token_expiry
        user.google_calendar_id = calendar_id or DEFAULT_CALENDAR_ID
        user.google_token_version = (user.google_token_version or 0) + 1
        await self.session.commit()
        await self.session.refresh(user)
        return user

    async def disconnect_calendar(self, user: User) -> User:
        """Clear all stored Google Calendar credentials"""
        user.google_access_token = None
        user.google_refresh_token = None
        user.google_token_expiry = None
        user.google_calendar_id = None
        await self.session.commit()
        await self.session.refresh(user)
        return user

    # ==================== MEETINGS ====================

    async def create_meeting(self, data: dict) -> Meeting:
        """Create new meeting"""
        meeting = Meeting(**data)
        self.session.add(meeting)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        await self.session.refresh(meeting)
        await self.session.refresh(meeting, ["client", "tbb_staff"])
        return meeting

    async def get_meeting(self, meeting_id: str) -> Optional[Meeting]:
        """Get meeting by ID"""
        m_uuid = _to_uuid(meeting_id)
        if m_uuid is None:
            return None

        result = await self.session.execute(
            select(Meeting).where(Meeting.id == m_uuid)
        )
        return result.scalar_one_or_none()

    async def list_meetings_for(self, user: User, limit: int = 100) -> List[Meeting]:
        """Meetings visible to a user: clients see their own, staff what they host, admins all"""
        query = select(Meeting)
        if user.role == UserRole.CLIENT:
            query = query.where(Meeting.client_id == user.id)
        elif user.role == UserRole.TBB_STAFF:
            query = query.where(Meeting.tbb_staff_id == user.id)

        result = await self.session.execute(
            query.order_by(Meeting.start_time.desc()).limit(limit)
        )
        return result.unique().scalars().all()
