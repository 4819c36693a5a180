"""Meeting booking transaction.

Steps run strictly in order, each failing with its own error type:

1. validate input (no I/O)
2. resolve requester and calendar owner
3. ensure a valid access token
4. optionally re-check the slot against fresh free/busy data
5. create the Google Calendar event with a Meet conference request
6. persist the Meeting as CONFIRMED
7. email the requester (best effort)

There is no internal retry and no lock between the availability read
and event creation, so two clients can still book the same slot.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, Optional, Union

from sqlalchemy.exc import SQLAlchemyError

from portal.core.timeutils import as_utc, utcnow
from portal.integrations.google_calendar.client import GoogleCalendarClient
from portal.integrations.google_calendar.models import Attendee, CalendarEvent
from portal.models import Meeting, MeetingStatus, MeetingType
from portal.models.meeting import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH
from portal.services.db_service import DBService
from portal.services.email_service import EmailService, MeetingDetails
from portal.services.scheduling.errors import (
    AuthError,
    CredentialInvalid,
    PersistenceError,
    SlotNoLongerAvailable,
    ValidationError,
)
from portal.services.scheduling.token_refresher import TokenRefreshClient, ensure_valid_access_token

logger = logging.getLogger(__name__)


def conference_request_id(now: datetime) -> str:
    return f"meeting-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:8]}"


def _parse_meeting_type(value: Union[MeetingType, str, None]) -> MeetingType:
    if value is None or value == "":
        return MeetingType.VIRTUAL
    try:
        return MeetingType(value)
    except ValueError:
        raise ValidationError(f"Unknown meeting type: {value}")


def _parse_project_id(value: Optional[str]) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise ValidationError("Invalid project id")


class BookingService:
    def __init__(
        self,
        db: DBService,
        oauth: TokenRefreshClient,
        calendar: GoogleCalendarClient,
        notifier: EmailService,
        clock: Callable[[], datetime] = utcnow,
        recheck_availability: bool = False,
    ):
        self.db = db
        self.oauth = oauth
        self.calendar = calendar
        self.notifier = notifier
        self.clock = clock
        self.recheck_availability = recheck_availability

    async def book_meeting(
        self,
        requester_id: str,
        title: Optional[str],
        description: Optional[str],
        start_time: Optional[datetime],
        end_time: Optional[datetime],
        meeting_type: Union[MeetingType, str, None] = None,
        project_id: Optional[str] = None,
    ) -> Meeting:
        now = self.clock()

        # 1. Validate before any I/O
        title = (title or "").strip()
        if not title or start_time is None or end_time is None:
            raise ValidationError("Title, start time, and end time are required")
        start_time = as_utc(start_time)
        end_time = as_utc(end_time)
        if end_time <= start_time:
            raise ValidationError("End time must be after start time")
        if start_time <= now:
            raise ValidationError("Start time must be in the future")
        if len(title) > TITLE_MAX_LENGTH:
            raise ValidationError(f"Title must be at most {TITLE_MAX_LENGTH} characters")
        description = (description or "").strip()
        if len(description) > DESCRIPTION_MAX_LENGTH:
            raise ValidationError(f"Description must be at most {DESCRIPTION_MAX_LENGTH} characters")
        kind = _parse_meeting_type(meeting_type)
        project_uuid = _parse_project_id(project_id)

        # 2. Resolve identities
        requester = await self.db.get_user(requester_id)
        if requester is None:
            raise AuthError("User not found")
        owner = await self.db.get_calendar_owner()
        if owner is None:
            raise AuthError("No calendar owner configured")
        credential = self.db.credential_from_user(owner)
        if credential is None:
            raise CredentialInvalid("Admin Google Calendar not connected")

        # 3. Token (ReauthRequired is a CredentialInvalid and propagates as one)
        token = await ensure_valid_access_token(credential, oauth=self.oauth, store=self.db, now=now)

        # 4. Optional re-check of the requested slot
        if self.recheck_availability:
            busy = await self.calendar.get_busy_intervals(
                token.credential, token.access_token, start_time, end_time
            )
            if any(b.overlaps(start_time, end_time) for b in busy):
                logger.info(f"Slot {start_time.isoformat()} was taken before booking by {requester_id}")
                raise SlotNoLongerAvailable()

        # 5. Remote event; on failure nothing is written locally
        event = CalendarEvent(
            title=title,
            description=description,
            start_time=start_time,
            end_time=end_time,
            conference_request_id=conference_request_id(now),
            attendees=[
                Attendee(email=requester.email, display_name=requester.name),
                Attendee(email=owner.email, display_name=owner.name),
            ],
        )
        created = await self.calendar.create_event(token.credential, token.access_token, event)

        # 6. Local record
        try:
            meeting = await self.db.create_meeting(
                {
                    "title": title,
                    "description": description,
                    "start_time": start_time,
                    "end_time": end_time,
                    "client_id": requester.id,
                    "tbb_staff_id": owner.id,
                    "project_id": project_uuid,
                    "status": MeetingStatus.CONFIRMED,
                    "meeting_type": kind,
                    "google_meet_link": created.meet_link,
                    "google_event_id": created.event_id,
                    "reminder_sent": False,
                }
            )
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                f"Meeting row not saved but calendar event {created.event_id} exists; "
                f"needs manual reconciliation (requester={requester_id}): {e}"
            )
            raise PersistenceError(google_event_id=created.event_id) from e

        logger.info(f"Meeting {meeting.id} booked for {requester_id} (event {created.event_id})")

        # 7. Best-effort notification
        try:
            await self.notifier.send_meeting_invitation(
                requester.email,
                requester.name,
                MeetingDetails(
                    title=title,
                    start_time=start_time,
                    end_time=end_time,
                    google_meet_link=created.meet_link,
                ),
            )
        except Exception as e:
            logger.error(f"Failed to send meeting invitation for {meeting.id}: {e}")

        return meeting
