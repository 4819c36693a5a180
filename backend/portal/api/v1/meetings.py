"""Client meeting scheduling endpoints"""

import logging
import os
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.v1.errors import to_http_exception
from portal.core.auth import get_current_user_id
from portal.core.database import get_db
from portal.core.timeutils import scheduling_timezone
from portal.integrations.google_calendar import google_calendar, google_oauth
from portal.models import Meeting
from portal.services.db_service import DBService
from portal.services.email_service import email_service
from portal.services.scheduling.availability import AvailabilityService
from portal.services.scheduling.booking import BookingService
from portal.services.scheduling.errors import SchedulingError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/meetings", tags=["meetings"])


def _recheck_enabled() -> bool:
    return os.getenv("BOOKING_RECHECK_AVAILABILITY", "false").lower() in ("1", "true", "yes")


def get_db_service(db: AsyncSession = Depends(get_db)) -> DBService:
    return DBService(db)


def get_availability_service(db: DBService = Depends(get_db_service)) -> AvailabilityService:
    return AvailabilityService(db, google_oauth, google_calendar, tz=scheduling_timezone())


def get_booking_service(db: DBService = Depends(get_db_service)) -> BookingService:
    return BookingService(
        db,
        google_oauth,
        google_calendar,
        email_service,
        recheck_availability=_recheck_enabled(),
    )


class BookMeetingRequest(BaseModel):
    """Booking form. Accepts the portal UI's camelCase names too."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: Optional[str] = None
    description: Optional[str] = None
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")
    meeting_type: Optional[str] = Field(default=None, alias="meetingType")
    project_id: Optional[str] = Field(default=None, alias="projectId")


class SlotResponse(BaseModel):
    start: datetime
    end: datetime
    date: str
    display_time: str


class DateRange(BaseModel):
    start: datetime
    end: datetime


class FreeBusyResponse(BaseModel):
    available_slots: List[SlotResponse]
    total_slots: int
    date_range: DateRange


class ParticipantResponse(BaseModel):
    id: str
    name: Optional[str] = None
    email: str


class MeetingResponse(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    start_time: datetime
    end_time: datetime
    status: str
    meeting_type: str
    google_meet_link: Optional[str] = None
    google_event_id: Optional[str] = None
    project_id: Optional[str] = None
    client: Optional[ParticipantResponse] = None
    tbb_staff: Optional[ParticipantResponse] = None
    created_at: Optional[datetime] = None


class BookMeetingResponse(BaseModel):
    message: str
    meeting: MeetingResponse


def _participant(user) -> Optional[ParticipantResponse]:
    if user is None:
        return None
    return ParticipantResponse(id=str(user.id), name=user.name, email=user.email)


def serialize_meeting(meeting: Meeting) -> MeetingResponse:
    return MeetingResponse(
        id=str(meeting.id),
        title=meeting.title,
        description=meeting.description,
        start_time=meeting.start_time,
        end_time=meeting.end_time,
        status=meeting.status.value,
        meeting_type=meeting.meeting_type.value,
        google_meet_link=meeting.google_meet_link,
        google_event_id=meeting.google_event_id,
        project_id=str(meeting.project_id) if meeting.project_id else None,
        client=_participant(meeting.client),
        tbb_staff=_participant(meeting.tbb_staff),
        created_at=meeting.created_at,
    )


@router.get("/freebusy", response_model=FreeBusyResponse)
async def get_free_busy(
    user_id: str = Depends(get_current_user_id),
    availability: AvailabilityService = Depends(get_availability_service),
) -> FreeBusyResponse:
    """
    List bookable 30-minute slots for the next seven days
    """
    try:
        result = await availability.list_available_slots()
    except SchedulingError as e:
        logger.error(f"Availability lookup failed for user {user_id}: {e.message}")
        raise to_http_exception(e)

    return FreeBusyResponse(
        available_slots=[SlotResponse(**slot.to_dict()) for slot in result.available_slots],
        total_slots=result.total_slots,
        date_range=DateRange(start=result.range_start, end=result.range_end),
    )


@router.post("", response_model=BookMeetingResponse, status_code=201)
async def book_meeting(
    request: BookMeetingRequest,
    user_id: str = Depends(get_current_user_id),
    booking: BookingService = Depends(get_booking_service),
) -> BookMeetingResponse:
    """
    Book a meeting with the admin

    Creates the Google Calendar event with a Meet link, stores the meeting
    as confirmed and emails the requester.
    """
    try:
        meeting = await booking.book_meeting(
            requester_id=user_id,
            title=request.title,
            description=request.description,
            start_time=request.start_time,
            end_time=request.end_time,
            meeting_type=request.meeting_type,
            project_id=request.project_id,
        )
    except SchedulingError as e:
        logger.error(f"Booking failed for user {user_id}: {e.message}")
        raise to_http_exception(e)

    return BookMeetingResponse(
        message="Meeting scheduled successfully",
        meeting=serialize_meeting(meeting),
    )


@router.get("", response_model=List[MeetingResponse])
async def list_meetings(
    user_id: str = Depends(get_current_user_id),
    db: DBService = Depends(get_db_service),
) -> List[MeetingResponse]:
    """
    Meetings visible to the caller, newest first
    """
    user = await db.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail={"error": "User not found"})

    meetings = await db.list_meetings_for(user)
    return [serialize_meeting(m) for m in meetings]
