from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable, Optional

from portal.core.timeutils import utcnow
from portal.integrations.google_calendar.client import GoogleCalendarClient
from portal.integrations.google_calendar.models import CalendarCredential
from portal.services.db_service import DBService
from portal.services.scheduling.errors import CredentialInvalid
from portal.services.scheduling.slots import AvailableSlot, generate_slots
from portal.services.scheduling.token_refresher import TokenRefreshClient, ensure_valid_access_token

logger = logging.getLogger(__name__)

BOOKING_WINDOW = timedelta(days=7)


@dataclass
class AvailabilityResult:
    available_slots: list[AvailableSlot]
    range_start: datetime
    range_end: datetime
    credential: Optional[CalendarCredential] = field(default=None, repr=False)

    @property
    def total_slots(self) -> int:
        return len(self.available_slots)


async def load_owner_credential(db: DBService) -> CalendarCredential:
    """Load the admin calendar credential or fail with CredentialInvalid"""
    owner = await db.get_calendar_owner()
    credential = db.credential_from_user(owner) if owner else None
    if credential is None:
        raise CredentialInvalid("Admin Google Calendar not connected")
    return credential


class AvailabilityService:
    """Lists bookable slots against the admin's calendar."""

    def __init__(
        self,
        db: DBService,
        oauth: TokenRefreshClient,
        calendar: GoogleCalendarClient,
        clock: Callable[[], datetime] = utcnow,
        tz: tzinfo = timezone.utc,
    ):
        self.db = db
        self.oauth = oauth
        self.calendar = calendar
        self.clock = clock
        self.tz = tz

    async def list_available_slots(self) -> AvailabilityResult:
        now = self.clock()
        credential = await load_owner_credential(self.db)
        token = await ensure_valid_access_token(credential, oauth=self.oauth, store=self.db, now=now)

        range_end = now + BOOKING_WINDOW
        busy = await self.calendar.get_busy_intervals(token.credential, token.access_token, now, range_end)

        slots = generate_slots(busy, now, tz=self.tz)
        logger.info(f"Computed {len(slots)} available slots from {len(busy)} busy intervals")
        return AvailabilityResult(
            available_slots=slots,
            range_start=now,
            range_end=range_end,
            credential=token.credential,
        )
