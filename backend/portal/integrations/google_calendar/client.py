"""Thin async client for the Google Calendar v3 endpoints we use."""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional
from urllib.parse import quote

import aiohttp

from portal.core.timeutils import as_utc
from portal.integrations.google_calendar.models import (
    DEFAULT_CALENDAR_ID,
    BusyInterval,
    CalendarCredential,
    CalendarEvent,
    CreatedEvent,
)
from portal.integrations.google_calendar.oauth import default_session_factory
from portal.services.scheduling.errors import CredentialInvalid, ProviderUnavailable

logger = logging.getLogger(__name__)

GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"


def _parse_rfc3339(value: str) -> datetime:
    return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))


class GoogleCalendarClient:
    """Free/busy reads, event creation and calendar lookup.

    Every call takes the access token explicitly; token refresh is the
    caller's job. Nothing here retries.
    """

    def __init__(self, session_factory: Optional[Callable[[], aiohttp.ClientSession]] = None):
        self._session_factory = session_factory or default_session_factory

    async def get_busy_intervals(
        self,
        credential: CalendarCredential,
        access_token: str,
        range_start: datetime,
        range_end: datetime,
    ) -> list[BusyInterval]:
        """Return busy intervals on the credential's calendar within the range.

        Raises:
            CredentialInvalid: Google answered 401
            ProviderUnavailable: any other failure
        """
        calendar_id = credential.calendar_id or DEFAULT_CALENDAR_ID
        body = {
            "timeMin": range_start.isoformat(),
            "timeMax": range_end.isoformat(),
            "items": [{"id": calendar_id}],
        }
        data = await self._request(
            "POST", f"{GOOGLE_CALENDAR_API}/freeBusy", access_token, json=body, action="free/busy"
        )

        calendar = (data.get("calendars") or {}).get(calendar_id) or {}
        if calendar.get("errors"):
            logger.warning(f"Free/busy returned errors for calendar {calendar_id}: {calendar['errors']}")

        intervals = [
            BusyInterval(start=_parse_rfc3339(b["start"]), end=_parse_rfc3339(b["end"]))
            for b in calendar.get("busy", [])
        ]
        logger.info(f"Fetched {len(intervals)} busy intervals for calendar {calendar_id}")
        return intervals

    async def create_event(
        self,
        credential: CalendarCredential,
        access_token: str,
        event: CalendarEvent,
    ) -> CreatedEvent:
        """Insert an event with a Meet conference request.

        Raises:
            ProviderUnavailable: Google did not create the event
        """
        calendar_id = credential.calendar_id or DEFAULT_CALENDAR_ID
        url = f"{GOOGLE_CALENDAR_API}/calendars/{quote(calendar_id, safe='')}/events"
        try:
            data = await self._request(
                "POST",
                url,
                access_token,
                json=event.to_google_event(),
                params={"conferenceDataVersion": "1"},
                action="create event",
            )
        except CredentialInvalid as e:
            # Event creation reports every rejection as a provider failure
            raise ProviderUnavailable("Failed to create calendar event", status=401) from e

        created = CreatedEvent.from_google_event(data)
        if not created.event_id:
            raise ProviderUnavailable("Failed to create calendar event")
        logger.info(f"Created calendar event {created.event_id} (meet link: {bool(created.meet_link)})")
        return created

    async def get_calendar_id(self, access_token: str) -> str:
        """Resolve the id of the primary calendar, falling back to "primary"."""
        try:
            data = await self._request(
                "GET",
                f"{GOOGLE_CALENDAR_API}/calendars/{DEFAULT_CALENDAR_ID}",
                access_token,
                action="calendar lookup",
            )
        except (CredentialInvalid, ProviderUnavailable):
            return DEFAULT_CALENDAR_ID
        return data.get("id") or DEFAULT_CALENDAR_ID

    async def _request(self, method: str, url: str, access_token: str, action: str, **kwargs) -> dict:
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            async with self._session_factory() as session:
                async with session.request(method, url, headers=headers, **kwargs) as resp:
                    if resp.status == 401:
                        error_text = await resp.text()
                        logger.error(f"Google Calendar {action} unauthorized: {error_text}")
                        raise CredentialInvalid()
                    if resp.status < 200 or resp.status >= 300:
                        error_text = await resp.text()
                        logger.error(f"Google Calendar {action} failed: {resp.status} {error_text}")
                        raise ProviderUnavailable(status=resp.status)
                    return await resp.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.error(f"Google Calendar {action} request error: {e}")
            raise ProviderUnavailable() from e


# Singleton instance
google_calendar = GoogleCalendarClient()
