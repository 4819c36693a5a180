"""Calendar data models"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

DEFAULT_CALENDAR_ID = "primary"


@dataclass(frozen=True)
class CalendarCredential:
    """OAuth credential for the single admin calendar.

    Holds decrypted tokens; never serialize this to a client. Components
    receive it as an argument and return updated copies instead of
    mutating it.
    """

    owner_id: str
    access_token: str
    refresh_token: Optional[str]
    token_expiry: Optional[datetime]
    calendar_id: str = DEFAULT_CALENDAR_ID
    version: int = 0

    def is_expired(self, now: datetime) -> bool:
        if self.token_expiry is None:
            return False
        return self.token_expiry <= now

    def __repr__(self) -> str:
        return (
            f"CalendarCredential(owner_id={self.owner_id!r}, calendar_id={self.calendar_id!r}, "
            f"token_expiry={self.token_expiry!r}, version={self.version})"
        )


@dataclass(frozen=True)
class BusyInterval:
    """Half-open busy range ``[start, end)``."""

    start: datetime
    end: datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return start < self.end and end > self.start


@dataclass
class Attendee:
    email: str
    display_name: Optional[str] = None


@dataclass
class CalendarEvent:
    """Represents a meeting event for Google Calendar"""

    title: str
    description: str
    start_time: datetime            # UTC
    end_time: datetime              # UTC
    conference_request_id: str      # Keys the Meet link request; retries reuse it
    attendees: list[Attendee] = field(default_factory=list)

    def to_google_event(self) -> dict:
        """Convert to Google Calendar API event format"""
        return {
            "summary": self.title,
            "description": self.description or "",
            "start": {
                "dateTime": self.start_time.isoformat(),
                "timeZone": "UTC",
            },
            "end": {
                "dateTime": self.end_time.isoformat(),
                "timeZone": "UTC",
            },
            "attendees": [
                {"email": a.email, "displayName": a.display_name}
                for a in self.attendees
                if a.email
            ],
            "conferenceData": {
                "createRequest": {
                    "requestId": self.conference_request_id,
                    "conferenceSolutionKey": {"type": "hangoutsMeet"},
                },
            },
        }


@dataclass
class CreatedEvent:
    event_id: str
    meet_link: Optional[str]
    raw: dict[str, Any]

    @classmethod
    def from_google_event(cls, data: dict[str, Any]) -> "CreatedEvent":
        entry_points = (data.get("conferenceData") or {}).get("entryPoints") or []
        meet_link = next(
            (ep.get("uri") for ep in entry_points if ep.get("entryPointType") == "video"),
            None,
        )
        return cls(event_id=data.get("id") or "", meet_link=meet_link, raw=data)
