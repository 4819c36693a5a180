"""Google Calendar Integration"""

from .oauth import GoogleCalendarOAuth, google_oauth
from .client import GoogleCalendarClient, google_calendar
from .models import BusyInterval, CalendarCredential, CalendarEvent, CreatedEvent

__all__ = [
    "GoogleCalendarOAuth",
    "google_oauth",
    "GoogleCalendarClient",
    "google_calendar",
    "BusyInterval",
    "CalendarCredential",
    "CalendarEvent",
    "CreatedEvent",
]
