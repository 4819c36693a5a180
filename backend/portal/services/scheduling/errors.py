"""Typed failures raised by the scheduling core.

Routers translate these into HTTP responses; nothing in the core retries
on them.
"""

from typing import Optional


class SchedulingError(Exception):
    """Base class. ``message`` is safe to show to the end user."""

    message = "Something went wrong while scheduling."

    def __init__(self, message: Optional[str] = None):
        if message:
            self.message = message
        super().__init__(self.message)


class ValidationError(SchedulingError):
    message = "Invalid booking request."


class AuthError(SchedulingError):
    message = "User not found."


class CredentialInvalid(SchedulingError):
    """The calendar credential is unusable; an admin must reconnect."""

    message = "Google Calendar authorization failed. Please reconnect your Google Calendar."


class ReauthRequired(CredentialInvalid):
    """Raised by the token refresher when a silent refresh is impossible."""

    message = "Failed to refresh Google token. Please reconnect Google Calendar."


class ProviderUnavailable(SchedulingError):
    """Transient upstream failure. Safe for the caller to resubmit."""

    message = "The calendar service is unavailable right now. Please try again."

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class SlotNoLongerAvailable(SchedulingError):
    message = "That time slot was just taken. Please pick another one."


class PersistenceError(SchedulingError):
    """A local write failed. ``google_event_id`` is set when a remote event already exists."""

    message = "Failed to create meeting."

    def __init__(self, message: Optional[str] = None, google_event_id: Optional[str] = None):
        super().__init__(message)
        self.google_event_id = google_event_id
