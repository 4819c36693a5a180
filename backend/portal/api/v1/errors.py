from fastapi import HTTPException

from portal.services.scheduling.errors import (
    AuthError,
    CredentialInvalid,
    PersistenceError,
    ProviderUnavailable,
    SchedulingError,
    SlotNoLongerAvailable,
    ValidationError,
)

_STATUS_BY_ERROR = [
    (ValidationError, 400),
    (AuthError, 404),
    (CredentialInvalid, 401),
    (SlotNoLongerAvailable, 409),
    (ProviderUnavailable, 503),
    (PersistenceError, 500),
]


def to_http_exception(error: SchedulingError) -> HTTPException:
    """Map a scheduling failure to the response the portal UI expects"""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(error, error_type):
            detail = {"error": error.message}
            if isinstance(error, CredentialInvalid):
                detail["action"] = "reconnect_calendar"
            return HTTPException(status_code=status_code, detail=detail)
    return HTTPException(status_code=500, detail={"error": error.message})
