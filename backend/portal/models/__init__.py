from portal.models.user import User, UserRole
from portal.models.meeting import Meeting, MeetingStatus, MeetingType

__all__ = ["User", "UserRole", "Meeting", "MeetingStatus", "MeetingType"]
