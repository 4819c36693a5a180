import enum
import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from portal.core.database import Base
from portal.core.timeutils import as_utc, utcnow


class MeetingStatus(str, enum.Enum):
    SCHEDULED = "SCHEDULED"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    NO_SHOW = "NO_SHOW"


class MeetingType(str, enum.Enum):
    VIRTUAL = "VIRTUAL"
    IN_PERSON = "IN_PERSON"
    PHONE = "PHONE"


TITLE_MAX_LENGTH = 255
DESCRIPTION_MAX_LENGTH = 1000
NOTES_MAX_LENGTH = 2000


class Meeting(Base):
    __tablename__ = "meetings"
    __table_args__ = (
        CheckConstraint("end_time > start_time", name="ck_meetings_end_after_start"),
        Index("idx_meetings_client_start", "client_id", "start_time"),
        Index("idx_meetings_staff_start", "tbb_staff_id", "start_time"),
        Index("idx_meetings_project_start", "project_id", "start_time"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)

    title = Column(String(TITLE_MAX_LENGTH), nullable=False)
    description = Column(Text, nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False, index=True)
    end_time = Column(DateTime(timezone=True), nullable=False)

    # Participants
    client_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    tbb_staff_id = Column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=False)
    project_id = Column(Uuid(as_uuid=True), nullable=True)  # projects live outside this service

    status = Column(
        Enum(MeetingStatus, name="meeting_status"),
        nullable=False,
        default=MeetingStatus.SCHEDULED,
        index=True,
    )
    meeting_type = Column(
        Enum(MeetingType, name="meeting_type"),
        nullable=False,
        default=MeetingType.VIRTUAL,
    )

    # Remote calendar event
    google_meet_link = Column(String, nullable=True)
    google_event_id = Column(String, nullable=True)

    location = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    reminder_sent = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    client = relationship("User", foreign_keys=[client_id], lazy="joined")
    tbb_staff = relationship("User", foreign_keys=[tbb_staff_id], lazy="joined")

    @property
    def duration_minutes(self) -> int:
        return round((self.end_time - self.start_time).total_seconds() / 60)

    def is_upcoming(self, now: datetime) -> bool:
        return as_utc(self.start_time) > now and self.status != MeetingStatus.CANCELLED

    def __repr__(self):
        return f"<Meeting(id={self.id}, title={self.title}, status={self.status})>"
