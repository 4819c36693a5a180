import enum
import uuid

from sqlalchemy import Column, String, DateTime, Enum, Integer, Uuid

from portal.core.database import Base
from portal.core.timeutils import utcnow


class UserRole(str, enum.Enum):
    CLIENT = "CLIENT"
    TBB_STAFF = "TBB_STAFF"
    ADMIN = "ADMIN"


class User(Base):
    __tablename__ = "users"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String, unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    role = Column(Enum(UserRole, name="user_role"), nullable=False, index=True)

    # Google Calendar credential (admin only). Tokens are Fernet-encrypted.
    google_calendar_id = Column(String, nullable=True)
    google_access_token = Column(String, nullable=True)
    google_refresh_token = Column(String, nullable=True)
    google_token_expiry = Column(DateTime(timezone=True), nullable=True)
    google_token_version = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    @property
    def is_staff(self) -> bool:
        return self.role in (UserRole.TBB_STAFF, UserRole.ADMIN)

    @property
    def has_calendar_connected(self) -> bool:
        return bool(self.google_access_token)

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
