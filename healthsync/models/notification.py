from sqlalchemy import Boolean, Column, Integer, DateTime, Text, ForeignKey, Enum
from sqlalchemy.orm import relationship
import enum
from healthsync.database import Base, utcnow


class NotificationType(str, enum.Enum):
    PRESCRIPTION = "prescription"
    CONNECTION = "connection"
    APPOINTMENT = "appointment"
    SYSTEM = "system"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(NotificationType), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)

    # Id of the appointment, medication, request or user the notification is about
    related_id = Column(Integer, nullable=True)

    # Relationships
    user = relationship("User", back_populates="notifications")
