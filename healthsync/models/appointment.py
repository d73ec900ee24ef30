from datetime import datetime, timedelta
from sqlalchemy import Boolean, Column, Integer, String, ForeignKey, DateTime, Enum, Text
from sqlalchemy.orm import relationship
import enum
from healthsync.database import Base, utcnow

CHAT_OPENS_BEFORE = timedelta(hours=1)
CHAT_CLOSES_AFTER = timedelta(hours=24)


class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    UPCOMING = "upcoming"  # free-text bookings with no doctor account


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    doctor_name = Column(String, nullable=False)
    date = Column(DateTime, nullable=False)
    location = Column(String, nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(Enum(AppointmentStatus), default=AppointmentStatus.UPCOMING, nullable=False)
    cancellation_reason = Column(String, nullable=True)
    reminder_sent = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", foreign_keys=[user_id], back_populates="appointments")
    doctor = relationship("User", foreign_keys=[doctor_id], back_populates="doctor_appointments")
    messages = relationship(
        "Message", back_populates="appointment", order_by="Message.id", cascade="all, delete-orphan"
    )

    @property
    def participant_ids(self):
        return {pid for pid in (self.user_id, self.doctor_id) if pid is not None}

    def chat_open(self, now: datetime = None) -> bool:
        """Chat runs from an hour before a confirmed appointment to a day after it."""
        now = now or utcnow()
        if self.status != AppointmentStatus.CONFIRMED:
            return False
        return self.date - CHAT_OPENS_BEFORE <= now <= self.date + CHAT_CLOSES_AFTER

    @property
    def chat_available(self) -> bool:
        return self.chat_open()
