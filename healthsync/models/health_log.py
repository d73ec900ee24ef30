from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, Float, Text, JSON
from sqlalchemy.orm import relationship
import enum
from healthsync.database import Base, utcnow


class Mood(str, enum.Enum):
    HAPPY = "Happy"
    NEUTRAL = "Neutral"
    SAD = "Sad"
    STRESSED = "Stressed"
    ANXIOUS = "Anxious"


class HealthLog(Base):
    __tablename__ = "health_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    date = Column(DateTime, default=utcnow)
    symptoms = Column(Text, nullable=True)
    mood = Column(Enum(Mood), default=Mood.NEUTRAL)
    sleep_hours = Column(Float, nullable=True)
    water_intake = Column(Float, nullable=True)
    vitals = Column(JSON, nullable=True)  # bloodPressure, heartRate, temperature, weight
    recorded_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow)

    # Relationships
    user = relationship("User", foreign_keys=[user_id], back_populates="health_logs")
    recorded_by = relationship("User", foreign_keys=[recorded_by_id])
