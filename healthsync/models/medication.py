from dataclasses import dataclass
from typing import Union
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, Text, JSON
from sqlalchemy.orm import relationship
import enum
from healthsync.database import Base, utcnow


class MedicationStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class SelfManaged:
    """The patient owns the medication and may edit or delete it."""


@dataclass(frozen=True)
class Prescribed:
    """Only the prescribing doctor may edit or delete the medication."""

    doctor_id: int


Ownership = Union[SelfManaged, Prescribed]


class Medication(Base):
    __tablename__ = "medications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String, nullable=False)
    dosage = Column(String, nullable=False)
    frequency = Column(String, nullable=False)  # e.g. "Daily", "Twice Daily"
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    time_of_intake = Column(JSON, default=list)  # ["08:00", "20:00"]
    instructions = Column(Text, nullable=True)
    status = Column(Enum(MedicationStatus), default=MedicationStatus.ACTIVE, nullable=False)
    prescribed_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", foreign_keys=[user_id], back_populates="medications")
    prescriber = relationship("User", foreign_keys=[prescribed_by_id], back_populates="prescriptions")

    @property
    def ownership(self) -> Ownership:
        if self.prescribed_by_id is None:
            return SelfManaged()
        return Prescribed(self.prescribed_by_id)
