from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, Table
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from healthsync.database import Base


class Role(str, enum.Enum):
    PATIENT = "patient"
    CAREGIVER = "caregiver"
    DOCTOR = "doctor"


class DoctorStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"


# One row per link. User.doctors and User.patients are both views of it,
# so the two lists are always mirror images.
care_links = Table(
    "care_links",
    Base.metadata,
    Column("doctor_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("patient_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now()),
)


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    role = Column(Enum(Role), default=Role.PATIENT, nullable=False)
    status = Column(Enum(DoctorStatus), default=DoctorStatus.APPROVED, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # Doctor specific fields
    specialization = Column(String, nullable=True)
    license_number = Column(String, nullable=True)
    connection_code = Column(String, unique=True, nullable=True)

    # Relationships
    patients = relationship(
        "User",
        secondary=care_links,
        primaryjoin=id == care_links.c.doctor_id,
        secondaryjoin=id == care_links.c.patient_id,
        back_populates="doctors",
    )
    doctors = relationship(
        "User",
        secondary=care_links,
        primaryjoin=id == care_links.c.patient_id,
        secondaryjoin=id == care_links.c.doctor_id,
        back_populates="patients",
    )
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")
    medications = relationship(
        "Medication", foreign_keys="Medication.user_id", back_populates="user", cascade="all, delete-orphan"
    )
    prescriptions = relationship("Medication", foreign_keys="Medication.prescribed_by_id", back_populates="prescriber")
    appointments = relationship(
        "Appointment", foreign_keys="Appointment.user_id", back_populates="user", cascade="all, delete-orphan"
    )
    doctor_appointments = relationship("Appointment", foreign_keys="Appointment.doctor_id", back_populates="doctor")
    health_logs = relationship(
        "HealthLog", foreign_keys="HealthLog.user_id", back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def is_doctor(self) -> bool:
        return self.role == Role.DOCTOR

    @property
    def is_approved(self) -> bool:
        return self.status == DoctorStatus.APPROVED
