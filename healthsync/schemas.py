"""Response models shared by several routers.

Request bodies live next to the endpoints that accept them. All models speak
camelCase on the wire and also accept snake_case input.
"""

from datetime import datetime, timezone
from typing import Annotated, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from healthsync.models.appointment import AppointmentStatus
from healthsync.models.connection_request import RequestStatus
from healthsync.models.health_log import Mood
from healthsync.models.medication import MedicationStatus
from healthsync.models.notification import NotificationType
from healthsync.models.user import DoctorStatus, Role


def _as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# Columns store naive UTC, so incoming aware datetimes are converted first
UtcDateTime = Annotated[datetime, AfterValidator(_as_naive_utc)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class UserSummary(CamelModel):
    id: int
    name: str
    email: str
    role: Role
    specialization: Optional[str] = None


class UserResponse(UserSummary):
    status: DoctorStatus
    license_number: Optional[str] = None
    connection_code: Optional[str] = None
    created_at: Optional[datetime] = None


class ConnectionRequestResponse(CamelModel):
    id: int
    doctor_id: int
    patient_id: int
    status: RequestStatus
    message: Optional[str] = None
    created_at: datetime
    doctor: Optional[UserSummary] = None
    patient: Optional[UserSummary] = None


class MedicationResponse(CamelModel):
    id: int
    user_id: int
    name: str
    dosage: str
    frequency: str
    start_date: datetime
    end_date: Optional[datetime] = None
    time_of_intake: List[str] = []
    instructions: Optional[str] = None
    status: MedicationStatus
    prescribed_by: Optional[int] = Field(
        default=None, validation_alias="prescribed_by_id", serialization_alias="prescribedBy"
    )
    prescriber: Optional[UserSummary] = None
    user: Optional[UserSummary] = None


class AppointmentResponse(CamelModel):
    id: int
    user_id: int
    doctor_id: Optional[int] = None
    doctor_name: str
    date: datetime
    location: Optional[str] = None
    notes: Optional[str] = None
    status: AppointmentStatus
    cancellation_reason: Optional[str] = None
    chat_available: bool = False
    created_at: Optional[datetime] = None
    user: Optional[UserSummary] = None


class NotificationResponse(CamelModel):
    id: int
    type: NotificationType
    message: str
    is_read: bool
    related_id: Optional[int] = None
    created_at: datetime


class MessageResponse(CamelModel):
    id: int
    appointment_id: int
    sender_id: int
    text: str
    created_at: datetime


class HealthLogResponse(CamelModel):
    id: int
    user_id: int
    date: datetime
    symptoms: Optional[str] = None
    mood: Optional[Mood] = None
    sleep_hours: Optional[float] = None
    water_intake: Optional[float] = None
    vitals: Optional[dict] = None
    recorded_by_id: Optional[int] = None


class UnlinkResponse(CamelModel):
    message: str
    cancelled_appointments: int
    handed_over_medications: int
