from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import Field
from healthsync.database import get_db
from healthsync.models.user import User, Role
from healthsync.models.connection_request import RequestStatus
from healthsync.models.appointment import AppointmentStatus
from healthsync.models.medication import MedicationStatus
from healthsync.core.security import get_approved_doctor, require_role
from healthsync.schemas import (
    CamelModel,
    UserSummary,
    ConnectionRequestResponse,
    MedicationResponse,
    AppointmentResponse,
    HealthLogResponse,
    UnlinkResponse,
    UtcDateTime,
)
from healthsync.services import appointments as appointment_service
from healthsync.services import connections, prescriptions
from healthsync.services.guard import ensure_care_relationship
from healthsync.routers.health_logs import HealthLogCreate, logs_for, record_log

router = APIRouter(prefix="/api/doctor", tags=["doctor"])


class ConnectionCodeResponse(CamelModel):
    connection_code: str


class ConnectWithCode(CamelModel):
    connection_code: str = Field(..., min_length=1)


class RequestDecision(CamelModel):
    status: RequestStatus


class AppointmentStatusUpdate(CamelModel):
    status: AppointmentStatus


class PrescribedMedication(CamelModel):
    name: str = Field(..., min_length=1)
    dosage: str = Field(..., min_length=1)
    frequency: str = Field(..., min_length=1)
    start_date: UtcDateTime
    end_date: Optional[UtcDateTime] = None
    time_of_intake: List[str] = []


class PrescriptionCreate(CamelModel):
    patient_id: int
    medications: List[PrescribedMedication] = Field(..., min_length=1)
    notes: Optional[str] = None


class PrescriptionUpdate(CamelModel):
    name: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    start_date: Optional[UtcDateTime] = None
    end_date: Optional[UtcDateTime] = None
    time_of_intake: Optional[List[str]] = None
    instructions: Optional[str] = None
    status: Optional[MedicationStatus] = None


@router.get("/patients", response_model=List[UserSummary])
async def list_patients(current_user: User = Depends(get_approved_doctor)):
    return sorted(current_user.patients, key=lambda patient: patient.name)


@router.delete("/patients/{patient_id}", response_model=UnlinkResponse)
async def remove_patient(
    patient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_approved_doctor)
):
    result = connections.unlink(db, current_user.id, patient_id, initiated_by=current_user)
    return {"message": "Patient removed", **result}


@router.post("/generate-code", response_model=ConnectionCodeResponse)
async def generate_code(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_approved_doctor)
):
    code = connections.generate_connection_code(db, current_user)
    return {"connection_code": code}


@router.post("/connect")
async def connect_with_code(
    payload: ConnectWithCode,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    doctor = connections.connect_with_code(db, current_user, payload.connection_code)
    return {
        "message": f"Connected to Dr. {doctor.name}",
        "doctor": UserSummary.model_validate(doctor).model_dump(by_alias=True, mode="json"),
    }


@router.get("/patient/{patient_id}/logs", response_model=List[HealthLogResponse])
async def get_patient_logs(
    patient_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_approved_doctor)
):
    ensure_care_relationship(db, current_user, patient_id)
    return logs_for(db, patient_id)


@router.post("/patient/{patient_id}/logs", response_model=HealthLogResponse, status_code=status.HTTP_201_CREATED)
async def record_patient_log(
    patient_id: int,
    payload: HealthLogCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_approved_doctor)
):
    ensure_care_relationship(db, current_user, patient_id)
    return record_log(db, payload, user_id=patient_id, recorded_by_id=current_user.id)


@router.get("/appointments", response_model=List[AppointmentResponse])
async def get_appointments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_approved_doctor)
):
    return appointment_service.appointments_for_doctor(db, current_user)


@router.patch("/appointments/{appointment_id}/status", response_model=AppointmentResponse)
async def update_appointment_status(
    appointment_id: int,
    payload: AppointmentStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_approved_doctor)
):
    return appointment_service.update_status(db, current_user, appointment_id, payload.status)


@router.post("/prescribe", response_model=List[MedicationResponse], status_code=status.HTTP_201_CREATED)
async def prescribe(
    payload: PrescriptionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_approved_doctor)
):
    return prescriptions.prescribe(
        db,
        current_user,
        payload.patient_id,
        [med.model_dump() for med in payload.medications],
        notes=payload.notes,
    )


@router.get("/prescriptions", response_model=List[MedicationResponse])
async def get_prescriptions(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_approved_doctor)
):
    return prescriptions.prescriptions_by(db, current_user)


@router.put("/prescriptions/{medication_id}", response_model=MedicationResponse)
async def update_prescription(
    medication_id: int,
    payload: PrescriptionUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_approved_doctor)
):
    return prescriptions.update_prescription(db, current_user, medication_id, payload.model_dump(exclude_unset=True))


@router.delete("/prescriptions/{medication_id}")
async def delete_prescription(
    medication_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_approved_doctor)
):
    prescriptions.delete_prescription(db, current_user, medication_id)
    return {"message": "Deleted"}


@router.get("/requests", response_model=List[ConnectionRequestResponse])
async def get_requests(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_approved_doctor)
):
    return connections.pending_requests_for(db, current_user)


@router.put("/requests/{request_id}")
async def handle_request(
    request_id: int,
    payload: RequestDecision,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_approved_doctor)
):
    request = connections.respond_to_request(db, current_user, request_id, payload.status)
    return {
        "message": f"Request {request.status.value}",
        "request": ConnectionRequestResponse.model_validate(request).model_dump(by_alias=True, mode="json"),
    }
