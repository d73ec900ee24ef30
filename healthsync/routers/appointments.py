from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional
from healthsync.database import get_db
from healthsync.models.user import User, Role
from healthsync.models.appointment import AppointmentStatus
from healthsync.core.security import require_role
from healthsync.schemas import CamelModel, AppointmentResponse, UtcDateTime
from healthsync.services import appointments as appointment_service

router = APIRouter(prefix="/api/appointments", tags=["appointments"])


class AppointmentCreate(CamelModel):
    date: Optional[UtcDateTime] = None
    doctor_id: Optional[int] = None
    doctor_name: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class AppointmentUpdate(CamelModel):
    date: Optional[UtcDateTime] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    # Refused by the service, status changes go through the doctor
    status: Optional[AppointmentStatus] = None


@router.get("", response_model=List[AppointmentResponse])
async def get_appointments(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    return appointment_service.appointments_for_patient(db, current_user)


@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    appointment: AppointmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    # With a doctorId the doctor has to confirm; free-text bookings are upcoming straight away
    return appointment_service.book(
        db,
        current_user,
        appointment.date,
        doctor_id=appointment.doctor_id,
        doctor_name=appointment.doctor_name,
        location=appointment.location,
        notes=appointment.notes,
    )


@router.put("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    payload: AppointmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    return appointment_service.update_appointment(
        db, current_user, appointment_id, payload.model_dump(exclude_unset=True)
    )


@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    appointment_service.delete_appointment(db, current_user, appointment_id)
    return {"id": appointment_id}
