from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional
from healthsync.database import get_db
from healthsync.models.user import User, Role
from healthsync.models.medication import MedicationStatus
from healthsync.core.security import require_role
from healthsync.schemas import CamelModel, MedicationResponse, UtcDateTime
from healthsync.services import prescriptions

router = APIRouter(prefix="/api/medications", tags=["medications"])


class MedicationCreate(CamelModel):
    name: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    start_date: Optional[UtcDateTime] = None
    end_date: Optional[UtcDateTime] = None
    time_of_intake: List[str] = []
    instructions: Optional[str] = None


class MedicationUpdate(CamelModel):
    name: Optional[str] = None
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    start_date: Optional[UtcDateTime] = None
    end_date: Optional[UtcDateTime] = None
    time_of_intake: Optional[List[str]] = None
    instructions: Optional[str] = None
    status: Optional[MedicationStatus] = None


@router.get("", response_model=List[MedicationResponse])
async def get_medications(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    return prescriptions.medications_for(db, current_user)


@router.post("", response_model=MedicationResponse, status_code=status.HTTP_201_CREATED)
async def create_medication(
    payload: MedicationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    return prescriptions.create_medication(db, current_user, payload.model_dump())


@router.put("/{medication_id}", response_model=MedicationResponse)
async def update_medication(
    medication_id: int,
    payload: MedicationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    return prescriptions.update_medication(db, current_user, medication_id, payload.model_dump(exclude_unset=True))


@router.delete("/{medication_id}")
async def delete_medication(
    medication_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    prescriptions.delete_medication(db, current_user, medication_id)
    return {"id": medication_id}
