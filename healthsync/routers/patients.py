from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import Field
from healthsync.database import get_db
from healthsync.models.user import User, Role
from healthsync.core.security import require_role
from healthsync.schemas import CamelModel, UserSummary, ConnectionRequestResponse, UnlinkResponse, HealthLogResponse
from healthsync.routers.health_logs import HealthLogCreate, logs_for, record_log
from healthsync.services import connections

router = APIRouter(prefix="/api/patient", tags=["patient"])


class DoctorListing(CamelModel):
    id: int
    name: str
    specialization: Optional[str] = None


class ConnectionRequestCreate(CamelModel):
    doctor_id: int
    message: Optional[str] = Field(default=None, max_length=500)


@router.get("/doctors", response_model=List[DoctorListing])
async def list_doctors(
    search: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT, Role.CAREGIVER, Role.DOCTOR))
):
    return connections.search_doctors(db, search)


@router.get("/my-doctors", response_model=List[UserSummary])
async def list_my_doctors(current_user: User = Depends(require_role(Role.PATIENT))):
    return sorted(current_user.doctors, key=lambda doctor: doctor.name)


@router.delete("/doctors/{doctor_id}", response_model=UnlinkResponse)
async def remove_doctor(
    doctor_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    result = connections.unlink(db, doctor_id, current_user.id, initiated_by=current_user)
    return {"message": "Doctor removed", **result}


@router.post("/request-connection", response_model=ConnectionRequestResponse, status_code=status.HTTP_201_CREATED)
async def request_connection(
    payload: ConnectionRequestCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    return connections.request_connection(db, current_user, payload.doctor_id, payload.message)


@router.get("/requests", response_model=List[ConnectionRequestResponse])
async def get_my_requests(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    return connections.requests_by(db, current_user)


@router.delete("/requests/{request_id}")
async def cancel_request(
    request_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    connections.cancel_request(db, current_user, request_id)
    return {"message": "Request cancelled"}


@router.get("/logs", response_model=List[HealthLogResponse])
async def get_my_logs(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    return logs_for(db, current_user.id)


@router.post("/logs", response_model=HealthLogResponse, status_code=status.HTTP_201_CREATED)
async def create_my_log(
    payload: HealthLogCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    return record_log(db, payload, user_id=current_user.id)
