from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List, Optional
from healthsync.database import get_db, unit_of_work
from healthsync.models.user import User, Role
from healthsync.models.health_log import HealthLog, Mood
from healthsync.core.security import require_role
from healthsync.schemas import CamelModel, HealthLogResponse, UtcDateTime

router = APIRouter(prefix="/api/logs", tags=["health logs"])


class Vitals(CamelModel):
    blood_pressure: Optional[str] = None
    heart_rate: Optional[float] = None
    temperature: Optional[float] = None
    weight: Optional[float] = None


class HealthLogCreate(CamelModel):
    date: Optional[UtcDateTime] = None
    symptoms: Optional[str] = None
    mood: Optional[Mood] = None
    sleep_hours: Optional[float] = None
    water_intake: Optional[float] = None
    vitals: Optional[Vitals] = None


def build_health_log(payload: HealthLogCreate, user_id: int, recorded_by_id: Optional[int] = None) -> HealthLog:
    log = HealthLog(
        user_id=user_id,
        symptoms=payload.symptoms,
        mood=payload.mood or Mood.NEUTRAL,
        sleep_hours=payload.sleep_hours,
        water_intake=payload.water_intake,
        vitals=payload.vitals.model_dump(by_alias=True, exclude_none=True) if payload.vitals else None,
        recorded_by_id=recorded_by_id,
    )
    if payload.date is not None:
        log.date = payload.date
    return log


def logs_for(db: Session, user_id: int) -> List[HealthLog]:
    return db.query(HealthLog).filter(HealthLog.user_id == user_id).order_by(HealthLog.date.desc()).all()


def record_log(db: Session, payload: HealthLogCreate, user_id: int, recorded_by_id: Optional[int] = None) -> HealthLog:
    log = build_health_log(payload, user_id=user_id, recorded_by_id=recorded_by_id)
    with unit_of_work(db):
        db.add(log)
    db.refresh(log)
    return log


@router.get("", response_model=List[HealthLogResponse])
async def get_logs(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    return logs_for(db, current_user.id)


@router.post("", response_model=HealthLogResponse, status_code=status.HTTP_201_CREATED)
async def create_log(
    payload: HealthLogCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(Role.PATIENT))
):
    return record_log(db, payload, user_id=current_user.id)
