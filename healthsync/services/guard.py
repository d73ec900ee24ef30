"""Care relationship checks shared by every doctor-facing operation."""

from sqlalchemy import and_, exists, select
from sqlalchemy.orm import Session

from healthsync.core.errors import Forbidden
from healthsync.models.user import User, care_links


def is_authorized(db: Session, doctor_id: int, patient_id: int) -> bool:
    """True when the doctor is currently linked to the patient."""
    stmt = select(
        exists().where(
            and_(care_links.c.doctor_id == doctor_id, care_links.c.patient_id == patient_id)
        )
    )
    return bool(db.execute(stmt).scalar())


def ensure_care_relationship(db: Session, doctor: User, patient_id: int) -> None:
    if not is_authorized(db, doctor.id, patient_id):
        raise Forbidden("Not authorized to access this patient")
