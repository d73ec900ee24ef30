"""Who may change a medication.

``Medication.ownership`` is either ``SelfManaged`` (patient edits it) or
``Prescribed(doctor_id)`` (only that doctor edits it). Patients and doctors go
through separate functions here, each refusing the other kind.
"""

import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from healthsync.core.errors import Forbidden, NotFound, ValidationFailed
from healthsync.database import unit_of_work
from healthsync.models.medication import Medication, MedicationStatus, Prescribed, SelfManaged
from healthsync.models.notification import NotificationType
from healthsync.models.user import User
from healthsync.services.guard import ensure_care_relationship
from healthsync.services.notifications import doctor_label, notify

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "dosage", "frequency", "start_date")
PROTECTED_FIELDS = ("id", "user_id", "prescribed_by_id", "created_at", "updated_at")
NON_NULL_FIELDS = REQUIRED_FIELDS + ("status",)


def _get_medication(db: Session, medication_id: int) -> Medication:
    medication = db.get(Medication, medication_id)
    if medication is None:
        raise NotFound("Medication not found")
    return medication


def _apply_changes(medication: Medication, changes: dict) -> None:
    for field, value in changes.items():
        if field in PROTECTED_FIELDS:
            continue
        if field in NON_NULL_FIELDS and value is None:
            raise ValidationFailed(f"{field} cannot be empty")
        setattr(medication, field, value)


def _ensure_prescribed_by(medication: Medication, doctor: User) -> None:
    ownership = medication.ownership
    if not (isinstance(ownership, Prescribed) and ownership.doctor_id == doctor.id):
        raise Forbidden("Not authorized")


def _ensure_self_managed(medication: Medication, patient: User) -> None:
    if medication.user_id != patient.id:
        raise Forbidden("User not authorized")
    if not isinstance(medication.ownership, SelfManaged):
        raise Forbidden("Prescribed medications can only be changed by the prescribing doctor")


def prescribe(
    db: Session,
    doctor: User,
    patient_id: int,
    medications: Iterable[dict],
    notes: Optional[str] = None,
) -> List[Medication]:
    ensure_care_relationship(db, doctor, patient_id)
    medications = list(medications)
    if not medications:
        raise ValidationFailed("At least one medication is required")

    created = []
    with unit_of_work(db):
        for med in medications:
            for field in REQUIRED_FIELDS:
                if not med.get(field):
                    raise ValidationFailed(f"Medication {field} is required")
            medication = Medication(
                user_id=patient_id,
                name=med["name"],
                dosage=med["dosage"],
                frequency=med["frequency"],
                start_date=med["start_date"],
                end_date=med.get("end_date"),
                time_of_intake=med.get("time_of_intake") or [],
                instructions=notes,
                status=MedicationStatus.ACTIVE,
                prescribed_by_id=doctor.id,
            )
            db.add(medication)
            created.append(medication)
        db.flush()
        notify(
            db,
            patient_id,
            NotificationType.PRESCRIPTION,
            f"{doctor_label(doctor)} prescribed new medication(s).",
            related_id=created[0].id,
        )
    for medication in created:
        db.refresh(medication)
    logger.info("doctor %s prescribed %d medication(s) to patient %s", doctor.id, len(created), patient_id)
    return created


def prescriptions_by(db: Session, doctor: User) -> List[Medication]:
    return db.query(Medication).filter(Medication.prescribed_by_id == doctor.id).order_by(Medication.id).all()


def update_prescription(db: Session, doctor: User, medication_id: int, changes: dict) -> Medication:
    medication = _get_medication(db, medication_id)
    _ensure_prescribed_by(medication, doctor)
    with unit_of_work(db):
        _apply_changes(medication, changes)
    db.refresh(medication)
    logger.info("doctor %s updated prescription %s", doctor.id, medication_id)
    return medication


def delete_prescription(db: Session, doctor: User, medication_id: int) -> None:
    medication = _get_medication(db, medication_id)
    _ensure_prescribed_by(medication, doctor)
    with unit_of_work(db):
        db.delete(medication)
    logger.info("doctor %s deleted prescription %s", doctor.id, medication_id)


def medications_for(db: Session, patient: User) -> List[Medication]:
    return db.query(Medication).filter(Medication.user_id == patient.id).order_by(Medication.start_date).all()


def create_medication(db: Session, patient: User, data: dict) -> Medication:
    for field in REQUIRED_FIELDS:
        if not data.get(field):
            raise ValidationFailed("Please complete all required fields")
    medication = Medication(user_id=patient.id)
    _apply_changes(medication, data)
    with unit_of_work(db):
        db.add(medication)
    db.refresh(medication)
    return medication


def update_medication(db: Session, patient: User, medication_id: int, changes: dict) -> Medication:
    medication = _get_medication(db, medication_id)
    _ensure_self_managed(medication, patient)
    with unit_of_work(db):
        _apply_changes(medication, changes)
    db.refresh(medication)
    return medication


def delete_medication(db: Session, patient: User, medication_id: int) -> None:
    medication = _get_medication(db, medication_id)
    _ensure_self_managed(medication, patient)
    with unit_of_work(db):
        db.delete(medication)
