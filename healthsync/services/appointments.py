import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from healthsync.core.errors import Conflict, Forbidden, NotFound, ValidationFailed
from healthsync.database import unit_of_work
from healthsync.models.appointment import Appointment, AppointmentStatus
from healthsync.models.notification import NotificationType
from healthsync.models.user import User
from healthsync.services.connections import get_approved_doctor
from healthsync.services.guard import ensure_care_relationship, is_authorized
from healthsync.services.notifications import doctor_label, notify

logger = logging.getLogger(__name__)

TRANSITIONS = {
    AppointmentStatus.PENDING: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED},
    AppointmentStatus.UPCOMING: {AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED},
    AppointmentStatus.CANCELLED: set(),
    AppointmentStatus.COMPLETED: set(),
}

PATIENT_EDITABLE_FIELDS = ("date", "location", "notes")


def can_transition(current: AppointmentStatus, target: AppointmentStatus) -> bool:
    return target in TRANSITIONS[current]


def book(
    db: Session,
    patient: User,
    date,
    doctor_id: Optional[int] = None,
    doctor_name: Optional[str] = None,
    location: Optional[str] = None,
    notes: Optional[str] = None,
) -> Appointment:
    """Book with a linked doctor (starts pending) or with a free-text doctor name (starts upcoming)."""
    if date is None:
        raise ValidationFailed("Please complete required fields")

    if doctor_id is not None:
        doctor = get_approved_doctor(db, doctor_id)
        if not is_authorized(db, doctor.id, patient.id):
            raise Forbidden("You can only book appointments with your connected doctors")
        appointment = Appointment(
            user_id=patient.id,
            doctor_id=doctor.id,
            doctor_name=doctor.name,
            date=date,
            location=location,
            notes=notes,
            status=AppointmentStatus.PENDING,
        )
        with unit_of_work(db):
            db.add(appointment)
            db.flush()
            notify(
                db,
                doctor.id,
                NotificationType.APPOINTMENT,
                f"{patient.name} requested an appointment for {date.strftime('%Y-%m-%d %H:%M')}.",
                related_id=appointment.id,
            )
        logger.info("patient %s requested appointment %s with doctor %s", patient.id, appointment.id, doctor.id)
    else:
        if not doctor_name or not location:
            raise ValidationFailed("Please complete required fields")
        appointment = Appointment(
            user_id=patient.id,
            doctor_name=doctor_name,
            date=date,
            location=location,
            notes=notes,
            status=AppointmentStatus.UPCOMING,
        )
        with unit_of_work(db):
            db.add(appointment)
    db.refresh(appointment)
    return appointment


def appointments_for_patient(db: Session, patient: User) -> List[Appointment]:
    return db.query(Appointment).filter(Appointment.user_id == patient.id).order_by(Appointment.date).all()


def appointments_for_doctor(db: Session, doctor: User) -> List[Appointment]:
    return db.query(Appointment).filter(Appointment.doctor_id == doctor.id).order_by(Appointment.date).all()


def _own_appointment(db: Session, patient: User, appointment_id: int) -> Appointment:
    appointment = db.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFound("Appointment not found")
    if appointment.user_id != patient.id:
        raise Forbidden("Not authorized")
    return appointment


def update_appointment(db: Session, patient: User, appointment_id: int, changes: dict) -> Appointment:
    """Patients may move or annotate their own appointment; status belongs to the doctor."""
    appointment = _own_appointment(db, patient, appointment_id)
    if "status" in changes:
        raise Forbidden("Only the doctor can change the appointment status")
    if appointment.status in (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED):
        raise Conflict(f"Cannot change a {appointment.status.value} appointment")
    if "date" in changes and changes["date"] is None:
        raise ValidationFailed("date cannot be empty")

    with unit_of_work(db):
        for field in PATIENT_EDITABLE_FIELDS:
            if field in changes:
                setattr(appointment, field, changes[field])
        if appointment.doctor_id is not None:
            notify(
                db,
                appointment.doctor_id,
                NotificationType.APPOINTMENT,
                f"{patient.name} updated the appointment for {appointment.date.strftime('%Y-%m-%d %H:%M')}.",
                related_id=appointment.id,
            )
    db.refresh(appointment)
    logger.info("patient %s updated appointment %s", patient.id, appointment_id)
    return appointment


def delete_appointment(db: Session, patient: User, appointment_id: int) -> None:
    appointment = _own_appointment(db, patient, appointment_id)
    with unit_of_work(db):
        if appointment.doctor_id is not None and appointment.status not in (
            AppointmentStatus.CANCELLED,
            AppointmentStatus.COMPLETED,
        ):
            notify(
                db,
                appointment.doctor_id,
                NotificationType.APPOINTMENT,
                f"{patient.name} removed the appointment for {appointment.date.strftime('%Y-%m-%d %H:%M')}.",
            )
        db.delete(appointment)
    logger.info("patient %s deleted appointment %s", patient.id, appointment_id)


def update_status(db: Session, doctor: User, appointment_id: int, target: AppointmentStatus) -> Appointment:
    appointment = db.get(Appointment, appointment_id)
    if appointment is None:
        raise NotFound("Appointment not found")
    if appointment.doctor_id != doctor.id:
        raise Forbidden("Not authorized")
    ensure_care_relationship(db, doctor, appointment.user_id)
    if not can_transition(appointment.status, target):
        raise Conflict(f"Cannot change a {appointment.status.value} appointment to {target.value}")

    with unit_of_work(db):
        appointment.status = target
        notify(
            db,
            appointment.user_id,
            NotificationType.APPOINTMENT,
            f"{doctor_label(doctor)} has {target.value} your appointment for {appointment.date.strftime('%Y-%m-%d')}",
            related_id=appointment.id,
        )
    db.refresh(appointment)
    logger.info("doctor %s moved appointment %s to %s", doctor.id, appointment_id, target.value)
    return appointment
