"""Doctor/patient linking: connection codes, connection requests and unlinking.

A link is a single ``care_links`` row, which ``User.patients`` and
``User.doctors`` both read, so every operation here keeps the two lists in
step by construction. Multi-row changes run inside ``unit_of_work`` and
either land completely or not at all.
"""

import logging
import secrets
from typing import List, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from healthsync.core.errors import Conflict, Forbidden, NotFound
from healthsync.database import unit_of_work, utcnow
from healthsync.models.appointment import Appointment, AppointmentStatus
from healthsync.models.connection_request import ConnectionRequest, RequestStatus
from healthsync.models.medication import Medication
from healthsync.models.notification import NotificationType
from healthsync.models.user import DoctorStatus, Role, User
from healthsync.services.guard import is_authorized
from healthsync.services.notifications import doctor_label, notify

logger = logging.getLogger(__name__)

CODE_PREFIX = "DOC-"
CODE_LENGTH = 6
CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"

CANCELLABLE_ON_UNLINK = (
    AppointmentStatus.PENDING,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.UPCOMING,
)


def _new_code() -> str:
    return CODE_PREFIX + "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def _approved_doctors(db: Session):
    return db.query(User).filter(User.role == Role.DOCTOR, User.status == DoctorStatus.APPROVED)


def get_approved_doctor(db: Session, doctor_id: int) -> User:
    doctor = _approved_doctors(db).filter(User.id == doctor_id).first()
    if doctor is None:
        raise NotFound("Doctor not found")
    return doctor


def _link(db: Session, doctor: User, patient: User) -> bool:
    """Add the link if missing. Returns False when it already existed."""
    if is_authorized(db, doctor.id, patient.id):
        return False
    doctor.patients.append(patient)
    return True


def generate_connection_code(db: Session, doctor: User) -> str:
    code = _new_code()
    while db.query(User).filter(User.connection_code == code).first() is not None:
        code = _new_code()
    with unit_of_work(db):
        doctor.connection_code = code
    logger.info("doctor %s rotated connection code", doctor.id)
    return code


def connect_with_code(db: Session, patient: User, code: str) -> User:
    doctor = _approved_doctors(db).filter(User.connection_code == code.strip()).first()
    if doctor is None:
        raise NotFound("Invalid connection code")
    if is_authorized(db, doctor.id, patient.id):
        raise Conflict("Already connected to this doctor")

    try:
        with unit_of_work(db):
            _link(db, doctor, patient)
            db.flush()
            # A code link settles any request still waiting for the same pair
            db.query(ConnectionRequest).filter(
                ConnectionRequest.doctor_id == doctor.id,
                ConnectionRequest.patient_id == patient.id,
                ConnectionRequest.status == RequestStatus.PENDING,
            ).update({"status": RequestStatus.ACCEPTED, "updated_at": utcnow()}, synchronize_session=False)
            notify(
                db,
                doctor.id,
                NotificationType.CONNECTION,
                f"{patient.name} connected with you using your connection code.",
                related_id=patient.id,
            )
    except IntegrityError:
        # Another request linked the same pair after our check
        raise Conflict("Already connected to this doctor")
    logger.info("patient %s linked to doctor %s by code", patient.id, doctor.id)
    return doctor


def request_connection(db: Session, patient: User, doctor_id: int, message: Optional[str] = None) -> ConnectionRequest:
    doctor = get_approved_doctor(db, doctor_id)
    if is_authorized(db, doctor.id, patient.id):
        raise Conflict("Already connected to this doctor")

    existing = db.query(ConnectionRequest).filter(
        ConnectionRequest.doctor_id == doctor.id,
        ConnectionRequest.patient_id == patient.id,
        ConnectionRequest.status == RequestStatus.PENDING,
    ).first()
    if existing:
        raise Conflict("Request already pending")

    request = ConnectionRequest(doctor_id=doctor.id, patient_id=patient.id, message=message)
    try:
        with unit_of_work(db):
            db.add(request)
            db.flush()
            notify(
                db,
                doctor.id,
                NotificationType.CONNECTION,
                f"{patient.name} sent you a connection request.",
                related_id=request.id,
            )
    except IntegrityError:
        # Lost a race against another request for the same pair
        raise Conflict("Request already pending")
    db.refresh(request)
    logger.info("patient %s requested connection with doctor %s", patient.id, doctor.id)
    return request


def respond_to_request(db: Session, doctor: User, request_id: int, new_status: RequestStatus) -> ConnectionRequest:
    if new_status not in (RequestStatus.ACCEPTED, RequestStatus.REJECTED):
        raise Conflict("Invalid status")

    request = db.get(ConnectionRequest, request_id)
    if request is None:
        raise NotFound("Request not found")
    if request.doctor_id != doctor.id:
        raise Forbidden("Not authorized")
    if request.status != RequestStatus.PENDING:
        raise Conflict("Request already handled")

    try:
        with unit_of_work(db):
            # Compare-and-set: only one responder can move the request off pending
            result = db.execute(
                update(ConnectionRequest)
                .where(ConnectionRequest.id == request_id, ConnectionRequest.status == RequestStatus.PENDING)
                .values(status=new_status, updated_at=utcnow())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                raise Conflict("Request already handled")

            if new_status == RequestStatus.ACCEPTED:
                _link(db, doctor, request.patient)
                db.flush()
                notify(
                    db,
                    request.patient_id,
                    NotificationType.CONNECTION,
                    f"{doctor_label(doctor)} accepted your connection request.",
                    related_id=doctor.id,
                )
    except IntegrityError:
        # The pair was linked by code while the request was being accepted
        raise Conflict("Already connected to this doctor")
    db.refresh(request)
    logger.info("doctor %s %s request %s", doctor.id, new_status.value, request_id)
    return request


def cancel_request(db: Session, patient: User, request_id: int) -> None:
    request = db.get(ConnectionRequest, request_id)
    if request is None:
        raise NotFound("Request not found")
    if request.patient_id != patient.id:
        raise Forbidden("Not authorized")
    if request.status != RequestStatus.PENDING:
        raise Conflict("Cannot cancel processed request")

    with unit_of_work(db):
        db.delete(request)
    logger.info("patient %s cancelled request %s", patient.id, request_id)


def _cancel_future_appointments(db: Session, doctor: User, patient: User, reason: str) -> int:
    appointments = db.query(Appointment).filter(
        Appointment.user_id == patient.id,
        Appointment.doctor_id == doctor.id,
        Appointment.date > utcnow(),
        Appointment.status.in_(CANCELLABLE_ON_UNLINK),
    ).all()
    for appointment in appointments:
        appointment.status = AppointmentStatus.CANCELLED
        appointment.cancellation_reason = reason
    db.flush()
    return len(appointments)


def _hand_over_medications(db: Session, doctor: User, patient: User) -> int:
    medications = db.query(Medication).filter(
        Medication.user_id == patient.id,
        Medication.prescribed_by_id == doctor.id,
    ).all()
    for medication in medications:
        medication.prescribed_by_id = None
    db.flush()
    return len(medications)


def _remove_link(db: Session, doctor: User, patient: User) -> None:
    doctor.patients.remove(patient)
    db.flush()


def unlink(db: Session, doctor_id: int, patient_id: int, initiated_by: User) -> dict:
    """Sever a link, cancelling future appointments and handing medications over to the patient."""
    doctor = db.get(User, doctor_id)
    patient = db.get(User, patient_id)
    if doctor is None or patient is None or not is_authorized(db, doctor_id, patient_id):
        raise NotFound("Connection not found")

    if initiated_by.id == doctor.id:
        reason = f"{doctor_label(doctor)} ended the care relationship"
        other_id, text = patient.id, f"{doctor_label(doctor)} disconnected from your care team."
    else:
        reason = f"{patient.name} disconnected from {doctor_label(doctor)}"
        other_id, text = doctor.id, f"{patient.name} disconnected from you."

    with unit_of_work(db):
        cancelled = _cancel_future_appointments(db, doctor, patient, reason)
        handed_over = _hand_over_medications(db, doctor, patient)
        _remove_link(db, doctor, patient)
        notify(db, other_id, NotificationType.CONNECTION, text, related_id=initiated_by.id)

    logger.info(
        "unlinked doctor %s and patient %s: %d appointments cancelled, %d medications handed over",
        doctor_id,
        patient_id,
        cancelled,
        handed_over,
    )
    return {"cancelled_appointments": cancelled, "handed_over_medications": handed_over}


def pending_requests_for(db: Session, doctor: User) -> List[ConnectionRequest]:
    return db.query(ConnectionRequest).filter(
        ConnectionRequest.doctor_id == doctor.id,
        ConnectionRequest.status == RequestStatus.PENDING,
    ).order_by(ConnectionRequest.created_at).all()


def requests_by(db: Session, patient: User) -> List[ConnectionRequest]:
    return db.query(ConnectionRequest).filter(
        ConnectionRequest.patient_id == patient.id
    ).order_by(ConnectionRequest.created_at.desc(), ConnectionRequest.id.desc()).all()


def search_doctors(db: Session, search: Optional[str] = None) -> List[User]:
    query = _approved_doctors(db)
    if search:
        query = query.filter(
            or_(User.name.ilike(f"%{search}%"), User.specialization.ilike(f"%{search}%"))
        )
    return query.order_by(User.name).all()
