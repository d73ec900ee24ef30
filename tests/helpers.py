from healthsync.core.security import create_access_token
from healthsync.database import SessionLocal
from healthsync.models.user import User


def token_for(user):
    return create_access_token(data={"sub": user.email})


def auth(user):
    return {"Authorization": f"Bearer {token_for(user)}"}


def fresh_session():
    """A new session, so assertions read committed state only."""
    return SessionLocal()


def assert_mirrored(session, doctor_id, patient_id, linked):
    doctor = session.get(User, doctor_id)
    patient = session.get(User, patient_id)
    assert (patient in doctor.patients) is linked
    assert (doctor in patient.doctors) is linked
