from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from healthsync import database
from healthsync.database import SessionLocal, init_db, utcnow
from healthsync.main import app
from healthsync.models.appointment import Appointment, AppointmentStatus
from healthsync.models.medication import Medication
from healthsync.models.user import DoctorStatus, Role, User


@pytest.fixture(autouse=True)
def engine(tmp_path):
    engine = database.configure(f"sqlite:///{tmp_path / 'healthsync-test.db'}")
    init_db()
    yield engine
    engine.dispose()


@pytest.fixture
def db(engine):
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def client(engine):
    # Not used as a context manager, so startup hooks (and the scheduler) stay off
    return TestClient(app)


@pytest.fixture
def make_user(db):
    def _make(name, role=Role.PATIENT, status=DoctorStatus.APPROVED, **fields):
        user = User(
            name=name,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            hashed_password="not-used",
            role=role,
            status=status,
            **fields,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def doctor(make_user):
    return make_user("Smith", role=Role.DOCTOR, specialization="Cardiology")


@pytest.fixture
def other_doctor(make_user):
    return make_user("Jones", role=Role.DOCTOR, specialization="Dermatology")


@pytest.fixture
def patient(make_user):
    return make_user("Jane Doe")


@pytest.fixture
def link(db):
    def _link(doctor, patient):
        doctor.patients.append(patient)
        db.commit()

    return _link


@pytest.fixture
def linked(link, doctor, patient):
    link(doctor, patient)
    return doctor, patient


@pytest.fixture
def make_appointment(db):
    def _make(patient, doctor=None, hours_from_now=48, status=AppointmentStatus.CONFIRMED, **fields):
        appointment = Appointment(
            user_id=patient.id,
            doctor_id=doctor.id if doctor else None,
            doctor_name=doctor.name if doctor else fields.pop("doctor_name", "Dr. Who"),
            date=utcnow() + timedelta(hours=hours_from_now),
            location="Clinic",
            status=status,
            **fields,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _make


@pytest.fixture
def make_medication(db):
    def _make(patient, doctor=None, name="Lisinopril"):
        medication = Medication(
            user_id=patient.id,
            name=name,
            dosage="10mg",
            frequency="Daily",
            start_date=utcnow(),
            prescribed_by_id=doctor.id if doctor else None,
        )
        db.add(medication)
        db.commit()
        db.refresh(medication)
        return medication

    return _make
