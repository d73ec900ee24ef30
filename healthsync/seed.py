"""Reset the database and load a small demo data set.

Run with ``python -m healthsync.seed``.
"""

import logging
from datetime import timedelta

from healthsync import database
from healthsync.core.log import configure_logging
from healthsync.core.security import get_password_hash
from healthsync.database import Base, SessionLocal, init_db, utcnow
from healthsync.models.appointment import Appointment, AppointmentStatus
from healthsync.models.health_log import HealthLog, Mood
from healthsync.models.medication import Medication
from healthsync.models.user import DoctorStatus, Role, User

logger = logging.getLogger(__name__)

DEMO_PASSWORD = "password123"


def seed():
    Base.metadata.drop_all(bind=database.engine)
    init_db()

    db = SessionLocal()
    try:
        hashed = get_password_hash(DEMO_PASSWORD)
        doctor = User(
            name="Smith",
            email="doctor@example.com",
            hashed_password=hashed,
            role=Role.DOCTOR,
            status=DoctorStatus.APPROVED,
            specialization="Cardiology",
            license_number="MD-99887",
            connection_code="DOC-A1B2C3",
        )
        patient = User(name="Jane Doe", email="patient@example.com", hashed_password=hashed, role=Role.PATIENT)
        db.add_all([doctor, patient])
        doctor.patients.append(patient)
        db.flush()

        now = utcnow()
        db.add_all([
            Medication(
                user_id=patient.id,
                name="Lisinopril",
                dosage="10mg",
                frequency="Daily",
                start_date=now - timedelta(days=30),
                time_of_intake=["08:00"],
                prescribed_by_id=doctor.id,
            ),
            Medication(
                user_id=patient.id,
                name="Vitamin D",
                dosage="1000 IU",
                frequency="Daily",
                start_date=now - timedelta(days=90),
            ),
            Appointment(
                user_id=patient.id,
                doctor_id=doctor.id,
                doctor_name=doctor.name,
                date=now + timedelta(minutes=30),
                location="City Heart Clinic",
                status=AppointmentStatus.CONFIRMED,
            ),
            HealthLog(
                user_id=patient.id,
                mood=Mood.HAPPY,
                sleep_hours=7.5,
                water_intake=2.0,
                vitals={"bloodPressure": "120/80", "heartRate": 72, "weight": 68},
            ),
        ])
        db.commit()
        logger.info("seeded %s and %s (password: %s)", doctor.email, patient.email, DEMO_PASSWORD)
    finally:
        db.close()


if __name__ == "__main__":
    configure_logging()
    seed()
