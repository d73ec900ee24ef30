from sqlalchemy.exc import OperationalError

from healthsync.core import scheduler
from healthsync.database import utcnow
from healthsync.models.appointment import Appointment, AppointmentStatus
from healthsync.models.notification import Notification

from helpers import fresh_session


def test_reminders_go_out_once(db, linked, make_appointment):
    doctor, patient = linked
    tomorrow = make_appointment(patient, doctor, hours_from_now=20)
    make_appointment(patient, doctor, hours_from_now=72)
    make_appointment(patient, doctor, hours_from_now=5, status=AppointmentStatus.PENDING)

    assert scheduler.send_appointment_reminders(db) == 1
    assert scheduler.send_appointment_reminders(db) == 0

    session = fresh_session()
    assert session.get(Appointment, tomorrow.id).reminder_sent
    notified = sorted(n.user_id for n in session.query(Notification).filter(Notification.related_id == tomorrow.id))
    assert notified == sorted([patient.id, doctor.id])


def test_elapsed_appointments_are_completed(db, linked, make_appointment):
    doctor, patient = linked
    old = make_appointment(patient, doctor, hours_from_now=-25)
    recent = make_appointment(patient, doctor, hours_from_now=-23)

    assert scheduler.complete_elapsed_appointments(db, now=utcnow()) == 1

    session = fresh_session()
    assert session.get(Appointment, old.id).status == AppointmentStatus.COMPLETED
    assert session.get(Appointment, recent.id).status == AppointmentStatus.CONFIRMED


def test_check_appointments_survives_storage_errors(monkeypatch, caplog):
    def broken(db, now=None):
        raise OperationalError("SELECT 1", {}, Exception("database is locked"))

    monkeypatch.setattr(scheduler, "send_appointment_reminders", broken)
    scheduler.check_appointments()
    assert "appointment check failed" in caplog.text


def test_check_appointments_runs_both_jobs(linked, make_appointment):
    doctor, patient = linked
    old = make_appointment(patient, doctor, hours_from_now=-30)
    soon = make_appointment(patient, doctor, hours_from_now=2)

    scheduler.check_appointments()

    session = fresh_session()
    assert session.get(Appointment, old.id).status == AppointmentStatus.COMPLETED
    assert session.get(Appointment, soon.id).reminder_sent
    assert session.query(Notification).count() == 2
