import pytest

from healthsync.models.appointment import Appointment, AppointmentStatus
from healthsync.models.notification import Notification
from healthsync.models.user import DoctorStatus, Role
from healthsync.services.appointments import can_transition

from helpers import auth, fresh_session

S = AppointmentStatus


@pytest.mark.parametrize(
    "current, target, allowed",
    [
        (S.PENDING, S.CONFIRMED, True),
        (S.PENDING, S.CANCELLED, True),
        (S.PENDING, S.COMPLETED, False),
        (S.CONFIRMED, S.COMPLETED, True),
        (S.CONFIRMED, S.CANCELLED, True),
        (S.CONFIRMED, S.PENDING, False),
        (S.UPCOMING, S.CANCELLED, True),
        (S.CANCELLED, S.CONFIRMED, False),
        (S.COMPLETED, S.CANCELLED, False),
    ],
)
def test_transition_table(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_booking_with_linked_doctor_starts_pending(client, linked):
    doctor, patient = linked
    response = client.post(
        "/api/appointments",
        json={"doctorId": doctor.id, "date": "2026-11-02T14:00:00Z", "location": "Room 4"},
        headers=auth(patient),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "pending"
    assert body["doctorName"] == "Smith"
    assert body["chatAvailable"] is False

    [note] = fresh_session().query(Notification).filter(Notification.user_id == doctor.id).all()
    assert note.related_id == body["id"]
    assert note.message == "Jane Doe requested an appointment for 2026-11-02 14:00."

    listed = client.get("/api/doctor/appointments", headers=auth(doctor)).json()
    assert [a["id"] for a in listed] == [body["id"]]
    assert listed[0]["user"]["name"] == "Jane Doe"


def test_booking_requires_a_link(client, doctor, patient):
    response = client.post(
        "/api/appointments", json={"doctorId": doctor.id, "date": "2026-11-02T14:00:00"}, headers=auth(patient)
    )
    assert response.status_code == 403


def test_booking_with_unapproved_doctor_is_not_found(client, make_user, patient):
    pending = make_user("Pending Doc", role=Role.DOCTOR, status=DoctorStatus.PENDING)
    response = client.post(
        "/api/appointments", json={"doctorId": pending.id, "date": "2026-11-02T14:00:00"}, headers=auth(patient)
    )
    assert response.status_code == 404


def test_free_text_booking_is_upcoming(client, patient):
    response = client.post(
        "/api/appointments",
        json={"doctorName": "Dr. House", "date": "2026-11-02T14:00:00", "location": "Plainsboro"},
        headers=auth(patient),
    )
    assert response.status_code == 201
    assert response.json()["status"] == "upcoming"
    assert response.json()["doctorId"] is None

    response = client.post(
        "/api/appointments", json={"doctorName": "Dr. House", "date": "2026-11-02T14:00:00"}, headers=auth(patient)
    )
    assert response.status_code == 400


def test_doctor_confirms_and_patient_is_told(client, linked, make_appointment):
    doctor, patient = linked
    appointment = make_appointment(patient, doctor, status=S.PENDING)

    response = client.patch(
        f"/api/doctor/appointments/{appointment.id}/status", json={"status": "confirmed"}, headers=auth(doctor)
    )
    assert response.status_code == 200
    assert response.json()["status"] == "confirmed"

    [note] = fresh_session().query(Notification).filter(Notification.user_id == patient.id).all()
    assert note.message == f"Dr. Smith has confirmed your appointment for {appointment.date.strftime('%Y-%m-%d')}"


def test_terminal_states_cannot_move(client, linked, make_appointment):
    doctor, patient = linked
    appointment = make_appointment(patient, doctor, status=S.CANCELLED)

    response = client.patch(
        f"/api/doctor/appointments/{appointment.id}/status", json={"status": "confirmed"}, headers=auth(doctor)
    )
    assert response.status_code == 400
    assert response.json()["error"] == "conflict"
    assert fresh_session().get(Appointment, appointment.id).status == S.CANCELLED


def test_only_the_addressed_doctor_updates_status(client, linked, other_doctor, link, make_appointment):
    doctor, patient = linked
    link(other_doctor, patient)
    appointment = make_appointment(patient, doctor, status=S.PENDING)

    response = client.patch(
        f"/api/doctor/appointments/{appointment.id}/status", json={"status": "confirmed"}, headers=auth(other_doctor)
    )
    assert response.status_code == 403

    response = client.patch("/api/doctor/appointments/9999/status", json={"status": "confirmed"}, headers=auth(doctor))
    assert response.status_code == 404


def test_unlinked_doctor_cannot_update_status(client, doctor, patient, make_appointment):
    appointment = make_appointment(patient, doctor, status=S.PENDING)
    response = client.patch(
        f"/api/doctor/appointments/{appointment.id}/status", json={"status": "confirmed"}, headers=auth(doctor)
    )
    assert response.status_code == 403


def test_patient_lists_appointments_by_date(client, linked, make_appointment):
    doctor, patient = linked
    later = make_appointment(patient, doctor, hours_from_now=72)
    sooner = make_appointment(patient, doctor, hours_from_now=0)

    listed = client.get("/api/appointments", headers=auth(patient)).json()
    assert [a["id"] for a in listed] == [sooner.id, later.id]
    assert [a["chatAvailable"] for a in listed] == [True, False]


def test_patient_reschedules_own_appointment(client, linked, make_appointment):
    doctor, patient = linked
    appointment = make_appointment(patient, doctor, status=S.PENDING)

    response = client.put(
        f"/api/appointments/{appointment.id}",
        json={"date": "2026-12-01T09:30:00Z", "location": "Room 7", "notes": "Bring scans"},
        headers=auth(patient),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["date"] == "2026-12-01T09:30:00"
    assert body["location"] == "Room 7"
    assert body["notes"] == "Bring scans"
    assert body["status"] == "pending"

    [note] = fresh_session().query(Notification).filter(Notification.user_id == doctor.id).all()
    assert note.message == "Jane Doe updated the appointment for 2026-12-01 09:30."


def test_patient_cannot_change_status(client, linked, make_appointment):
    doctor, patient = linked
    appointment = make_appointment(patient, doctor, status=S.PENDING)

    response = client.put(
        f"/api/appointments/{appointment.id}", json={"status": "confirmed"}, headers=auth(patient)
    )
    assert response.status_code == 403
    assert fresh_session().get(Appointment, appointment.id).status == S.PENDING


def test_closed_appointments_cannot_be_edited(client, patient, make_appointment):
    appointment = make_appointment(patient, status=S.CANCELLED)
    response = client.put(f"/api/appointments/{appointment.id}", json={"notes": "again"}, headers=auth(patient))
    assert response.status_code == 400
    assert response.json()["error"] == "conflict"


def test_only_owner_edits_or_deletes(client, patient, make_user, make_appointment):
    appointment = make_appointment(patient, status=S.UPCOMING)
    stranger = make_user("Bob")

    assert client.put(f"/api/appointments/{appointment.id}", json={"notes": "x"}, headers=auth(stranger)).status_code == 403
    assert client.delete(f"/api/appointments/{appointment.id}", headers=auth(stranger)).status_code == 403
    assert client.put("/api/appointments/9999", json={"notes": "x"}, headers=auth(patient)).status_code == 404
    assert client.delete("/api/appointments/9999", headers=auth(patient)).status_code == 404
    assert fresh_session().get(Appointment, appointment.id) is not None


def test_patient_deletes_own_appointment(client, linked, make_appointment):
    doctor, patient = linked
    appointment = make_appointment(patient, doctor)

    response = client.delete(f"/api/appointments/{appointment.id}", headers=auth(patient))
    assert response.status_code == 200
    assert response.json() == {"id": appointment.id}

    session = fresh_session()
    assert session.get(Appointment, appointment.id) is None
    assert session.query(Notification).filter(Notification.user_id == doctor.id).count() == 1
    assert client.get("/api/appointments", headers=auth(patient)).json() == []
