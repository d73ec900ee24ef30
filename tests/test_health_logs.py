from healthsync.models.health_log import HealthLog

from helpers import auth, fresh_session


def test_patient_logs_their_day(client, patient):
    response = client.post(
        "/api/logs",
        json={
            "symptoms": "Mild headache",
            "mood": "Stressed",
            "sleepHours": 6.5,
            "vitals": {"bloodPressure": "130/85", "heartRate": 80},
        },
        headers=auth(patient),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["mood"] == "Stressed"
    assert body["vitals"] == {"bloodPressure": "130/85", "heartRate": 80.0}
    assert body["recordedById"] is None

    listed = client.get("/api/logs", headers=auth(patient)).json()
    assert [log["id"] for log in listed] == [body["id"]]


def test_mood_defaults_to_neutral(client, patient):
    response = client.post("/api/logs", json={}, headers=auth(patient))
    assert response.json()["mood"] == "Neutral"


def test_linked_doctor_records_and_reads_logs(client, linked, other_doctor):
    doctor, patient = linked
    response = client.post(
        f"/api/doctor/patient/{patient.id}/logs",
        json={"vitals": {"weight": 68}, "date": "2026-10-01T09:00:00+02:00"},
        headers=auth(doctor),
    )
    assert response.status_code == 201
    assert response.json()["recordedById"] == doctor.id
    assert response.json()["date"] == "2026-10-01T07:00:00"

    stored = fresh_session().query(HealthLog).one()
    assert stored.user_id == patient.id

    logs = client.get(f"/api/doctor/patient/{patient.id}/logs", headers=auth(doctor)).json()
    assert len(logs) == 1
    assert client.post(
        f"/api/doctor/patient/{patient.id}/logs", json={}, headers=auth(other_doctor)
    ).status_code == 403


def test_patient_log_routes_share_one_feed(client, patient, doctor):
    response = client.post("/api/patient/logs", json={"mood": "Happy", "waterIntake": 2}, headers=auth(patient))
    assert response.status_code == 201
    created = response.json()

    assert [log["id"] for log in client.get("/api/patient/logs", headers=auth(patient)).json()] == [created["id"]]
    assert [log["id"] for log in client.get("/api/logs", headers=auth(patient)).json()] == [created["id"]]
    assert client.get("/api/patient/logs", headers=auth(doctor)).status_code == 403
