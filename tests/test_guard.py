import pytest

from healthsync.core.errors import Forbidden
from healthsync.services import connections
from healthsync.services.guard import ensure_care_relationship, is_authorized

from helpers import auth


def test_is_authorized_follows_the_link(db, doctor, patient, link):
    assert not is_authorized(db, doctor.id, patient.id)
    link(doctor, patient)
    assert is_authorized(db, doctor.id, patient.id)
    # Direction matters: the patient is not the doctor's doctor
    assert not is_authorized(db, patient.id, doctor.id)


def test_unlink_revokes_authorization(db, linked):
    doctor, patient = linked
    connections.unlink(db, doctor.id, patient.id, initiated_by=doctor)
    assert not is_authorized(db, doctor.id, patient.id)
    with pytest.raises(Forbidden):
        ensure_care_relationship(db, doctor, patient.id)


def test_unknown_ids_are_not_authorized(db, doctor):
    assert not is_authorized(db, doctor.id, 4242)
    assert not is_authorized(db, 4242, doctor.id)


def test_unlinked_doctor_cannot_read_patient_logs(client, doctor, other_doctor, patient, link):
    link(doctor, patient)
    assert client.get(f"/api/doctor/patient/{patient.id}/logs", headers=auth(doctor)).status_code == 200

    response = client.get(f"/api/doctor/patient/{patient.id}/logs", headers=auth(other_doctor))
    assert response.status_code == 403
    assert response.json() == {"detail": "Not authorized to access this patient", "error": "forbidden"}


def test_patient_endpoints_refuse_doctors(client, doctor, patient):
    assert client.get("/api/medications", headers=auth(doctor)).status_code == 403
    assert client.get("/api/doctor/patients", headers=auth(patient)).status_code == 403


def test_requests_without_token_are_unauthorized(client):
    assert client.get("/api/doctor/patients").status_code == 401
    assert client.get("/api/doctor/patients", headers={"Authorization": "Bearer nonsense"}).status_code == 401
