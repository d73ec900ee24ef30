from healthsync.models.notification import Notification, NotificationType
from healthsync.services.notifications import notify

from helpers import auth, fresh_session


def _seed(db, user, count=2):
    for i in range(count):
        notify(db, user.id, NotificationType.SYSTEM, f"note {i}")
    db.commit()


def test_feed_is_newest_first_and_private(client, db, patient, doctor):
    _seed(db, patient)
    _seed(db, doctor, count=1)

    feed = client.get("/api/notifications", headers=auth(patient)).json()
    assert [n["message"] for n in feed] == ["note 1", "note 0"]
    assert all(n["isRead"] is False for n in feed)


def test_mark_one_read(client, db, patient, doctor):
    _seed(db, patient, count=1)
    note_id = fresh_session().query(Notification).one().id

    assert client.patch(f"/api/notifications/{note_id}/read", headers=auth(doctor)).status_code == 404

    response = client.patch(f"/api/notifications/{note_id}/read", headers=auth(patient))
    assert response.status_code == 200
    assert response.json()["isRead"] is True


def test_mark_all_read_only_touches_own(client, db, patient, doctor):
    _seed(db, patient)
    _seed(db, doctor, count=1)

    response = client.patch("/api/notifications/read-all", headers=auth(patient))
    assert response.status_code == 200

    session = fresh_session()
    assert all(n.is_read for n in session.query(Notification).filter(Notification.user_id == patient.id))
    assert not session.query(Notification).filter(Notification.user_id == doctor.id).one().is_read


def test_notify_waits_for_the_callers_commit(db, patient):
    notify(db, patient.id, NotificationType.SYSTEM, "queued")
    assert fresh_session().query(Notification).count() == 0
    db.rollback()
    assert fresh_session().query(Notification).count() == 0
