from datetime import datetime, timedelta, timezone

import notifications
from database import utcnow


def notify(user, **extra):
    data = {"recipient": str(user["_id"]), "title": "Heads up", "message": "Something happened", "type": "info"}
    return notifications.create_notification({**data, **extra})


def test_mark_all_read_zeroes_unread_count(client, plain_user, user_headers):
    for _ in range(3):
        notify(plain_user)
    assert client.get("/api/notifications", headers=user_headers).json()["unreadCount"] == 3

    response = client.put("/api/notifications/read", headers=user_headers)
    assert response.status_code == 200
    assert response.json()["unreadCount"] == 0
    assert notifications.unread_count(str(plain_user["_id"])) == 0


def test_mark_selected_read(client, plain_user, user_headers):
    first = notify(plain_user)
    notify(plain_user)
    response = client.put("/api/notifications/read", json={"notification_ids": [first]}, headers=user_headers)
    assert response.json()["unreadCount"] == 1


def test_expired_notifications_are_excluded(client, mongo, plain_user, user_headers):
    notify(plain_user, title="Live")
    notify(plain_user, title="Stale", expires_at=utcnow() - timedelta(minutes=1))
    notify(plain_user, title="Later", expires_at=datetime.now(timezone.utc) + timedelta(days=1))

    body = client.get("/api/notifications", headers=user_headers).json()
    assert sorted(n["title"] for n in body["data"]) == ["Later", "Live"]
    assert body["unreadCount"] == 2
    unread = client.get("/api/notifications", params={"unread": "true"}, headers=user_headers).json()
    assert len(unread["data"]) == 2
    assert mongo["notification"].count_documents({}) == 3


def test_notification_becomes_invisible_after_expiry(plain_user):
    uid = str(plain_user["_id"])
    notify(plain_user, expires_at=utcnow() + timedelta(seconds=30))
    assert notifications.unread_count(uid) == 1
    later = utcnow() + timedelta(minutes=1)
    assert notifications.db["notification"].count_documents(
        {"recipient": uid, "read": False, **notifications.not_expired(later)}
    ) == 0


def test_purge_expired(client, plain_user, superadmin_headers, mongo):
    notify(plain_user, expires_at=utcnow() - timedelta(hours=1))
    notify(plain_user)
    response = client.delete("/api/notifications/expired", headers=superadmin_headers)
    assert response.json()["message"] == "1 expired notifications deleted"
    assert mongo["notification"].count_documents({}) == 1


def test_users_only_touch_their_own(client, plain_user, admin_user, user_headers):
    theirs = notify(admin_user)
    assert client.put(f"/api/notifications/{theirs}/read", headers=user_headers).status_code == 404
    assert client.delete(f"/api/notifications/{theirs}", headers=user_headers).status_code == 404

    mine = notify(plain_user)
    response = client.put(f"/api/notifications/{mine}/read", headers=user_headers)
    assert response.json()["data"]["read"] is True
    assert client.delete(f"/api/notifications/{mine}", headers=user_headers).status_code == 200


def test_system_notification_defaults_to_admins(client, mongo, superadmin, admin_user, plain_user,
                                                 superadmin_headers):
    response = client.post("/api/notifications/system", json={"title": "Maintenance", "message": "Tonight at 11"},
                           headers=superadmin_headers)
    assert response.status_code == 201
    recipients = {n["recipient"] for n in mongo["notification"].find({})}
    assert recipients == {str(superadmin["_id"]), str(admin_user["_id"])}


def test_system_notification_needs_manage_users(client, admin_headers):
    response = client.post("/api/notifications/system", json={"title": "Hi", "message": "There"},
                           headers=admin_headers)
    assert response.status_code == 403


def test_stats(client, plain_user, admin_headers):
    notify(plain_user, type="contact", category="contact")
    notify(plain_user, type="system", category="system")
    data = client.get("/api/notifications/stats", headers=admin_headers).json()["data"]
    assert data["total"] == 2
    assert {row["_id"]: row["count"] for row in data["byType"]} == {"contact": 1, "system": 1}
    assert sum(row["count"] for row in data["last7Days"]) == 2
