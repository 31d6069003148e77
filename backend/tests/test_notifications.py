import pytest
from sqlalchemy import select

from campustrack.models import Notification, NotificationType
from campustrack.services.notifications import notify_users


@pytest.fixture()
def inbox(db, campus):
    department = campus.department("CSE")
    reader = campus.student(department, 3, "Reader One", "2024CSE001")
    other = campus.student(department, 3, "Reader Two", "2024CSE002")
    dormant = campus.student(department, 3, "Dormant Reader", "2024CSE003", is_active=False)
    created = notify_users(
        db,
        user_ids=[reader.user_id, reader.user_id, other.user_id, dormant.user_id],
        title="Exam Notice",
        message="Mid-semester exams begin next week",
        notification_type=NotificationType.notice,
        link="/dashboard/notices",
    )
    db.commit()
    return {"reader": reader.user, "other": other.user, "created": created}


def test_notify_users_deduplicates_and_skips_inactive_users(db, inbox):
    recipients = sorted(item.user_id for item in db.execute(select(Notification)).scalars())

    assert len(inbox["created"]) == 2
    assert recipients == sorted([inbox["reader"].id, inbox["other"].id])


def test_inbox_flow(client, db, inbox, headers):
    reader_headers = headers(inbox["reader"])

    listed = client.get("/api/notifications", headers=reader_headers)
    assert listed.status_code == 200
    items = listed.json()["data"]
    assert len(items) == 1
    assert items[0]["notification_type"] == "NOTICE"
    assert items[0]["link"] == "/dashboard/notices"

    count = client.get("/api/notifications/unread-count", headers=reader_headers).json()["data"]
    assert count == {"count": 1}

    notification_id = items[0]["id"]
    read = client.post(f"/api/notifications/{notification_id}/read", headers=reader_headers)
    assert read.status_code == 200
    assert read.json()["data"]["is_read"] is True

    unread = client.get("/api/notifications", params={"is_read": "false"}, headers=reader_headers).json()["data"]
    assert unread == []

    deleted = client.delete(f"/api/notifications/{notification_id}", headers=reader_headers)
    assert deleted.status_code == 200
    assert deleted.json()["data"] == {"id": notification_id}


def test_mark_all_read_only_touches_own_notifications(client, inbox, headers):
    response = client.post("/api/notifications/read-all", headers=headers(inbox["reader"]))

    assert response.status_code == 200
    assert response.json()["message"] == "Marked 1 notifications as read"
    other_count = client.get("/api/notifications/unread-count", headers=headers(inbox["other"])).json()["data"]
    assert other_count == {"count": 1}


def test_other_users_notifications_are_not_found(client, inbox, headers):
    foreign_id = next(item.id for item in inbox["created"] if item.user_id == inbox["other"].id)

    read = client.post(f"/api/notifications/{foreign_id}/read", headers=headers(inbox["reader"]))
    assert read.status_code == 404
    assert read.json() == {"success": False, "error": "Notification not found", "code": "NOT_FOUND"}

    deleted = client.delete(f"/api/notifications/{foreign_id}", headers=headers(inbox["reader"]))
    assert deleted.status_code == 404
