from datetime import datetime, timezone

import pytest

from yogastudio.db import models
from yogastudio.services import booking_service, notification_service


def test_list_is_scoped_and_newest_first(db_session, make_user):
    alice, bob = make_user(), make_user()
    first = notification_service.create_notification(
        db_session, recipient_id=alice.id, title="One", message="first"
    )
    second = notification_service.create_notification(
        db_session, recipient_id=alice.id, title="Two", message="second"
    )
    notification_service.create_notification(
        db_session, recipient_id=bob.id, title="Other", message="not yours"
    )

    listed = notification_service.list_notifications(db_session, alice.id)

    assert [n.id for n in listed] == [second.id, first.id]


def test_unread_filter_and_mark_as_read(db_session, make_user):
    user = make_user()
    seen = notification_service.create_notification(
        db_session, recipient_id=user.id, title="Seen", message="..."
    )
    notification_service.create_notification(
        db_session, recipient_id=user.id, title="Fresh", message="..."
    )

    notification_service.mark_as_read(db_session, user.id, seen.id)

    unread = notification_service.list_notifications(db_session, user.id, unread_only=True)
    assert [n.title for n in unread] == ["Fresh"]


def test_foreign_notification_is_not_found(db_session, make_user):
    owner, intruder = make_user(), make_user()
    notification = notification_service.create_notification(
        db_session, recipient_id=owner.id, title="Private", message="..."
    )

    with pytest.raises(notification_service.NotificationNotFound):
        notification_service.mark_as_read(db_session, intruder.id, notification.id)
    with pytest.raises(notification_service.NotificationNotFound):
        notification_service.delete_notification(db_session, intruder.id, notification.id)

    db_session.refresh(notification)
    assert notification.read is False


def test_mark_all_as_read_only_touches_caller(db_session, make_user):
    alice, bob = make_user(), make_user()
    for title in ("a", "b"):
        notification_service.create_notification(
            db_session, recipient_id=alice.id, title=title, message="..."
        )
    notification_service.create_notification(
        db_session, recipient_id=bob.id, title="c", message="..."
    )

    updated = notification_service.mark_all_as_read(db_session, alice.id)

    assert updated == 2
    assert notification_service.list_notifications(db_session, alice.id, unread_only=True) == []
    assert len(notification_service.list_notifications(db_session, bob.id, unread_only=True)) == 1


def test_booking_cancellation_notifies_member(db_session, make_user, make_class, make_booking):
    now = datetime(2025, 6, 1, 8, 0, tzinfo=timezone.utc)
    member = make_user()
    booking = make_booking(
        member,
        make_class(name="Sunset Flow", price=20),
        datetime(2025, 6, 4, 18, 30, tzinfo=timezone.utc),
        payment_amount=20,
    )

    booking_service.cancel_booking(db_session, booking, "travel", now=now)

    (notification,) = notification_service.list_notifications(db_session, member.id)
    assert notification.title == "Booking Cancelled"
    assert notification.type == models.NotificationType.warning
    assert "Sunset Flow on 04.06.2025 18:30" in notification.message
    assert "Reason: travel." in notification.message
    assert "Refund: 20.00." in notification.message


def test_attendance_notification(db_session, make_user, make_class, make_booking, future):
    member = make_user()
    booking = make_booking(member, make_class(name="Yin"), future(days=1))

    booking_service.mark_attendance(db_session, booking, "absent")

    (notification,) = notification_service.list_notifications(db_session, member.id)
    assert notification.title == "Attendance Recorded"
    assert notification.message.startswith("You were marked absent from Yin")


def test_admin_booking_for_self_sends_single_notification(db_session, make_user, make_class, future):
    admin = make_user(role=models.UserRole.admin)

    booking_service.create_booking(db_session, admin, make_class().id, future(days=2), "cash")

    titles = [n.title for n in notification_service.list_notifications(db_session, admin.id)]
    assert titles == ["Booking Created"]


def test_api_create_and_list(api_client, make_user):
    member = make_user()
    api_client.act_as(member)

    created = api_client.post(
        "/api/notifications", json={"title": "Reminder", "message": "Bring a mat", "type": "info"}
    )
    listed = api_client.get("/api/notifications")

    assert created.status_code == 201
    assert created.json()["data"]["recipientId"] == member.id
    assert created.json()["data"]["read"] is False
    assert [n["title"] for n in listed.json()["data"]] == ["Reminder"]


def test_api_member_cannot_notify_others(api_client, make_user):
    other = make_user()
    api_client.act_as(make_user())

    response = api_client.post(
        "/api/notifications", json={"recipient": other.id, "title": "Hi", "message": "..."}
    )

    assert response.status_code == 403


def test_api_admin_notifies_member(api_client, make_user):
    member = make_user()
    api_client.act_as(make_user(role=models.UserRole.admin))

    ok = api_client.post(
        "/api/notifications", json={"recipient": member.id, "title": "Studio closed", "message": "..."}
    )
    missing = api_client.post(
        "/api/notifications", json={"recipient": 999, "title": "Nobody", "message": "..."}
    )

    assert ok.status_code == 201
    assert ok.json()["data"]["recipientId"] == member.id
    assert missing.status_code == 404


def test_api_read_delete_and_read_all(api_client, db_session, make_user):
    member, other = make_user(), make_user()
    mine = notification_service.create_notification(
        db_session, recipient_id=member.id, title="Mine", message="..."
    )
    notification_service.create_notification(
        db_session, recipient_id=member.id, title="Also mine", message="..."
    )
    theirs = notification_service.create_notification(
        db_session, recipient_id=other.id, title="Theirs", message="..."
    )
    api_client.act_as(member)

    read = api_client.patch(f"/api/notifications/{mine.id}/read")
    foreign = api_client.patch(f"/api/notifications/{theirs.id}/read")
    read_all = api_client.patch("/api/notifications/read-all")
    unread = api_client.get("/api/notifications", params={"unread": "true"})
    deleted = api_client.delete(f"/api/notifications/{mine.id}")
    foreign_delete = api_client.delete(f"/api/notifications/{theirs.id}")

    assert read.json()["data"]["read"] is True
    assert foreign.status_code == 404
    assert read_all.json() == {"success": True, "message": "1 notifications marked as read"}
    assert unread.json()["data"] == []
    assert deleted.json() == {"success": True, "message": "Notification deleted"}
    assert foreign_delete.status_code == 404
