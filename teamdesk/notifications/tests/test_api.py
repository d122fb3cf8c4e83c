import pytest
from rest_framework import status

from teamdesk.notifications import services as notification_services
from teamdesk.notifications import signals as notification_signals
from teamdesk.notifications.models import Notification
from teamdesk.notifications.services import notify_user
from teamdesk.realtime.events import notifications as notification_events

pytestmark = pytest.mark.django_db


@pytest.fixture
def pushed(monkeypatch):
    sent = []
    monkeypatch.setattr(
        notification_signals, "publish_notification_created", sent.append
    )
    return sent


def _notify(user, title="Hi", **kwargs):
    return notify_user(user.id, title=title, message="body", **kwargs)


def test_notify_user_pushes_after_commit(
    user, pushed, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=True):
        notification = _notify(
            user, notification_type=Notification.Type.CHAT_ADDED, related_link="/x"
        )

    assert pushed == [notification]
    assert notification.is_read is False


def test_mark_read_does_not_push_again(user, pushed, django_capture_on_commit_callbacks):
    notification = _notify(user)
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        notification.is_read = True
        notification.save()
    assert callbacks == []


def test_payload_shape(user, pushed):
    notification = _notify(user, related_link="/chat/general")

    payload = notification_events.build_notification_payload(notification)

    assert payload["title"] == "Hi"
    assert payload["link"] == "/chat/general"
    assert payload["type"] == Notification.Type.OTHER
    assert payload["isRead"] is False
    assert payload["createdAt"].endswith("Z")


def test_list_only_own_and_unread_filter(api_client, user, other_user, pushed):
    read = _notify(user, "old")
    read.is_read = True
    read.save()
    _notify(user, "new")
    _notify(other_user, "theirs")

    res = api_client.get("/api/v1/notifications/")
    assert res.status_code == status.HTTP_200_OK
    assert {n["title"] for n in res.json()} == {"old", "new"}

    res = api_client.get("/api/v1/notifications/?unread=1")
    assert [n["title"] for n in res.json()] == ["new"]


def test_mark_read_and_mark_all_read(api_client, user, pushed):
    first = _notify(user, "a")
    _notify(user, "b")

    res = api_client.post(f"/api/v1/notifications/{first.id}/mark-read/")
    assert res.status_code == status.HTTP_204_NO_CONTENT
    first.refresh_from_db()
    assert first.is_read is True

    res = api_client.post("/api/v1/notifications/mark-all-read/")
    assert res.status_code == status.HTTP_204_NO_CONTENT
    assert not Notification.objects.filter(recipient=user, is_read=False).exists()


def test_cannot_touch_someone_elses_notification(api_client, other_user, pushed):
    theirs = _notify(other_user)

    res = api_client.post(f"/api/v1/notifications/{theirs.id}/mark-read/")
    assert res.status_code == status.HTTP_404_NOT_FOUND
    res = api_client.delete(f"/api/v1/notifications/{theirs.id}/")
    assert res.status_code == status.HTTP_404_NOT_FOUND
    assert Notification.objects.filter(pk=theirs.pk).exists()


def test_delete_own_notification(api_client, user, pushed):
    mine = _notify(user)

    res = api_client.delete(f"/api/v1/notifications/{mine.id}/")

    assert res.status_code == status.HTTP_204_NO_CONTENT
    assert not Notification.objects.exists()


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("1", ["new"]), ("true", ["new"]), ("0", ["old"]), ("false", ["old"])],
)
def test_unread_filter_accepts_numeric_and_word_flags(
    api_client, user, pushed, raw, expected
):
    old = _notify(user, "old")
    old.is_read = True
    old.save()
    _notify(user, "new")

    res = api_client.get(f"/api/v1/notifications/?unread={raw}")

    assert [n["title"] for n in res.json()] == expected


def test_type_filter(api_client, user, pushed):
    _notify(user, "added", notification_type=Notification.Type.CHAT_ADDED)
    _notify(user, "other")

    res = api_client.get("/api/v1/notifications/?type=chat_added")

    assert [n["title"] for n in res.json()] == ["added"]


def test_task_notifications_are_mirrored_to_project_channel(
    user, other_user, pushed, monkeypatch
):
    mirrored = []
    monkeypatch.setattr(
        notification_services,
        "mirror_project_notification_to_chat",
        lambda text, user_id: mirrored.append((text, user_id)),
    )

    _notify(user, "Task assigned", notification_type=Notification.Type.TASK)
    _notify(
        user,
        "Task done",
        notification_type=Notification.Type.TASK,
        actor_id=other_user.id,
    )
    _notify(user, "Unrelated")

    assert mirrored == [
        ("Task assigned\nbody", user.id),
        ("Task done\nbody", other_user.id),
    ]
