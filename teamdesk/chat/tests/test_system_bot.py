import pytest

from teamdesk.chat import system_bot
from teamdesk.chat.models import Channel
from teamdesk.chat.models import Message

pytestmark = pytest.mark.django_db


@pytest.fixture
def broadcasts(monkeypatch):
    sent = []
    monkeypatch.setattr(
        system_bot,
        "publish_message_created",
        lambda channel_key, payload: sent.append((channel_key, payload)),
    )
    return sent


def test_mirror_availability_creates_channel_and_renders_newlines(
    user, broadcasts, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=True):
        message = system_bot.mirror_availability_to_chat(
            "line one\nline two", user.id
        )

    channel = Channel.objects.get(key="availability-updates")
    assert channel.name == "Availability Updates"
    assert channel.is_private is False
    assert message.channel == channel
    assert message.text_html == "line one<br>line two"
    assert message.fallback_text == "line one\nline two"
    [(key, payload)] = broadcasts
    assert key == "availability-updates"
    assert payload["textHtml"] == "line one<br>line two"


def test_broadcast_waits_for_commit(
    user, broadcasts, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=False) as callbacks:
        system_bot.mirror_availability_to_chat("back", user.id)

    assert broadcasts == []
    assert len(callbacks) == 1


def test_project_notifications_go_to_project_manager_channel(
    user, broadcasts, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=True):
        system_bot.mirror_project_notification_to_chat("Task moved to Done", user.id)

    assert Channel.objects.filter(key="project-manager", name="Project Manager").exists()
    assert broadcasts[0][0] == "project-manager"


def test_empty_text_or_missing_author_is_skipped(
    user, broadcasts, django_capture_on_commit_callbacks
):
    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        assert system_bot.mirror_availability_to_chat("", user.id) is None
        assert system_bot.mirror_availability_to_chat("hello", None) is None
    assert not Message.objects.exists()
    assert callbacks == []


def test_existing_private_channel_is_reused(user, broadcasts):
    Channel.objects.create(
        key="availability-updates", name="Status", is_private=True, created_by=user
    )

    system_bot.mirror_availability_to_chat("back", user.id)

    channel = Channel.objects.get(key="availability-updates")
    assert channel.name == "Status"
    assert channel.messages.count() == 1
