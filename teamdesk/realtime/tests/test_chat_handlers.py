from unittest import mock

import pytest
from asgiref.sync import async_to_sync

from teamdesk.chat.models import ChannelMember
from teamdesk.chat.models import Message
from teamdesk.chat.services import huddles
from teamdesk.chat.services import membership
from teamdesk.chat.services import messages
from teamdesk.realtime.handlers import chat as chat_handlers
from tests.factories import create_channel
from tests.factories import post_message

pytestmark = pytest.mark.django_db


def join(sid, channel_key):
    async_to_sync(chat_handlers.join)(sid, channel_key)


def send(sid, payload):
    async_to_sync(chat_handlers.message)(sid, payload)


def test_join_creates_channel_and_sends_empty_history(socket_server, user):
    socket_server.connect("sid-a", user)

    join("sid-a", "general")

    assert "channel:general" in socket_server.rooms_of("sid-a")
    [(history, kwargs)] = socket_server.emitted("chat:history")
    assert history == {"channelId": "general", "messages": []}
    assert kwargs["to"] == "sid-a"
    [(system, kwargs)] = socket_server.emitted("chat:system")
    assert system["type"] == "join"
    assert system["userId"] == user.id
    assert kwargs == {"room": "channel:general", "skip_sid": "sid-a"}
    assert ChannelMember.objects.filter(
        channel__key="general", user=user
    ).exists()


def test_join_accepts_object_payload(socket_server, user):
    socket_server.connect("sid-a", user)
    async_to_sync(chat_handlers.join)("sid-a", {"channelId": "random"})
    assert "channel:random" in socket_server.rooms_of("sid-a")


def test_general_channel_scenario(socket_server, user, other_user):
    channel = create_channel(user, "general", name="#general")
    assert membership.is_admin(channel.id, user.id)
    socket_server.connect("sid-a", user)
    socket_server.connect("sid-b", other_user)
    join("sid-a", "general")

    join("sid-b", "general")
    history = [p for p, kw in socket_server.emitted("chat:history") if kw["to"] == "sid-b"]
    assert history == [{"channelId": "general", "messages": []}]
    assert membership.is_member(channel.id, other_user.id)

    send("sid-b", {"channelId": "general", "text": "hello", "tempId": "t-1"})

    [(payload, kwargs)] = socket_server.emitted("chat:message")
    # Room broadcast without skip_sid reaches both A and B
    assert kwargs == {"room": "channel:general"}
    assert payload["textHtml"] == "hello"
    assert payload["tempId"] == "t-1"
    assert payload["userId"] == other_user.id
    assert payload["username"] == "bob"

    recent = messages.get_recent(channel.id, 10)
    assert [(m.text_html, m.user_id) for m in recent] == [("hello", other_user.id)]


def test_join_history_is_capped_and_includes_active_huddle(
    socket_server, user, settings
):
    settings.CHAT_HISTORY_LIMIT = 2
    channel = create_channel(user, "general")
    for text in ("one", "two", "three"):
        post_message(channel, user, text)
    huddles.start("general", "h1", user.id)
    socket_server.connect("sid-a", user)

    join("sid-a", "general")

    [(history, _)] = socket_server.emitted("chat:history")
    assert [m["textHtml"] for m in history["messages"]] == ["two", "three"]
    [(snapshot, kwargs)] = socket_server.emitted("huddle:started")
    assert snapshot["huddleId"] == "h1"
    assert snapshot["persisted"] is True
    assert snapshot["startedBy"] == {"userId": user.id, "username": "alice"}
    assert kwargs == {"to": "sid-a"}


def test_private_channel_rejects_outsider(socket_server, user, outsider):
    channel = create_channel(user, "chan:secret:ab12", is_private=True)
    socket_server.connect("sid-c", outsider)

    join("sid-c", "chan:secret:ab12")
    send("sid-c", {"channelId": "chan:secret:ab12", "text": "let me in"})

    [(denied, kwargs)] = socket_server.emitted("chat:join:denied")
    assert denied["channelId"] == "chan:secret:ab12"
    assert kwargs == {"to": "sid-c"}
    [(error, _)] = socket_server.emitted("chat:error")
    assert error["event"] == "chat:message"
    assert socket_server.emitted("chat:history") == []
    assert socket_server.emitted("chat:message") == []
    assert "channel:chat:secret:ab12" not in socket_server.rooms_of("sid-c")
    assert not membership.is_member(channel.id, outsider.id)
    assert not Message.objects.filter(channel=channel).exists()


def test_private_channel_join_after_being_added(socket_server, user, other_user):
    channel = create_channel(user, "chan:secret:ab12", is_private=True)
    socket_server.connect("sid-b", other_user)

    join("sid-b", "chan:secret:ab12")
    assert len(socket_server.emitted("chat:join:denied")) == 1

    membership.add_member(channel.id, other_user.id)
    join("sid-b", "chan:secret:ab12")

    [(history, _)] = socket_server.emitted("chat:history")
    assert history["messages"] == []


def test_post_auto_enrolls_poster(socket_server, user, other_user):
    channel = create_channel(user, "general")
    socket_server.connect("sid-b", other_user)

    send("sid-b", {"channelId": "general", "text": "hi"})

    assert membership.is_member(channel.id, other_user.id)


def test_encrypted_message_is_relayed_opaquely(socket_server, user):
    create_channel(user, "general")
    socket_server.connect("sid-a", user)

    send(
        "sid-a",
        {
            "channelId": "general",
            "encrypted": {"iv": "abc", "ct": "def"},
            "senderPublicKeyJwk": {"kty": "EC", "crv": "P-256"},
            "fallbackText": "[encrypted message]",
        },
    )

    [(payload, _)] = socket_server.emitted("chat:message")
    assert payload["encrypted"] == {"iv": "abc", "ct": "def"}
    assert payload["senderPublicKeyJwk"] == {"kty": "EC", "crv": "P-256"}
    assert payload["fallbackText"] == "[encrypted message]"
    assert payload["textHtml"] == ""


def test_message_without_content_is_rejected(socket_server, user):
    socket_server.connect("sid-a", user)

    send("sid-a", {"channelId": "general"})

    [(error, kwargs)] = socket_server.emitted("chat:error")
    assert error["error"] == "invalid_payload"
    assert error["event"] == "chat:message"
    assert "text" in error["details"]
    assert kwargs == {"to": "sid-a"}
    assert not Message.objects.exists()


def test_missing_channel_id_is_rejected(socket_server, user):
    socket_server.connect("sid-a", user)

    async_to_sync(chat_handlers.typing)("sid-a", {})

    [(error, _)] = socket_server.emitted("chat:error")
    assert error["error"] == "invalid_payload"
    assert "channelId" in error["details"]


def test_edit_scenario(socket_server, user, other_user):
    channel = create_channel(user, "general")
    message = post_message(channel, user, "draft")
    socket_server.connect("sid-a", user)
    socket_server.connect("sid-b", other_user)

    async_to_sync(chat_handlers.edit)(
        "sid-a", {"channelId": "general", "messageId": str(message.id), "text": "final"}
    )

    [(payload, kwargs)] = socket_server.emitted("chat:messageEdited")
    assert payload["id"] == str(message.id)
    assert payload["textHtml"] == "final"
    assert payload["updatedAt"] is not None
    assert kwargs == {"room": "channel:general"}
    [recent] = messages.get_recent(channel.id, 10)
    assert recent.text_html == "final"
    assert recent.updated_at is not None

    async_to_sync(chat_handlers.edit)(
        "sid-b", {"channelId": "general", "messageId": str(message.id), "text": "mine"}
    )

    assert len(socket_server.emitted("chat:messageEdited")) == 1
    message.refresh_from_db()
    assert message.text_html == "final"


def test_delete_broadcasts_only_for_author(socket_server, user, other_user):
    channel = create_channel(user, "general")
    message = post_message(channel, user)
    socket_server.connect("sid-a", user)
    socket_server.connect("sid-b", other_user)
    payload = {"channelId": "general", "messageId": str(message.id)}

    async_to_sync(chat_handlers.delete)("sid-b", payload)
    assert socket_server.emitted("chat:messageDeleted") == []

    async_to_sync(chat_handlers.delete)("sid-a", payload)
    [(deleted, _)] = socket_server.emitted("chat:messageDeleted")
    assert deleted["id"] == str(message.id)
    assert deleted["deletedAt"] is not None
    assert Message.objects.filter(pk=message.pk).exists()


def test_reaction_is_relayed_to_whole_room(socket_server, user):
    socket_server.connect("sid-a", user)

    async_to_sync(chat_handlers.reaction)(
        "sid-a",
        {"channelId": "general", "messageId": "m1", "emoji": "👍", "action": "add"},
    )

    [(payload, kwargs)] = socket_server.emitted("chat:reaction")
    assert payload["emoji"] == "👍"
    assert payload["userId"] == user.id
    assert kwargs == {"room": "channel:general"}


def test_typing_and_read_skip_sender(socket_server, user):
    socket_server.connect("sid-a", user)

    async_to_sync(chat_handlers.typing)("sid-a", {"channelId": "general"})
    async_to_sync(chat_handlers.read)("sid-a", {"channelId": "general"})

    [(typing, typing_kwargs)] = socket_server.emitted("chat:typing")
    [(read, read_kwargs)] = socket_server.emitted("chat:read")
    assert typing["userId"] == user.id
    assert typing_kwargs["skip_sid"] == "sid-a"
    assert read["at"]
    assert read_kwargs == {"room": "channel:general", "skip_sid": "sid-a"}


def test_leave_announces_to_room(socket_server, user):
    socket_server.connect("sid-a", user)
    join("sid-a", "general")

    async_to_sync(chat_handlers.leave)("sid-a", "general")

    assert "channel:general" not in socket_server.rooms_of("sid-a")
    leave_events = [
        p for p, _ in socket_server.emitted("chat:system") if p["type"] == "leave"
    ]
    assert len(leave_events) == 1


def test_store_failure_is_reported_as_server_error(socket_server, user, caplog):
    socket_server.connect("sid-a", user)

    with mock.patch.object(messages, "create", side_effect=RuntimeError("boom")):
        send("sid-a", {"channelId": "general", "text": "hello"})

    [(error, kwargs)] = socket_server.emitted("chat:error")
    assert error == {"error": "server_error", "event": "chat:message"}
    assert kwargs == {"to": "sid-a"}
    assert "sid-a" in caplog.text
    assert socket_server.emitted("chat:message") == []


def test_unknown_parent_is_reported_to_sender(socket_server, user):
    socket_server.connect("sid-a", user)

    send(
        "sid-a",
        {
            "channelId": "general",
            "text": "reply",
            "parentId": "00000000-0000-0000-0000-000000000000",
        },
    )

    [(error, _)] = socket_server.emitted("chat:error")
    assert error["error"] == "Message not found."
    assert not Message.objects.exists()


def test_events_without_session_are_refused(socket_server):
    join("sid-ghost", "general")

    [(error, _)] = socket_server.emitted("chat:error")
    assert error == {"error": "unauthorized", "event": "chat:join"}
