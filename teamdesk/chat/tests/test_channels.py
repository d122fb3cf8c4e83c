import uuid
from unittest import mock

import pytest
from django.db import DatabaseError

from teamdesk.chat.exceptions import ChannelNotFoundError
from teamdesk.chat.exceptions import DuplicateKeyError
from teamdesk.chat.exceptions import ForbiddenError
from teamdesk.chat.models import Channel
from teamdesk.chat.models import Huddle
from teamdesk.chat.models import Message
from teamdesk.chat.services import channels
from teamdesk.chat.services import membership
from tests.factories import create_channel
from tests.factories import post_message

pytestmark = pytest.mark.django_db


def test_get_or_create_by_key_is_idempotent(user, other_user):
    first = channels.get_or_create_by_key("general", created_by_id=user.id)
    second = channels.get_or_create_by_key(
        "general", name="ignored", created_by_id=other_user.id
    )
    assert first.id == second.id
    assert second.created_by_id == user.id
    assert Channel.objects.filter(key="general").count() == 1


def test_get_or_create_by_key_creates_public_channel(user):
    channel = channels.get_or_create_by_key(
        "dm:1:2", type=Channel.Type.DM, name="Direct message", created_by_id=user.id
    )
    assert channel.is_private is False
    assert channel.type == Channel.Type.DM
    assert channel.name == "Direct message"


def test_create_channel_seeds_creator_as_admin_and_member(user):
    channel = create_channel(user, "general", name="#general")
    assert membership.is_admin(channel.id, user.id)
    assert membership.is_member(channel.id, user.id)


def test_create_channel_rejects_duplicate_key(user):
    create_channel(user, "chan:dup:0001")
    with pytest.raises(DuplicateKeyError):
        create_channel(user, "chan:dup:0001")


def test_get_by_id_tolerates_non_uuid(user):
    assert channels.get_by_id("general") is None
    assert channels.get_by_id(str(uuid.uuid4())) is None


def test_resolve_by_key_then_id(user):
    channel = create_channel(user)
    assert channels.resolve(channel.key) == channel
    assert channels.resolve(str(channel.id)) == channel
    assert channels.resolve("missing") is None


def test_list_for_user_hides_foreign_private_channels(user, other_user):
    public = create_channel(user, "chan:open:0001")
    secret = create_channel(user, "chan:secret:ab12", is_private=True)
    shared = create_channel(
        user, "chan:shared:0002", is_private=True, members=[other_user]
    )

    assert channels.list_for_user(other_user.id) == [public, shared]
    assert channels.list_for_user(user.id) == [public, secret, shared]


def test_update_privacy(user):
    channel = create_channel(user)
    updated = channels.update_privacy(channel.id, True)
    assert updated.is_private is True
    channel.refresh_from_db()
    assert channel.is_private is True


def test_update_privacy_missing_channel():
    with pytest.raises(ChannelNotFoundError):
        channels.update_privacy(uuid.uuid4(), True)


def test_delete_channel_requires_admin(user, other_user):
    channel = create_channel(user, members=[other_user])
    with pytest.raises(ForbiddenError):
        channels.delete_channel(channel.id, other_user.id)
    assert Channel.objects.filter(pk=channel.pk).exists()


def test_delete_channel_cascades(user):
    channel = create_channel(user)
    post_message(channel, user)
    Message.objects.create(legacy_channel_key=channel.key, user=user, text_html="old")
    Huddle.objects.create(channel_key=channel.key, huddle_id="h1", started_by=user)

    channels.delete_channel(channel.id, user.id)

    assert not Channel.objects.filter(key=channel.key).exists()
    assert not Message.objects.exists()
    assert not Huddle.objects.exists()
    assert not membership.is_member(channel.id, user.id)


def test_delete_missing_channel(user):
    with pytest.raises(ChannelNotFoundError):
        channels.delete_channel(uuid.uuid4(), user.id)


def test_admin_who_is_not_creator_can_manage(user, other_user):
    channel = create_channel(user)
    membership.add_admin(channel.id, other_user.id)
    assert membership.can_manage(channel, other_user.id)


def test_can_post_private_rules(user, other_user, outsider):
    channel = create_channel(user, is_private=True, members=[other_user])
    assert membership.can_post(channel, user.id)
    assert membership.can_post(channel, other_user.id)
    assert not membership.can_post(channel, outsider.id)


def test_can_post_public_always(user, outsider):
    channel = create_channel(user)
    assert membership.can_post(channel, outsider.id)


def test_membership_check_failure_is_closed_and_logged(user, outsider, caplog):
    channel = create_channel(user, is_private=True)
    with mock.patch.object(
        membership, "is_member", side_effect=DatabaseError("db down")
    ):
        allowed = membership.can_post(channel, outsider.id, correlation_id="sid-1")
    assert allowed is False
    assert "sid-1" in caplog.text


def test_leave_channel_drops_membership_and_admin(user, other_user):
    channel = create_channel(user)
    membership.add_member(channel.id, other_user.id)
    membership.add_admin(channel.id, other_user.id)

    membership.leave_channel(channel.id, other_user.id)

    assert not membership.is_member(channel.id, other_user.id)
    assert not membership.is_admin(channel.id, other_user.id)


def test_ensure_member_is_idempotent(user, other_user):
    channel = create_channel(user)
    assert membership.ensure_member(channel.id, other_user.id) is True
    assert membership.ensure_member(channel.id, other_user.id) is False
    assert [u.username for u in membership.list_members(channel.id)] == [
        "alice",
        "bob",
    ]
