import pytest

from teamdesk.audit.utils import log_action

pytestmark = pytest.mark.django_db


def test_log_action_accepts_user_or_id(user):
    entry = log_action("chat_channel_created", actor=user, record_id=42)
    assert entry.actor_id == user.id
    assert entry.record_id == "42"

    entry = log_action("chat_member_added", actor=user.id, after={"user_id": 7})
    assert entry.actor_id == user.id
    assert entry.after == {"user_id": 7}


def test_log_action_without_actor_is_system():
    entry = log_action("chat_channel_deleted", actor=True)
    assert entry.actor_id is None
    assert entry.record_id == ""
