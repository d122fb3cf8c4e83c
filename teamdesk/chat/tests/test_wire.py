import json

import pytest

from teamdesk.chat import wire
from tests.factories import create_channel
from tests.factories import post_message


def test_channel_create_prefers_camel_case_privacy():
    ser = wire.ChannelCreateSerializer(
        data={"name": " Ops ", "isPrivate": False, "is_private": True}
    )
    assert ser.is_valid(), ser.errors
    assert ser.validated_data["is_private"] is False
    assert ser.validated_data["name"] == "Ops"
    assert ser.validated_data["key"].startswith("chan:ops:")


def test_channel_create_keeps_explicit_key():
    ser = wire.ChannelCreateSerializer(data={"name": "Ops", "key": "ops"})
    assert ser.is_valid(), ser.errors
    assert ser.validated_data["key"] == "ops"
    assert ser.validated_data["is_private"] is False


def test_privacy_requires_a_flag():
    assert not wire.ChannelPrivacySerializer(data={}).is_valid()
    ser = wire.ChannelPrivacySerializer(data={"is_private": True})
    assert ser.is_valid()
    assert ser.validated_data == {"is_private": True}


def test_encrypted_content_is_kept_as_json_text():
    ser = wire.MessagePostSerializer(
        data={
            "channelId": "general",
            "encrypted": {"ct": "abc"},
            "senderPublicKeyJwk": {"kty": "EC"},
        }
    )
    assert ser.is_valid(), ser.errors
    content = ser.to_content()
    assert json.loads(content.encrypted_json) == {"ct": "abc"}
    assert content.sender_public_key == {"kty": "EC"}
    assert content.text_html == ""


def test_plain_text_is_trimmed_and_key_is_dropped():
    ser = wire.MessagePostSerializer(
        data={"channelId": "general", "text": "  hi  ", "senderPublicKeyJwk": {}}
    )
    assert ser.is_valid(), ser.errors
    content = ser.to_content()
    assert content.text_html == "hi"
    assert content.encrypted_json is None
    assert content.sender_public_key is None


@pytest.mark.django_db
def test_message_payload_shape(user):
    channel = create_channel(user, "general")
    message = post_message(channel, user, "hello")

    payload = wire.message_payload(message, temp_id="t1")

    assert payload["channelId"] == "general"
    assert payload["tempId"] == "t1"
    assert payload["username"] == "alice"
    assert payload["displayName"] == "Alice Adams"
    assert payload["encrypted"] is None
    assert payload["updatedAt"] is None
    assert payload["deletedAt"] is None
    assert payload["reactions"] == {}
    assert payload["createdAt"].endswith("Z")
