"""JSON shapes exchanged with web clients over Socket.IO and REST.

Clients speak camelCase and still send a few legacy spellings
(``is_private``, ``userIdToAdd``, ``text`` vs ``encrypted``). This module is
the only place that knows about them; everything behind it works with models
and :class:`~teamdesk.chat.services.messages.MessageContent`.
"""

from __future__ import annotations

import json
from typing import Any

from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework import serializers

from .keys import generate_channel_key
from .models import Channel
from .models import Huddle
from .models import Message
from .services.messages import MessageContent


def iso(value) -> str | None:
    if value is None:
        return None
    return serializers.DateTimeField().to_representation(value)


def now_iso() -> str:
    return iso(timezone.now())


def _decode_encrypted(raw: str | None) -> Any:
    if raw in (None, ""):
        return None
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        return raw


class ChannelSerializer(serializers.ModelSerializer):
    isPrivate = serializers.BooleanField(source="is_private", read_only=True)
    createdBy = serializers.IntegerField(
        source="created_by_id", read_only=True, allow_null=True
    )
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)
    created_by = serializers.IntegerField(
        source="created_by_id", read_only=True, allow_null=True
    )

    class Meta:
        model = Channel
        fields = [
            "id",
            "key",
            "name",
            "type",
            "isPrivate",
            "is_private",
            "createdBy",
            "created_by",
            "createdAt",
        ]
        read_only_fields = fields


class MessageSerializer(serializers.Serializer):
    """Message as broadcast in ``chat:message`` and returned by REST.

    ``channel_key`` and ``temp_id`` come from the serializer context.
    """

    id = serializers.UUIDField()
    tempId = serializers.SerializerMethodField()
    channelId = serializers.SerializerMethodField()
    userId = serializers.IntegerField(source="user_id", allow_null=True)
    username = serializers.SerializerMethodField()
    displayName = serializers.SerializerMethodField()
    textHtml = serializers.CharField(source="text_html")
    encrypted = serializers.SerializerMethodField()
    senderPublicKeyJwk = serializers.JSONField(source="sender_public_key")
    fallbackText = serializers.CharField(source="fallback_text", allow_null=True)
    parentId = serializers.UUIDField(source="parent_id", allow_null=True)
    reactions = serializers.JSONField()
    attachments = serializers.JSONField()
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at", allow_null=True)
    deletedAt = serializers.DateTimeField(source="deleted_at", allow_null=True)

    def get_tempId(self, obj: Message):
        return self.context.get("temp_id")

    def get_channelId(self, obj: Message):
        channel_key = self.context.get("channel_key")
        if channel_key:
            return channel_key
        if obj.channel_id is not None:
            return obj.channel.key
        return obj.legacy_channel_key

    def get_username(self, obj: Message):
        return obj.user.username if obj.user_id else "Unknown"

    def get_displayName(self, obj: Message):
        return obj.user.display_name if obj.user_id else "Unknown"

    def get_encrypted(self, obj: Message):
        return _decode_encrypted(obj.encrypted_json)


def message_payload(
    message: Message, channel_key: str | None = None, temp_id=None
) -> dict[str, Any]:
    context = {"channel_key": channel_key, "temp_id": temp_id}
    return dict(MessageSerializer(message, context=context).data)


def message_list_payload(messages, channel_key: str) -> list[dict[str, Any]]:
    data = MessageSerializer(
        messages, many=True, context={"channel_key": channel_key}
    ).data
    return [dict(item) for item in data]


def message_edited_payload(message: Message, channel_key: str) -> dict[str, Any]:
    return {
        "id": str(message.id),
        "channelId": channel_key,
        "textHtml": message.text_html,
        "updatedAt": iso(message.updated_at),
    }


def message_deleted_payload(message: Message, channel_key: str) -> dict[str, Any]:
    return {
        "id": str(message.id),
        "channelId": channel_key,
        "deletedAt": iso(message.deleted_at),
    }


def huddle_payload(huddle: Huddle, *, already_active: bool = False) -> dict[str, Any]:
    started_by = huddle.started_by
    payload = {
        "channelId": huddle.channel_key,
        "huddleId": huddle.huddle_id,
        "startedBy": {
            "userId": huddle.started_by_id,
            "username": started_by.username if started_by else None,
        },
        "at": iso(huddle.started_at),
        "persisted": True,
    }
    if already_active:
        payload["alreadyActive"] = True
    return payload


def huddle_ended_payload(
    channel_key: str, huddle_id: str, user_id: int, username: str
) -> dict[str, Any]:
    return {
        "channelId": channel_key,
        "huddleId": huddle_id,
        "endedBy": {"userId": user_id, "username": username},
        "at": now_iso(),
    }


def system_event(
    event_type: str, channel_key: str, user_id: int, username: str
) -> dict[str, Any]:
    return {
        "type": event_type,
        "channelId": channel_key,
        "userId": user_id,
        "username": username,
        "at": now_iso(),
    }


def presence_payload(user_id: int, username: str, status: str) -> dict[str, Any]:
    return {
        "userId": user_id,
        "username": username,
        "status": status,
        "at": now_iso(),
    }


class MessagePostSerializer(serializers.Serializer):
    """Incoming message from ``chat:message`` or ``POST /chat/``."""

    channelId = serializers.CharField(max_length=255)
    text = serializers.CharField(required=False, allow_blank=True)
    encrypted = serializers.JSONField(required=False, allow_null=True)
    senderPublicKeyJwk = serializers.JSONField(required=False, allow_null=True)
    fallbackText = serializers.CharField(
        required=False, allow_blank=True, allow_null=True
    )
    tempId = serializers.JSONField(required=False, allow_null=True)
    parentId = serializers.UUIDField(required=False, allow_null=True)
    attachments = serializers.ListField(
        child=serializers.JSONField(), required=False, default=list
    )

    def validate(self, attrs):
        has_text = bool(attrs.get("text"))
        has_encrypted = attrs.get("encrypted") not in (None, "", {})
        if not (has_text or has_encrypted or attrs.get("attachments")):
            raise serializers.ValidationError(
                {"text": "Either text or encrypted content is required."}
            )
        return attrs

    def to_content(self) -> MessageContent:
        return content_from(self.validated_data)


def content_from(data) -> MessageContent:
    """Build stored content from validated ``MessagePostSerializer`` data."""
    encrypted = data.get("encrypted")
    encrypted_json = None
    if encrypted not in (None, "", {}):
        encrypted_json = (
            encrypted if isinstance(encrypted, str) else json.dumps(encrypted)
        )
    return MessageContent(
        text_html=data.get("text") or "",
        encrypted_json=encrypted_json,
        sender_public_key=data.get("senderPublicKeyJwk") if encrypted_json else None,
        fallback_text=data.get("fallbackText"),
        attachments=data.get("attachments") or [],
    )


class ChannelCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    key = serializers.CharField(max_length=255, required=False, allow_blank=True)
    type = serializers.ChoiceField(
        choices=Channel.Type.choices, required=False, default=Channel.Type.CHANNEL
    )
    isPrivate = serializers.BooleanField(required=False)
    is_private = serializers.BooleanField(required=False)
    members = serializers.ListField(
        child=serializers.IntegerField(min_value=1), required=False, default=list
    )

    def validate_name(self, value):
        value = value.strip()
        if not value:
            msg = "Channel name is required."
            raise serializers.ValidationError(msg)
        return value

    def validate(self, attrs):
        camel = attrs.pop("isPrivate", None)
        legacy = attrs.pop("is_private", None)
        attrs["is_private"] = bool(camel if camel is not None else legacy)
        attrs["key"] = (attrs.get("key") or "").strip() or generate_channel_key(
            attrs["name"]
        )
        return attrs


class ChannelPrivacySerializer(serializers.Serializer):
    isPrivate = serializers.BooleanField(required=False)
    is_private = serializers.BooleanField(required=False)

    def validate(self, attrs):
        camel = attrs.get("isPrivate")
        legacy = attrs.get("is_private")
        if camel is None and legacy is None:
            raise serializers.ValidationError({"isPrivate": "This field is required."})
        return {"is_private": camel if camel is not None else legacy}


class MemberRefSerializer(serializers.Serializer):
    user_id = serializers.IntegerField(required=False, min_value=1)
    userId = serializers.IntegerField(required=False, min_value=1)
    userIdToAdd = serializers.IntegerField(required=False, min_value=1)

    def validate(self, attrs):
        user_id = next(
            (
                attrs[name]
                for name in ("user_id", "userId", "userIdToAdd")
                if attrs.get(name) is not None
            ),
            None,
        )
        if user_id is None:
            raise serializers.ValidationError({"user_id": "This field is required."})
        if not get_user_model().objects.filter(pk=user_id, is_active=True).exists():
            raise serializers.ValidationError({"user_id": "User not found."})
        return {"user_id": user_id}
