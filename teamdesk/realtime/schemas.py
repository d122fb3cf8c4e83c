"""Payload schemas of the client -> server socket events."""

from rest_framework import serializers

from teamdesk.chat.wire import MessagePostSerializer

__all__ = [
    "ChannelRefSerializer",
    "HuddleRefSerializer",
    "HuddleSignalSerializer",
    "MessageDeleteSerializer",
    "MessageEditSerializer",
    "MessagePostSerializer",
    "PresenceSerializer",
    "ReactionSerializer",
    "ReadReceiptSerializer",
]


class ChannelRefSerializer(serializers.Serializer):
    channelId = serializers.CharField(max_length=255)


class MessageEditSerializer(ChannelRefSerializer):
    messageId = serializers.CharField(max_length=64)
    text = serializers.CharField(allow_blank=False)


class MessageDeleteSerializer(ChannelRefSerializer):
    messageId = serializers.CharField(max_length=64)


class ReactionSerializer(ChannelRefSerializer):
    ADD = "add"
    REMOVE = "remove"

    messageId = serializers.CharField(max_length=64)
    emoji = serializers.CharField(max_length=64)
    action = serializers.ChoiceField(choices=[ADD, REMOVE], default=ADD)


class ReadReceiptSerializer(ChannelRefSerializer):
    at = serializers.DateTimeField(required=False, allow_null=True)
    messageId = serializers.CharField(max_length=64, required=False, allow_null=True)


class HuddleRefSerializer(ChannelRefSerializer):
    huddleId = serializers.CharField(max_length=255)


class HuddleSignalSerializer(ChannelRefSerializer):
    huddleId = serializers.CharField(max_length=255, required=False, allow_null=True)
    targetUserId = serializers.IntegerField(min_value=1)
    data = serializers.JSONField()


class PresenceSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=32)
