from django.conf import settings
from rest_framework import serializers

# Wire shapes shared with the socket gateway
from teamdesk.chat.wire import ChannelCreateSerializer  # noqa: F401
from teamdesk.chat.wire import ChannelPrivacySerializer  # noqa: F401
from teamdesk.chat.wire import ChannelSerializer  # noqa: F401
from teamdesk.chat.wire import MemberRefSerializer  # noqa: F401
from teamdesk.chat.wire import MessagePostSerializer  # noqa: F401
from teamdesk.chat.wire import MessageSerializer  # noqa: F401


class HistoryQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, min_value=1)

    def validate_limit(self, value):
        return min(value, settings.CHAT_HISTORY_MAX_LIMIT)

    def get_limit(self) -> int:
        return self.validated_data.get("limit") or settings.CHAT_HISTORY_LIMIT


class ChatUserSerializer(serializers.Serializer):
    id = serializers.IntegerField()
    username = serializers.CharField()
    name = serializers.CharField(source="display_name")
    email = serializers.EmailField()


class HuddleSerializer(serializers.Serializer):
    channelId = serializers.CharField(source="channel_key")
    huddleId = serializers.CharField(source="huddle_id")
    startedBy = serializers.IntegerField(source="started_by_id", allow_null=True)
    startedAt = serializers.DateTimeField(source="started_at")
    endedAt = serializers.DateTimeField(source="ended_at", allow_null=True)


class ThreadOpenSerializer(serializers.Serializer):
    messageId = serializers.UUIDField()
