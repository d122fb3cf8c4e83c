from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.db import transaction
from drf_spectacular.utils import OpenApiParameter
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import APIException
from rest_framework.exceptions import NotFound
from rest_framework.exceptions import PermissionDenied
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from teamdesk.audit.utils import log_action
from teamdesk.chat import wire
from teamdesk.chat.exceptions import ChatError
from teamdesk.chat.exceptions import DuplicateKeyError
from teamdesk.chat.exceptions import ForbiddenError
from teamdesk.chat.exceptions import NotFoundError
from teamdesk.chat.models import Channel
from teamdesk.chat.services import channels
from teamdesk.chat.services import huddles
from teamdesk.chat.services import membership
from teamdesk.chat.services import messages
from teamdesk.notifications.models import Notification
from teamdesk.notifications.services import notify_user
from teamdesk.realtime.events import chat as chat_events

from .serializers import ChannelCreateSerializer
from .serializers import ChannelPrivacySerializer
from .serializers import ChannelSerializer
from .serializers import ChatUserSerializer
from .serializers import HistoryQuerySerializer
from .serializers import HuddleSerializer
from .serializers import MemberRefSerializer
from .serializers import MessagePostSerializer
from .serializers import MessageSerializer
from .serializers import ThreadOpenSerializer

logger = logging.getLogger(__name__)


class ChannelKeyConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "A channel with this key already exists."
    default_code = "duplicate_key"


def raise_api_error(exc: ChatError):
    """Translate a chat domain error into the matching DRF exception."""
    if isinstance(exc, ForbiddenError):
        raise PermissionDenied(exc.message) from exc
    if isinstance(exc, NotFoundError):
        raise NotFound(exc.message) from exc
    if isinstance(exc, DuplicateKeyError):
        raise ChannelKeyConflict(exc.message) from exc
    raise ValidationError({"detail": exc.message}) from exc


def _channel_snapshot(channel: Channel) -> dict:
    return dict(ChannelSerializer(channel).data)


def announce_member_added(actor, channel: Channel, user_id: int) -> None:
    notify_user(
        user_id,
        title="Added to channel",
        message=f"{actor.display_name} added you to {channel.name or channel.key}",
        notification_type=Notification.Type.CHAT_ADDED,
        related_link=f"/chat/{channel.key}",
        actor_id=actor.id,
    )
    channel_key, channel_id = channel.key, channel.id
    transaction.on_commit(
        lambda: chat_events.publish_member_added(channel_key, channel_id, user_id)
    )


def create_channel_for(request, data: dict) -> Channel:
    """Create a channel from validated ``ChannelCreateSerializer`` data."""
    actor = request.user
    try:
        channel = channels.create_channel(
            key=data["key"],
            name=data["name"],
            type=data["type"],
            created_by_id=actor.id,
            is_private=data["is_private"],
        )
    except ChatError as exc:
        raise_api_error(exc)

    requested = {uid for uid in data.get("members") or [] if uid != actor.id}
    user_ids = get_user_model().objects.filter(
        pk__in=requested, is_active=True
    ).values_list("pk", flat=True)
    for user_id in sorted(user_ids):
        if membership.add_member(channel.id, user_id):
            announce_member_added(actor, channel, user_id)

    snapshot = _channel_snapshot(channel)
    log_action(
        "chat_channel_created",
        actor=actor,
        message=f"Channel {channel.key} created",
        model_name="chat.Channel",
        record_id=channel.id,
        after=snapshot,
    )
    transaction.on_commit(lambda: chat_events.publish_channel_created(snapshot))
    return channel


@extend_schema(tags=["Chat"])
class ChatMessageView(APIView):
    """``POST /chat/``: post a message, or create a channel for older clients."""

    permission_classes = [IsAuthenticated]

    @extend_schema(request=MessagePostSerializer, responses={201: MessageSerializer})
    def post(self, request):
        if not request.data.get("channelId") and request.data.get("name"):
            ser = ChannelCreateSerializer(data=request.data)
            ser.is_valid(raise_exception=True)
            channel = create_channel_for(request, ser.validated_data)
            return Response(_channel_snapshot(channel), status=status.HTTP_201_CREATED)

        ser = MessagePostSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        user_id = request.user.id

        channel = channels.resolve(data["channelId"]) or channels.get_or_create_by_key(
            data["channelId"],
            type=Channel.Type.CHANNEL,
            name=data["channelId"],
            created_by_id=user_id,
        )
        if not membership.can_post(channel, user_id):
            msg = "You are not allowed to post in this private channel."
            raise PermissionDenied(msg)
        membership.ensure_member(channel.id, user_id)

        try:
            message = messages.create(
                channel.id, user_id, ser.to_content(), parent_id=data.get("parentId")
            )
        except ChatError as exc:
            raise_api_error(exc)

        payload = wire.message_payload(message, channel.key, temp_id=data.get("tempId"))
        transaction.on_commit(
            lambda: chat_events.publish_message_created(channel.key, payload)
        )
        return Response(payload, status=status.HTTP_201_CREATED)


@extend_schema(tags=["Chat"])
class ChannelHistoryView(APIView):
    permission_classes = [IsAuthenticated]

    @extend_schema(
        parameters=[OpenApiParameter("limit", int, OpenApiParameter.QUERY)],
        responses=MessageSerializer(many=True),
    )
    def get(self, request, channel_ref: str):
        query = HistoryQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        channel = channels.resolve(channel_ref)
        if channel is None:
            msg = "Channel not found."
            raise NotFound(msg)
        if not membership.can_read(channel, request.user.id):
            msg = "You are not allowed to view this private channel."
            raise PermissionDenied(msg)

        recent = messages.get_recent(
            channel.id, query.get_limit(), channel_key_fallback=channel.key
        )
        return Response(wire.message_list_payload(recent, channel.key))


@extend_schema(tags=["Chat"])
class ChannelsForUserView(APIView):
    """Older clients list their channels here."""

    permission_classes = [IsAuthenticated]

    @extend_schema(responses=ChannelSerializer(many=True))
    def get(self, request):
        visible = channels.list_for_user(request.user.id)
        return Response(ChannelSerializer(visible, many=True).data)


@extend_schema(tags=["Chat Channels"])
class ChannelViewSet(viewsets.GenericViewSet):
    """Channels, their members and admins.

    ``<id>`` accepts the channel's id or its key.
    """

    serializer_class = ChannelSerializer
    permission_classes = [IsAuthenticated]
    queryset = Channel.objects.all()
    lookup_value_regex = "[^/]+"

    def get_object(self) -> Channel:
        channel = channels.resolve(self.kwargs[self.lookup_field])
        if channel is None:
            msg = "Channel not found."
            raise NotFound(msg)
        return channel

    def _require_manager(self, channel: Channel, message: str) -> None:
        if not membership.can_manage(channel, self.request.user.id):
            raise PermissionDenied(message)

    def _require_reader(self, channel: Channel) -> None:
        if not membership.can_read(channel, self.request.user.id):
            msg = "You are not allowed to view this private channel."
            raise PermissionDenied(msg)

    def list(self, request):
        visible = channels.list_for_user(request.user.id)
        return Response(ChannelSerializer(visible, many=True).data)

    @extend_schema(request=ChannelCreateSerializer, responses={201: ChannelSerializer})
    def create(self, request):
        ser = ChannelCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        channel = create_channel_for(request, ser.validated_data)
        return Response(_channel_snapshot(channel), status=status.HTTP_201_CREATED)

    @extend_schema(request=MemberRefSerializer, responses={201: ChannelSerializer})
    @action(detail=False, methods=["post"], url_path="dm")
    def direct_message(self, request):
        ser = MemberRefSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        other_id = ser.validated_data["user_id"]
        channel, created = channels.open_direct(request.user.id, other_id)
        if created and other_id != request.user.id:
            announce_member_added(request.user, channel, other_id)
        return Response(
            _channel_snapshot(channel),
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    @extend_schema(request=ThreadOpenSerializer, responses={201: ChannelSerializer})
    @action(detail=False, methods=["post"], url_path="thread")
    def thread(self, request):
        ser = ThreadOpenSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        message = messages.get(ser.validated_data["messageId"])
        if message is None:
            msg = "Message not found."
            raise NotFound(msg)
        try:
            channel, created = channels.open_thread(message, request.user.id)
        except ChatError as exc:
            raise_api_error(exc)
        return Response(
            _channel_snapshot(channel),
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def retrieve(self, request, pk=None):
        channel = self.get_object()
        self._require_reader(channel)
        return Response(_channel_snapshot(channel))

    @extend_schema(request=ChannelPrivacySerializer, responses=ChannelSerializer)
    def partial_update(self, request, pk=None):
        channel = self.get_object()
        self._require_manager(channel, "Only channel admins can change privacy.")
        ser = ChannelPrivacySerializer(data=request.data)
        ser.is_valid(raise_exception=True)

        before = _channel_snapshot(channel)
        try:
            channel = channels.update_privacy(channel.id, ser.validated_data["is_private"])
        except ChatError as exc:
            raise_api_error(exc)
        after = _channel_snapshot(channel)
        log_action(
            "chat_channel_privacy_changed",
            actor=request.user,
            message=f"Channel {channel.key} is_private={channel.is_private}",
            model_name="chat.Channel",
            record_id=channel.id,
            before=before,
            after=after,
        )
        transaction.on_commit(
            lambda: chat_events.publish_channel_updated(channel.key, after)
        )
        return Response(after)

    def destroy(self, request, pk=None):
        channel = self.get_object()
        channel_id, channel_key = channel.id, channel.key
        before = _channel_snapshot(channel)
        try:
            channels.delete_channel(channel_id, request.user.id)
        except ChatError as exc:
            raise_api_error(exc)
        log_action(
            "chat_channel_deleted",
            actor=request.user,
            message=f"Channel {channel_key} deleted",
            model_name="chat.Channel",
            record_id=channel_id,
            before=before,
        )
        transaction.on_commit(
            lambda: chat_events.publish_channel_deleted(channel_key, channel_id)
        )
        return Response({"channelId": str(channel_id), "deleted": True})

    @extend_schema(request=MemberRefSerializer, responses=ChatUserSerializer(many=True))
    @action(detail=True, methods=["get", "post"], url_path="members")
    def members(self, request, pk=None):
        channel = self.get_object()
        if request.method == "GET":
            self._require_reader(channel)
            users = membership.list_members(channel.id)
            return Response(ChatUserSerializer(users, many=True).data)

        self._require_manager(channel, "Only channel admins can add members.")
        ser = MemberRefSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        user_id = ser.validated_data["user_id"]
        if membership.add_member(channel.id, user_id):
            announce_member_added(request.user, channel, user_id)
            log_action(
                "chat_member_added",
                actor=request.user,
                message=f"User {user_id} added to {channel.key}",
                model_name="chat.ChannelMember",
                record_id=channel.id,
                after={"user_id": user_id},
            )
        return Response({"channelId": str(channel.id), "userId": user_id})

    @action(
        detail=True,
        methods=["delete"],
        url_path=r"members/(?P<user_id>\d+)",
    )
    def remove_member(self, request, pk=None, user_id=None):
        channel = self.get_object()
        self._require_manager(channel, "Only channel admins can remove members.")
        user_id = int(user_id)
        # Removing someone from the channel also drops their admin rights
        removed = membership.remove_member(channel.id, user_id)
        membership.remove_admin(channel.id, user_id)
        if removed:
            log_action(
                "chat_member_removed",
                actor=request.user,
                message=f"User {user_id} removed from {channel.key}",
                model_name="chat.ChannelMember",
                record_id=channel.id,
                before={"user_id": user_id},
            )
            channel_key, channel_id = channel.key, channel.id
            transaction.on_commit(
                lambda: chat_events.publish_member_removed(
                    channel_key, channel_id, user_id
                )
            )
        return Response(
            {"channelId": str(channel.id), "userId": user_id, "removed": removed}
        )

    @extend_schema(request=MemberRefSerializer, responses=ChatUserSerializer(many=True))
    @action(detail=True, methods=["get", "post"], url_path="admins")
    def admins(self, request, pk=None):
        channel = self.get_object()
        if request.method == "GET":
            self._require_reader(channel)
            users = membership.list_admins(channel.id)
            return Response(ChatUserSerializer(users, many=True).data)

        self._require_manager(channel, "Only admins can promote other users.")
        ser = MemberRefSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        user_id = ser.validated_data["user_id"]
        if membership.add_admin(channel.id, user_id):
            log_action(
                "chat_admin_added",
                actor=request.user,
                message=f"User {user_id} promoted in {channel.key}",
                model_name="chat.ChannelAdmin",
                record_id=channel.id,
                after={"user_id": user_id},
            )
        return Response({"channelId": str(channel.id), "userId": user_id})

    @action(
        detail=True,
        methods=["delete"],
        url_path=r"admins/(?P<user_id>\d+)",
    )
    def remove_admin(self, request, pk=None, user_id=None):
        channel = self.get_object()
        self._require_manager(channel, "Only admins can remove admin rights.")
        user_id = int(user_id)
        removed = membership.remove_admin(channel.id, user_id)
        if removed:
            log_action(
                "chat_admin_removed",
                actor=request.user,
                message=f"User {user_id} demoted in {channel.key}",
                model_name="chat.ChannelAdmin",
                record_id=channel.id,
                before={"user_id": user_id},
            )
        return Response(
            {"channelId": str(channel.id), "userId": user_id, "removed": removed}
        )

    @extend_schema(request=None)
    @action(detail=True, methods=["post"], url_path="leave")
    def leave(self, request, pk=None):
        channel = self.get_object()
        membership.leave_channel(channel.id, request.user.id)
        return Response({"channelId": str(channel.id), "left": True})

    @extend_schema(responses=HuddleSerializer)
    @action(detail=True, methods=["get"], url_path="huddle")
    def huddle(self, request, pk=None):
        channel = self.get_object()
        self._require_reader(channel)
        active = huddles.get_active(channel.key)
        if active is None:
            msg = "No active huddle in this channel."
            raise NotFound(msg)
        return Response(HuddleSerializer(active).data)
