from __future__ import annotations

import logging
from dataclasses import dataclass
from dataclasses import field
from typing import Any

from channels.db import database_sync_to_async
from django.conf import settings

from teamdesk.chat import keys
from teamdesk.chat import wire
from teamdesk.chat.services import channels
from teamdesk.chat.services import huddles
from teamdesk.chat.services import membership
from teamdesk.chat.services import messages
from teamdesk.realtime.dispatch import emit_error
from teamdesk.realtime.dispatch import on_event
from teamdesk.realtime.schemas import ChannelRefSerializer
from teamdesk.realtime.schemas import MessageDeleteSerializer
from teamdesk.realtime.schemas import MessageEditSerializer
from teamdesk.realtime.schemas import MessagePostSerializer
from teamdesk.realtime.schemas import ReactionSerializer
from teamdesk.realtime.schemas import ReadReceiptSerializer
from teamdesk.realtime.socketio import SocketIdentity
from teamdesk.realtime.socketio import room_for_channel
from teamdesk.realtime.socketio import sio

logger = logging.getLogger(__name__)

PRIVATE_CHANNEL_ERROR = "You are not a member of this private channel."


@dataclass
class JoinOutcome:
    allowed: bool
    history: list[dict[str, Any]] = field(default_factory=list)
    huddle: dict[str, Any] | None = None


def _resolve_for_user(channel_key: str, user_id: int):
    meta = keys.meta_for_key(channel_key)
    return channels.get_or_create_by_key(
        channel_key, type=meta.type, name=meta.name, created_by_id=user_id
    )


@database_sync_to_async
def _join_channel(user_id: int, channel_key: str, sid: str) -> JoinOutcome:
    channel = _resolve_for_user(channel_key, user_id)
    if not membership.can_read(channel, user_id, correlation_id=sid):
        return JoinOutcome(allowed=False)
    membership.ensure_member(channel.id, user_id)

    recent = messages.get_recent(
        channel.id,
        settings.CHAT_HISTORY_LIMIT,
        channel_key_fallback=channel.key,
    )
    active = huddles.get_active(channel.key)
    return JoinOutcome(
        allowed=True,
        history=wire.message_list_payload(recent, channel.key),
        huddle=wire.huddle_payload(active) if active else None,
    )


@database_sync_to_async
def _post_message(
    user_id: int, data: dict[str, Any], sid: str
) -> dict[str, Any] | None:
    channel = _resolve_for_user(data["channelId"], user_id)
    if not membership.can_post(channel, user_id, correlation_id=sid):
        return None
    membership.ensure_member(channel.id, user_id)
    message = messages.create(
        channel.id,
        user_id,
        wire.content_from(data),
        parent_id=data.get("parentId"),
    )
    return wire.message_payload(message, channel.key, temp_id=data.get("tempId"))


def _channel_key_of(message, fallback: str) -> str:
    if message.channel_id is not None:
        return message.channel.key
    return message.legacy_channel_key or fallback


@database_sync_to_async
def _edit_message(user_id: int, data: dict[str, Any]) -> dict[str, Any] | None:
    message = messages.edit(data["messageId"], user_id, data["text"])
    if message is None:
        return None
    return wire.message_edited_payload(
        message, _channel_key_of(message, data["channelId"])
    )


@database_sync_to_async
def _delete_message(user_id: int, data: dict[str, Any]) -> dict[str, Any] | None:
    message = messages.soft_delete(data["messageId"], user_id)
    if message is None:
        return None
    return wire.message_deleted_payload(
        message, _channel_key_of(message, data["channelId"])
    )


@on_event("chat:join", ChannelRefSerializer, scalar_field="channelId")
async def join(sid: str, identity: SocketIdentity, data: dict[str, Any]):
    channel_key = data["channelId"]
    outcome = await _join_channel(identity.user_id, channel_key, sid)
    if not outcome.allowed:
        logger.info(
            "User %s denied join to private channel %s [%s]",
            identity.user_id,
            channel_key,
            sid,
        )
        await sio.emit(
            "chat:join:denied",
            {"error": PRIVATE_CHANNEL_ERROR, "channelId": channel_key},
            to=sid,
        )
        return

    room = room_for_channel(channel_key)
    await sio.enter_room(sid, room)
    await sio.emit(
        "chat:history",
        {"channelId": channel_key, "messages": outcome.history},
        to=sid,
    )
    if outcome.huddle:
        await sio.emit("huddle:started", outcome.huddle, to=sid)
    await sio.emit(
        "chat:system",
        wire.system_event("join", channel_key, identity.user_id, identity.username),
        room=room,
        skip_sid=sid,
    )


@on_event("chat:leave", ChannelRefSerializer, scalar_field="channelId")
async def leave(sid: str, identity: SocketIdentity, data: dict[str, Any]):
    channel_key = data["channelId"]
    room = room_for_channel(channel_key)
    await sio.leave_room(sid, room)
    await sio.emit(
        "chat:system",
        wire.system_event("leave", channel_key, identity.user_id, identity.username),
        room=room,
    )


@on_event("chat:message", MessagePostSerializer)
async def message(sid: str, identity: SocketIdentity, data: dict[str, Any]):
    payload = await _post_message(identity.user_id, data, sid)
    if payload is None:
        await emit_error(
            sid,
            "chat:message",
            PRIVATE_CHANNEL_ERROR,
            channelId=data["channelId"],
        )
        return
    await sio.emit(
        "chat:message", payload, room=room_for_channel(payload["channelId"])
    )


@on_event("chat:edit", MessageEditSerializer)
async def edit(sid: str, identity: SocketIdentity, data: dict[str, Any]):
    payload = await _edit_message(identity.user_id, data)
    if payload is None:
        return
    await sio.emit(
        "chat:messageEdited", payload, room=room_for_channel(payload["channelId"])
    )


@on_event("chat:delete", MessageDeleteSerializer)
async def delete(sid: str, identity: SocketIdentity, data: dict[str, Any]):
    payload = await _delete_message(identity.user_id, data)
    if payload is None:
        return
    await sio.emit(
        "chat:messageDeleted", payload, room=room_for_channel(payload["channelId"])
    )


@on_event("chat:reaction", ReactionSerializer)
async def reaction(sid: str, identity: SocketIdentity, data: dict[str, Any]):
    # Reactions are relayed only, never stored
    await sio.emit(
        "chat:reaction",
        {
            "channelId": data["channelId"],
            "messageId": data["messageId"],
            "emoji": data["emoji"],
            "action": data["action"],
            "userId": identity.user_id,
            "username": identity.username,
            "at": wire.now_iso(),
        },
        room=room_for_channel(data["channelId"]),
    )


@on_event("chat:typing", ChannelRefSerializer, scalar_field="channelId")
async def typing(sid: str, identity: SocketIdentity, data: dict[str, Any]):
    await sio.emit(
        "chat:typing",
        {
            "channelId": data["channelId"],
            "userId": identity.user_id,
            "username": identity.username,
        },
        room=room_for_channel(data["channelId"]),
        skip_sid=sid,
    )


@on_event("chat:read", ReadReceiptSerializer, scalar_field="channelId")
async def read(sid: str, identity: SocketIdentity, data: dict[str, Any]):
    payload = {
        "channelId": data["channelId"],
        "userId": identity.user_id,
        "username": identity.username,
        "at": wire.iso(data.get("at")) or wire.now_iso(),
    }
    if data.get("messageId"):
        payload["messageId"] = data["messageId"]
    await sio.emit(
        "chat:read",
        payload,
        room=room_for_channel(data["channelId"]),
        skip_sid=sid,
    )
