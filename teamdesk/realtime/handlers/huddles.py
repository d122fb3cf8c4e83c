from __future__ import annotations

import logging
from typing import Any

from channels.db import database_sync_to_async

from teamdesk.chat import wire
from teamdesk.chat.exceptions import ForbiddenError
from teamdesk.chat.services import channels
from teamdesk.chat.services import huddles
from teamdesk.chat.services import membership
from teamdesk.realtime.dispatch import on_event
from teamdesk.realtime.schemas import HuddleRefSerializer
from teamdesk.realtime.schemas import HuddleSignalSerializer
from teamdesk.realtime.socketio import SocketIdentity
from teamdesk.realtime.socketio import room_for_channel
from teamdesk.realtime.socketio import room_for_user
from teamdesk.realtime.socketio import sio

logger = logging.getLogger(__name__)

PRIVATE_HUDDLE_ERROR = "You are not a member of this private channel."


def _require_access(channel_key: str, user_id: int, sid: str) -> None:
    # Keys without a channel row behave like public channels
    channel = channels.get_by_key(channel_key)
    if channel is not None and not membership.can_post(
        channel, user_id, correlation_id=sid
    ):
        raise ForbiddenError(PRIVATE_HUDDLE_ERROR)


@database_sync_to_async
def _check_access(channel_key: str, user_id: int, sid: str) -> None:
    _require_access(channel_key, user_id, sid)


@database_sync_to_async
def _start_huddle(
    channel_key: str, huddle_id: str, user_id: int, sid: str
) -> tuple[dict[str, Any], bool]:
    _require_access(channel_key, user_id, sid)
    huddle, created = huddles.start(channel_key, huddle_id, user_id)
    return wire.huddle_payload(huddle, already_active=not created), created


@database_sync_to_async
def _end_huddle(channel_key: str, huddle_id: str, user_id: int, sid: str) -> bool:
    _require_access(channel_key, user_id, sid)
    return huddles.end(channel_key, huddle_id) is not None


@on_event("huddle:start", HuddleRefSerializer)
async def start(sid: str, identity: SocketIdentity, data: dict[str, Any]):
    payload, created = await _start_huddle(
        data["channelId"], data["huddleId"], identity.user_id, sid
    )
    if not created:
        # Only the caller learns which huddle is already running
        await sio.emit("huddle:started", payload, to=sid)
        return
    await sio.emit(
        "huddle:started", payload, room=room_for_channel(data["channelId"])
    )


@on_event("huddle:end", HuddleRefSerializer)
async def end(sid: str, identity: SocketIdentity, data: dict[str, Any]):
    ended = await _end_huddle(
        data["channelId"], data["huddleId"], identity.user_id, sid
    )
    if not ended:
        logger.info(
            "huddle:end for %s in %s matched no active huddle [%s]",
            data["huddleId"],
            data["channelId"],
            sid,
        )
    await sio.emit(
        "huddle:ended",
        wire.huddle_ended_payload(
            data["channelId"], data["huddleId"], identity.user_id, identity.username
        ),
        room=room_for_channel(data["channelId"]),
    )


async def _relay_participant(
    sid: str, identity: SocketIdentity, data: dict[str, Any], event: str
) -> None:
    await _check_access(data["channelId"], identity.user_id, sid)
    await sio.emit(
        event,
        {
            "channelId": data["channelId"],
            "huddleId": data["huddleId"],
            "userId": identity.user_id,
            "username": identity.username,
            "at": wire.now_iso(),
        },
        room=room_for_channel(data["channelId"]),
        skip_sid=sid,
    )


@on_event("huddle:join", HuddleRefSerializer)
async def join(sid: str, identity: SocketIdentity, data: dict[str, Any]):
    await _relay_participant(sid, identity, data, "huddle:user-joined")


@on_event("huddle:leave", HuddleRefSerializer)
async def leave(sid: str, identity: SocketIdentity, data: dict[str, Any]):
    await _relay_participant(sid, identity, data, "huddle:user-left")


@on_event("huddle:signal", HuddleSignalSerializer)
async def signal(sid: str, identity: SocketIdentity, data: dict[str, Any]):
    # WebRTC offers/answers/candidates go to the target user only
    await sio.emit(
        "huddle:signal",
        {
            "channelId": data["channelId"],
            "huddleId": data.get("huddleId"),
            "fromUserId": identity.user_id,
            "toUserId": data["targetUserId"],
            "data": data["data"],
        },
        room=room_for_user(data["targetUserId"]),
    )
