"""Chat broadcasts triggered from sync Django code (REST views, system bot)."""

from __future__ import annotations

from typing import Any

from teamdesk.realtime.socketio import emit_event_to_all
from teamdesk.realtime.socketio import emit_event_to_channel
from teamdesk.realtime.socketio import emit_event_to_user


def publish_message_created(channel_key: str, payload: dict[str, Any]) -> None:
    emit_event_to_channel(channel_key, "chat:message", payload)

def publish_channel_created(payload: dict[str, Any]) -> None:
    emit_event_to_all("chat:channel_created", payload)

def publish_member_added(channel_key: str, channel_id, user_id: int) -> None:
    # The added user's clients refresh their channel list; the room sees the roster change
    emit_event_to_user(user_id, "chat:added_to_channel", {"channelId": str(channel_id)})
    emit_event_to_channel(
        channel_key,
        "chat:member_added",
        {"channelId": str(channel_id), "channelKey": channel_key, "userId": user_id},
    )

def publish_member_removed(channel_key: str, channel_id, user_id: int) -> None:
    emit_event_to_channel(
        channel_key,
        "chat:member_removed",
        {"channelId": str(channel_id), "channelKey": channel_key, "userId": user_id},
    )

def publish_channel_updated(channel_key: str, payload: dict[str, Any]) -> None:
    emit_event_to_channel(channel_key, "chat:channel_updated", payload)

def publish_channel_deleted(channel_key: str, channel_id) -> None:
    emit_event_to_channel(
        channel_key,
        "chat:channel_deleted",
        {"channelId": str(channel_id), "channelKey": channel_key},
    )
