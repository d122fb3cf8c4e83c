"""Channel membership, admin rights and the authorization rules built on them.

The ``can_*`` checks fail closed: a database error while checking is logged
with the caller's correlation id (socket sid or request id) and the action is
refused.
"""

from __future__ import annotations

import logging

from django.contrib.auth import get_user_model
from django.db import DatabaseError

from teamdesk.chat.models import Channel
from teamdesk.chat.models import ChannelAdmin
from teamdesk.chat.models import ChannelMember

logger = logging.getLogger(__name__)


def is_member(channel_id, user_id: int) -> bool:
    return ChannelMember.objects.filter(channel_id=channel_id, user_id=user_id).exists()


def is_admin(channel_id, user_id: int) -> bool:
    return ChannelAdmin.objects.filter(channel_id=channel_id, user_id=user_id).exists()


def ensure_member(channel_id, user_id: int) -> bool:
    """Add the user to the channel if needed; returns True when a row was created."""
    _, created = ChannelMember.objects.get_or_create(
        channel_id=channel_id, user_id=user_id
    )
    return created


def add_member(channel_id, user_id: int) -> bool:
    return ensure_member(channel_id, user_id)


def remove_member(channel_id, user_id: int) -> bool:
    deleted, _ = ChannelMember.objects.filter(
        channel_id=channel_id, user_id=user_id
    ).delete()
    return deleted > 0


def add_admin(channel_id, user_id: int) -> bool:
    _, created = ChannelAdmin.objects.get_or_create(
        channel_id=channel_id, user_id=user_id
    )
    return created


def remove_admin(channel_id, user_id: int) -> bool:
    deleted, _ = ChannelAdmin.objects.filter(
        channel_id=channel_id, user_id=user_id
    ).delete()
    return deleted > 0


def leave_channel(channel_id, user_id: int) -> None:
    remove_member(channel_id, user_id)
    remove_admin(channel_id, user_id)


def list_members(channel_id) -> list:
    user_model = get_user_model()
    return list(
        user_model.objects.filter(chat_memberships__channel_id=channel_id).order_by(
            "chat_memberships__joined_at", "id"
        )
    )


def list_admins(channel_id) -> list:
    user_model = get_user_model()
    return list(
        user_model.objects.filter(chat_admin_grants__channel_id=channel_id).order_by(
            "chat_admin_grants__created_at", "id"
        )
    )


def can_manage(
    channel: Channel, user_id: int, correlation_id: str | None = None
) -> bool:
    if channel.created_by_id is not None and channel.created_by_id == user_id:
        return True
    try:
        return is_admin(channel.id, user_id)
    except DatabaseError:
        logger.exception(
            "Admin check failed for user %s on channel %s [%s]",
            user_id,
            channel.key,
            correlation_id,
        )
        return False


def can_post(
    channel: Channel, user_id: int, correlation_id: str | None = None
) -> bool:
    if not channel.is_private:
        return True
    if channel.created_by_id is not None and channel.created_by_id == user_id:
        return True
    try:
        return is_member(channel.id, user_id)
    except DatabaseError:
        logger.exception(
            "Membership check failed for user %s on channel %s [%s]",
            user_id,
            channel.key,
            correlation_id,
        )
        return False


def can_read(
    channel: Channel, user_id: int, correlation_id: str | None = None
) -> bool:
    return can_post(channel, user_id, correlation_id=correlation_id)
