from __future__ import annotations

import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.db import transaction
from django.db.models import Q

from teamdesk.chat import keys
from teamdesk.chat.exceptions import ChannelNotFoundError
from teamdesk.chat.exceptions import DuplicateKeyError
from teamdesk.chat.exceptions import ForbiddenError
from teamdesk.chat.models import Channel
from teamdesk.chat.models import ChannelAdmin
from teamdesk.chat.models import ChannelMember
from teamdesk.chat.models import Huddle
from teamdesk.chat.models import Message

from . import membership

logger = logging.getLogger(__name__)


def get_by_key(key: str) -> Channel | None:
    if not key:
        return None
    return Channel.objects.filter(key=key).first()


def get_by_id(channel_id) -> Channel | None:
    if not channel_id:
        return None
    try:
        return Channel.objects.filter(pk=channel_id).first()
    except (ValidationError, ValueError):
        # Not a UUID, so it cannot be a channel id
        return None


def resolve(key_or_id) -> Channel | None:
    """Look a channel up by key first, then by its opaque id."""
    return get_by_key(str(key_or_id)) or get_by_id(key_or_id)


def create_channel(  # noqa: PLR0913
    *,
    key: str,
    name: str,
    type: str = Channel.Type.CHANNEL,  # noqa: A002
    created_by_id: int | None,
    is_private: bool = False,
) -> Channel:
    """Create a channel and seed its creator as admin and member."""
    if Channel.objects.filter(key=key).exists():
        raise DuplicateKeyError
    try:
        with transaction.atomic():
            channel = Channel.objects.create(
                key=key,
                name=name or key,
                type=type,
                created_by_id=created_by_id,
                is_private=is_private,
            )
            if created_by_id is not None:
                ChannelAdmin.objects.create(channel=channel, user_id=created_by_id)
                ChannelMember.objects.create(channel=channel, user_id=created_by_id)
    except IntegrityError as exc:
        if Channel.objects.filter(key=key).exists():
            raise DuplicateKeyError from exc
        raise
    logger.info("Channel %s (%s) created by user %s", channel.key, channel.id, created_by_id)
    return channel


def get_or_create_by_key(
    key: str,
    *,
    type: str = Channel.Type.PUBLIC,  # noqa: A002
    name: str | None = None,
    created_by_id: int | None = None,
) -> Channel:
    """Return the channel with this key, creating a non-private one if missing.

    An existing channel is returned unchanged. Two callers racing on the same
    new key both end up with the row that won the insert.
    """
    channel = get_by_key(key)
    if channel is not None:
        return channel
    try:
        with transaction.atomic():
            channel = Channel.objects.create(
                key=key,
                name=name or key,
                type=type,
                created_by_id=created_by_id,
                is_private=False,
            )
    except IntegrityError:
        channel = get_by_key(key)
        if channel is None:
            raise
        return channel
    logger.info("Channel %s auto-created for user %s", key, created_by_id)
    return channel


def list_for_user(user_id: int) -> list[Channel]:
    """Public channels plus the private ones the user belongs to."""
    member_of = ChannelMember.objects.filter(user_id=user_id).values("channel_id")
    return list(
        Channel.objects.filter(Q(is_private=False) | Q(id__in=member_of))
        .distinct()
        .order_by("created_at")
    )


def update_privacy(channel_id, is_private: bool) -> Channel:  # noqa: FBT001
    channel = get_by_id(channel_id)
    if channel is None:
        raise ChannelNotFoundError
    channel.is_private = bool(is_private)
    channel.save(update_fields=["is_private"])
    return channel


def delete_channel(channel_id, requester_id: int) -> Channel:
    channel = get_by_id(channel_id)
    if channel is None:
        raise ChannelNotFoundError
    if not membership.can_manage(channel, requester_id):
        msg = "Only channel admins can delete this channel."
        raise ForbiddenError(msg)
    with transaction.atomic():
        # Rows that only carry the key are not reached by the FK cascade
        Message.objects.filter(
            channel__isnull=True, legacy_channel_key=channel.key
        ).delete()
        Huddle.objects.filter(channel_key=channel.key).delete()
        channel.delete()
    logger.info("Channel %s deleted by user %s", channel.key, requester_id)
    return channel


def _create_or_get(key: str, **fields) -> tuple[Channel, bool]:
    channel = get_by_key(key)
    if channel is not None:
        return channel, False
    try:
        return create_channel(key=key, **fields), True
    except DuplicateKeyError:
        # Created concurrently by the other participant
        return get_by_key(key), False


def open_direct(user_id: int, other_user_id: int) -> tuple[Channel, bool]:
    """Private direct-message channel of two users, both enrolled as members.

    Returns the channel and whether this call created it.
    """
    channel, created = _create_or_get(
        keys.dm_key(user_id, other_user_id),
        name="Direct message",
        type=Channel.Type.DM,
        created_by_id=user_id,
        is_private=True,
    )
    membership.ensure_member(channel.id, user_id)
    membership.ensure_member(channel.id, other_user_id)
    return channel, created


def open_thread(
    message: Message, user_id: int, correlation_id: str | None = None
) -> tuple[Channel, bool]:
    """Reply channel of ``message``, gated by read access to its channel.

    A thread under a private channel is private and starts with the parent's
    members; anyone who can read the parent is enrolled when opening it.
    """
    parent = message.channel or get_by_key(message.legacy_channel_key)
    if parent is None:
        raise ChannelNotFoundError
    if not membership.can_read(parent, user_id, correlation_id=correlation_id):
        msg = "You are not allowed to view this private channel."
        raise ForbiddenError(msg)

    channel, created = _create_or_get(
        keys.thread_key(message.id),
        name="Thread",
        type=Channel.Type.THREAD,
        created_by_id=user_id,
        is_private=parent.is_private,
    )
    if created and parent.is_private:
        ChannelMember.objects.bulk_create(
            [
                ChannelMember(channel=channel, user_id=member_id)
                for member_id in parent.memberships.values_list("user_id", flat=True)
            ],
            ignore_conflicts=True,
        )
    membership.ensure_member(channel.id, user_id)
    return channel, created
