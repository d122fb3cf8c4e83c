from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from dataclasses import field

from django.db.models import Q
from django.utils import timezone

from teamdesk.chat.exceptions import MessageNotFoundError
from teamdesk.chat.models import Message

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MessageContent:
    """Message body as stored; ciphertext and keys are kept opaque."""

    text_html: str = ""
    encrypted_json: str | None = None
    sender_public_key: dict | None = None
    fallback_text: str | None = None
    attachments: list = field(default_factory=list)


def _as_uuid(value) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def create(
    channel_id,
    user_id: int,
    content: MessageContent,
    parent_id=None,
) -> Message:
    if parent_id is not None:
        parent_uuid = _as_uuid(parent_id)
        if parent_uuid is None or not Message.objects.filter(pk=parent_uuid).exists():
            raise MessageNotFoundError
        parent_id = parent_uuid
    message = Message.objects.create(
        channel_id=channel_id,
        user_id=user_id,
        text_html=content.text_html or "",
        encrypted_json=content.encrypted_json,
        sender_public_key=content.sender_public_key,
        fallback_text=content.fallback_text,
        attachments=list(content.attachments or []),
        parent_id=parent_id,
    )
    logger.debug("Message %s stored in channel %s", message.id, channel_id)
    return message


def get_recent(
    channel_id,
    limit: int,
    channel_key_fallback: str | None = None,
) -> list[Message]:
    """The newest ``limit`` messages of a channel, oldest first.

    Rows written before messages referenced channels by id are matched through
    ``channel_key_fallback``.
    """
    if limit <= 0:
        return []
    condition = Q(channel_id=channel_id)
    if channel_key_fallback:
        condition |= Q(legacy_channel_key=channel_key_fallback)
    newest = list(
        Message.objects.filter(condition)
        .select_related("user")
        .order_by("-created_at")[:limit]
    )
    newest.reverse()
    return newest


def get(message_id) -> Message | None:
    pk = _as_uuid(message_id)
    if pk is None:
        return None
    return Message.objects.select_related("user", "channel").filter(pk=pk).first()


def edit(message_id, user_id: int, new_text: str) -> Message | None:
    """Replace the text of a live message owned by ``user_id``.

    Returns None when the message does not exist, belongs to someone else or
    was deleted.
    """
    pk = _as_uuid(message_id)
    if pk is None:
        return None
    updated = Message.objects.filter(
        pk=pk, user_id=user_id, deleted_at__isnull=True
    ).update(text_html=new_text, updated_at=timezone.now())
    if not updated:
        return None
    return get(pk)


def soft_delete(message_id, user_id: int) -> Message | None:
    pk = _as_uuid(message_id)
    if pk is None:
        return None
    updated = Message.objects.filter(
        pk=pk, user_id=user_id, deleted_at__isnull=True
    ).update(deleted_at=timezone.now())
    if not updated:
        return None
    return get(pk)
