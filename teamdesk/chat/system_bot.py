"""Mirror status updates from other parts of the app into chat channels."""

from __future__ import annotations

import logging

from django.conf import settings
from django.db import transaction

from teamdesk.realtime.events.chat import publish_message_created

from . import wire
from .models import Channel
from .models import Message
from .services import channels
from .services import messages
from .services.messages import MessageContent

logger = logging.getLogger(__name__)


def post_system_message(
    *,
    channel_key: str,
    channel_name: str,
    text: str,
    user_id: int | None,
) -> Message | None:
    """Store ``text`` in the channel and broadcast it like a chat message.

    Newlines are rendered as ``<br>`` and the plain text is kept as fallback.
    The broadcast goes out once the surrounding transaction commits.
    """
    if not text:
        return None
    if not user_id:
        logger.warning("System message for %s skipped: no author", channel_key)
        return None

    channel = channels.get_or_create_by_key(
        channel_key,
        type=Channel.Type.CHANNEL,
        name=channel_name,
        created_by_id=user_id,
    )
    message = messages.create(
        channel.id,
        user_id,
        MessageContent(text_html=text.replace("\n", "<br>"), fallback_text=text),
    )
    payload = wire.message_payload(message, channel.key)
    transaction.on_commit(lambda: publish_message_created(channel.key, payload))
    return message


def _mirror(channel_alias: str, text: str, user_id: int | None) -> Message | None:
    target = settings.CHAT_SYSTEM_CHANNELS[channel_alias]
    return post_system_message(
        channel_key=target["key"],
        channel_name=target["name"],
        text=text,
        user_id=user_id,
    )


def mirror_availability_to_chat(text: str, user_id: int | None) -> Message | None:
    return _mirror("availability", text, user_id)


def mirror_project_notification_to_chat(
    text: str, user_id: int | None
) -> Message | None:
    return _mirror("project_manager", text, user_id)
