from __future__ import annotations

import logging

from teamdesk.chat.system_bot import mirror_project_notification_to_chat

from .models import Notification

logger = logging.getLogger(__name__)


def notify_user(  # noqa: PLR0913
    recipient_id: int,
    *,
    title: str,
    message: str,
    notification_type: str = Notification.Type.OTHER,
    related_link: str = "",
    actor_id: int | None = None,
) -> Notification:
    """Store a notification; the post_save signal pushes it over the socket.

    Task notifications are also posted to the project-manager chat channel,
    authored by ``actor_id`` (or the recipient when no actor is given).
    """

    notification = Notification.objects.create(
        recipient_id=recipient_id,
        title=title,
        message=message,
        notification_type=notification_type,
        related_link=related_link,
    )
    logger.info(
        "Notification %s (%s) created for user %s",
        notification.id,
        notification_type,
        recipient_id,
    )
    if notification_type == Notification.Type.TASK:
        text = f"{title}\n{message}" if message else title
        mirror_project_notification_to_chat(text, actor_id or recipient_id)
    return notification
