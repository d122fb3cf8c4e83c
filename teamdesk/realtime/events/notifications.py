from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

if TYPE_CHECKING:  # import for type checking only
    from teamdesk.notifications.models import Notification
from teamdesk.chat.wire import iso
from teamdesk.realtime.socketio import emit_event_to_user


def build_notification_payload(notification: Notification) -> dict[str, Any]:
    return {
        "id": notification.id,
        "title": notification.title,
        "message": notification.message,
        "type": notification.notification_type,
        "link": notification.related_link,
        "isRead": notification.is_read,
        "createdAt": iso(notification.created_at),
    }


def publish_notification_created(notification: Notification) -> None:
    """Publish a newly created Notification to the recipient in realtime."""

    payload = build_notification_payload(notification)
    emit_event_to_user(notification.recipient_id, "notification", payload)
