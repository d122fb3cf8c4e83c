from __future__ import annotations

import logging

from django.db import IntegrityError
from django.db import transaction
from django.utils import timezone

from teamdesk.chat.models import Huddle

logger = logging.getLogger(__name__)


def get_active(channel_key: str) -> Huddle | None:
    return (
        Huddle.objects.select_related("started_by")
        .filter(channel_key=channel_key, ended_at__isnull=True)
        .first()
    )


def start(
    channel_key: str, huddle_id: str, started_by_id: int | None
) -> tuple[Huddle, bool]:
    """Start a huddle unless one is already active in the channel.

    Returns the active huddle and whether this call created it.
    """
    active = get_active(channel_key)
    if active is not None:
        return active, False
    try:
        with transaction.atomic():
            huddle = Huddle.objects.create(
                channel_key=channel_key,
                huddle_id=huddle_id,
                started_by_id=started_by_id,
            )
    except IntegrityError:
        # Lost the race against a concurrent start
        active = get_active(channel_key)
        if active is None:
            raise
        return active, False
    logger.info(
        "Huddle %s started in %s by user %s", huddle_id, channel_key, started_by_id
    )
    return huddle, True


def end(channel_key: str, huddle_id: str) -> Huddle | None:
    active = (
        Huddle.objects.filter(
            channel_key=channel_key, huddle_id=huddle_id, ended_at__isnull=True
        )
        .values_list("pk", flat=True)
        .first()
    )
    if active is None:
        return None
    updated = Huddle.objects.filter(pk=active, ended_at__isnull=True).update(
        ended_at=timezone.now()
    )
    if not updated:
        return None
    logger.info("Huddle %s ended in %s", huddle_id, channel_key)
    return Huddle.objects.select_related("started_by").get(pk=active)
