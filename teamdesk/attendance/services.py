"""Availability changes and the status lines mirrored into chat."""

from __future__ import annotations

import datetime as dt
import logging

from django.utils import timezone

from teamdesk.chat.system_bot import mirror_availability_to_chat

from .models import Availability

logger = logging.getLogger(__name__)

# Longest away period a user can announce (8 hours)
MAX_AWAY_MINUTES = 8 * 60


def _name(user) -> str:
    return getattr(user, "username", None) or "Unknown user"


def _availability_for(user) -> Availability:
    availability, _ = Availability.objects.get_or_create(user=user)
    return availability


def _set_status(user, status: str, *, planned_minutes: int | None = None) -> Availability:
    availability = _availability_for(user)
    availability.status = status
    if status == Availability.Status.AWAY:
        availability.away_started_at = timezone.now()
        availability.away_planned_minutes = planned_minutes
    else:
        availability.away_started_at = None
        availability.away_planned_minutes = None
    availability.save()
    return availability


def _announce(user, text: str) -> None:
    logger.info("Availability update for user %s: %s", user.pk, text)
    mirror_availability_to_chat(text, user.pk)


def sign_in_text(user) -> str:
    return f"✅ *{_name(user)}* has *signed in* and is now available."


def sign_off_text(user) -> str:
    return f"👋 *{_name(user)}* has *signed off* and is no longer available."


def away_text(user, minutes: int, until: dt.datetime) -> str:
    until_time = timezone.localtime(until).strftime("%H:%M")
    return (
        f"⏸️ *{_name(user)}* is *AWS* (away from system) for approximately "
        f"*{minutes} minute(s)* (until around *{until_time}*)."
    )


def lunch_text(user) -> str:
    return (
        f"🍽️ *{_name(user)}* has started a *lunch break* "
        "and is temporarily unavailable."
    )


def available_text(user, *, planned: int | None, elapsed: int | None) -> str:
    name = _name(user)
    if planned is None or elapsed is None:
        return f"▶️ *{name}* is *available* again."
    if elapsed < planned:
        note = (
            f" (back *earlier* than planned: AWS was {planned} min, "
            f"returned after ~{elapsed} min)"
        )
    elif elapsed > planned:
        note = (
            f" (back *later* than planned: AWS was {planned} min, "
            f"returned after ~{elapsed} min)"
        )
    else:
        note = f" (back as planned after ~{elapsed} min)"
    return f"▶️ *{name}* is *available* again{note}."


def mark_sign_in(user) -> Availability:
    availability = _set_status(user, Availability.Status.SIGNED_IN)
    _announce(user, sign_in_text(user))
    return availability


def mark_sign_off(user) -> Availability:
    availability = _set_status(user, Availability.Status.SIGNED_OFF)
    _announce(user, sign_off_text(user))
    return availability


def mark_away(user, minutes: int) -> Availability:
    minutes = min(int(minutes), MAX_AWAY_MINUTES)
    availability = _set_status(
        user, Availability.Status.AWAY, planned_minutes=minutes
    )
    until = availability.away_started_at + dt.timedelta(minutes=minutes)
    _announce(user, away_text(user, minutes, until))
    return availability


def mark_lunch(user) -> Availability:
    availability = _set_status(user, Availability.Status.LUNCH)
    _announce(user, lunch_text(user))
    return availability


def mark_available(user) -> Availability:
    previous = _availability_for(user)
    planned = elapsed = None
    if (
        previous.status == Availability.Status.AWAY
        and previous.away_started_at is not None
        and previous.away_planned_minutes
    ):
        planned = previous.away_planned_minutes
        elapsed_seconds = (timezone.now() - previous.away_started_at).total_seconds()
        elapsed = max(1, round(elapsed_seconds / 60))
    availability = _set_status(user, Availability.Status.SIGNED_IN)
    _announce(user, available_text(user, planned=planned, elapsed=elapsed))
    return availability
