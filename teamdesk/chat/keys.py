"""Channel key conventions shared by the socket gateway and the REST API."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass

from django.utils.text import slugify

GENERAL_KEY = "general"
DM_PREFIX = "dm:"
THREAD_PREFIX = "thread:"

_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class ChannelMeta:
    type: str
    name: str


def dm_key(user_a: int, user_b: int) -> str:
    """Canonical key of the direct-message channel between two users."""
    low, high = sorted((int(user_a), int(user_b)))
    return f"{DM_PREFIX}{low}:{high}"


def thread_key(message_id) -> str:
    return f"{THREAD_PREFIX}{message_id}"


def meta_for_key(key: str) -> ChannelMeta:
    """Type and display name a channel gets when first created from its key."""
    if key == GENERAL_KEY:
        return ChannelMeta(type="public", name="#general")
    if key.startswith(DM_PREFIX):
        return ChannelMeta(type="dm", name="Direct message")
    if key.startswith(THREAD_PREFIX):
        return ChannelMeta(type="thread", name="Thread")
    return ChannelMeta(type="public", name=key)


def generate_channel_key(name: str) -> str:
    slug = slugify(name or "") or "channel"
    suffix = "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(4))
    return f"chan:{slug}:{suffix}"
