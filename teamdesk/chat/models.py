import uuid

from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone
from django.utils.translation import gettext_lazy as _


class Channel(models.Model):
    class Type(models.TextChoices):
        PUBLIC = "public", _("Public")
        CHANNEL = "channel", _("Channel")
        DM = "dm", _("Direct message")
        THREAD = "thread", _("Thread")

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    # Room address and idempotent lookup key (e.g. "general", "dm:3:7")
    key = models.CharField(max_length=255, unique=True)
    name = models.CharField(max_length=255, blank=True)
    type = models.CharField(max_length=20, choices=Type.choices, default=Type.PUBLIC)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_channels",
    )
    is_private = models.BooleanField(default=False)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["created_at"]

    def __str__(self):
        return self.name or self.key


class ChannelMember(models.Model):
    channel = models.ForeignKey(
        Channel, on_delete=models.CASCADE, related_name="memberships"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_memberships",
    )
    joined_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["channel", "user"], name="uniq_chat_channel_member"
            ),
        ]

    def __str__(self):
        return f"{self.user_id} in {self.channel_id}"


class ChannelAdmin(models.Model):
    channel = models.ForeignKey(
        Channel, on_delete=models.CASCADE, related_name="admin_grants"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_admin_grants",
    )
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["channel", "user"], name="uniq_chat_channel_admin"
            ),
        ]

    def __str__(self):
        return f"{self.user_id} admin of {self.channel_id}"


class Message(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    channel = models.ForeignKey(
        Channel,
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name="messages",
    )
    # Older rows were written with the channel key instead of its id
    legacy_channel_key = models.CharField(
        max_length=255, null=True, blank=True, db_index=True
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="chat_messages",
    )
    text_html = models.TextField(blank=True, default="")
    encrypted_json = models.TextField(null=True, blank=True)
    sender_public_key = models.JSONField(null=True, blank=True)
    fallback_text = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(null=True, blank=True)
    deleted_at = models.DateTimeField(null=True, blank=True)
    parent = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="replies",
    )
    reactions = models.JSONField(default=dict, blank=True)
    attachments = models.JSONField(default=list, blank=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(
                fields=["channel", "created_at"], name="chat_msg_channel_created_idx"
            ),
        ]

    def __str__(self):
        return f"{self.id} by {self.user_id}"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Huddle(models.Model):
    channel_key = models.CharField(max_length=255, db_index=True)
    huddle_id = models.CharField(max_length=255)
    started_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="started_huddles",
    )
    started_at = models.DateTimeField(default=timezone.now)
    ended_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-started_at"]
        constraints = [
            # At most one active huddle per channel, enforced by the database
            models.UniqueConstraint(
                fields=["channel_key"],
                condition=Q(ended_at__isnull=True),
                name="uniq_active_huddle_per_channel",
            ),
        ]

    def __str__(self):
        return f"{self.huddle_id} in {self.channel_key}"

    @property
    def is_active(self) -> bool:
        return self.ended_at is None
