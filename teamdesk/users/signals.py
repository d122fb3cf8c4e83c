from __future__ import annotations

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.db.models.signals import post_save
from django.dispatch import receiver

DEFAULT_GROUP = "Member"


@receiver(post_save, sender=get_user_model())
def add_default_member_group(sender, instance, created, **kwargs):
    """Put every new account in the least-privileged 'Member' group."""

    if not created:
        return

    group, _ = Group.objects.get_or_create(name=DEFAULT_GROUP)
    instance.groups.add(group)
