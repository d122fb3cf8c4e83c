from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import CharField
from django.db.models import EmailField
from django.utils.translation import gettext_lazy as _

ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_MEMBER = "member"

# Django Group name -> role claim exposed to clients
GROUP_ROLES = {
    "Admin": ROLE_ADMIN,
    "Manager": ROLE_MANAGER,
}


class User(AbstractUser):
    """
    Team member account.

    The chat core only ever reads users (author display names, mention
    resolution, socket identity); it never owns them.
    """

    # First and last name do not cover name patterns around the globe
    name = CharField(_("Full Name"), blank=True, max_length=255)
    email = EmailField(_("email address"), unique=True)
    first_name = CharField(_("First Name"), max_length=150, blank=True)
    last_name = CharField(_("Last Name"), max_length=150, blank=True)
    # Audit timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def save(self, *args, **kwargs):
        full_name = f"{self.first_name} {self.last_name}".strip()
        if full_name:
            self.name = full_name
        super().save(*args, **kwargs)

    @property
    def display_name(self) -> str:
        return self.name or self.username

    @property
    def role(self) -> str:
        if self.is_staff or self.is_superuser:
            return ROLE_ADMIN
        names = set(self.groups.values_list("name", flat=True))
        for group_name, role in GROUP_ROLES.items():
            if group_name in names:
                return role
        return ROLE_MEMBER
