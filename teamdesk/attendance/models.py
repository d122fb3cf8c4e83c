from django.conf import settings
from django.db import models


class Availability(models.Model):
    """Current availability of a user, as announced in the availability channel."""

    class Status(models.TextChoices):
        SIGNED_IN = "signed_in", "Signed in"
        SIGNED_OFF = "signed_off", "Signed off"
        AWAY = "away", "Away from system"
        LUNCH = "lunch", "Lunch break"

    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="availability",
    )
    status = models.CharField(
        max_length=20, choices=Status.choices, default=Status.SIGNED_OFF
    )
    # Set while the user is away; used to tell whether they came back on time
    away_started_at = models.DateTimeField(null=True, blank=True)
    away_planned_minutes = models.PositiveIntegerField(null=True, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "availability"

    def __str__(self):
        return f"{self.user} - {self.get_status_display()}"
