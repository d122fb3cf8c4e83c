from django.contrib import admin

from .models import Availability


@admin.register(Availability)
class AvailabilityAdmin(admin.ModelAdmin):
    list_display = ("user", "status", "away_started_at", "away_planned_minutes", "updated_at")
    list_filter = ("status",)
    search_fields = ("user__username", "user__email")
    raw_id_fields = ("user",)
