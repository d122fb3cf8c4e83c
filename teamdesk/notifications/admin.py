from django.contrib import admin

from teamdesk.notifications import models


@admin.register(models.Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ["id", "recipient", "title", "notification_type", "is_read"]
    search_fields = ["title", "message", "related_link"]
    list_filter = ["notification_type", "is_read", "created_at"]
