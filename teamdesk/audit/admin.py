from django.contrib import admin

from teamdesk.audit import models


@admin.register(models.AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    list_display = ["id", "action", "actor", "model_name", "record_id", "created_at"]
    search_fields = ["action", "message", "model_name", "record_id"]
    list_filter = ["action", "created_at"]
