from django.apps import AppConfig


class AttendanceConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "teamdesk.attendance"
    verbose_name = "Attendance"
