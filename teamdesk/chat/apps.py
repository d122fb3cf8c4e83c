from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class ChatConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "teamdesk.chat"
    verbose_name = _("Chat")

    def ready(self):
        # Registers the chat/huddle/presence socket events on the shared server
        import teamdesk.realtime.handlers  # noqa: F401
