from django.contrib import admin

from .models import Channel
from .models import ChannelAdmin
from .models import ChannelMember
from .models import Huddle
from .models import Message


class ChannelMemberInline(admin.TabularInline):
    model = ChannelMember
    extra = 0
    raw_id_fields = ("user",)


class ChannelAdminInline(admin.TabularInline):
    model = ChannelAdmin
    extra = 0
    raw_id_fields = ("user",)


@admin.register(Channel)
class ChannelModelAdmin(admin.ModelAdmin):
    list_display = ("key", "name", "type", "is_private", "created_by", "created_at")
    list_filter = ("type", "is_private")
    search_fields = ("key", "name")
    raw_id_fields = ("created_by",)
    inlines = [ChannelMemberInline, ChannelAdminInline]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    list_display = ("id", "channel", "user", "created_at", "updated_at", "deleted_at")
    list_filter = ("deleted_at",)
    search_fields = ("text_html", "fallback_text", "legacy_channel_key")
    raw_id_fields = ("channel", "user", "parent")
    readonly_fields = ("created_at",)


@admin.register(Huddle)
class HuddleAdmin(admin.ModelAdmin):
    list_display = ("huddle_id", "channel_key", "started_by", "started_at", "ended_at")
    search_fields = ("channel_key", "huddle_id")
    raw_id_fields = ("started_by",)
