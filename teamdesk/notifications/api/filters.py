from django_filters import rest_framework as filters

from teamdesk.notifications.models import Notification


class NotificationFilter(filters.FilterSet):
    unread = filters.BooleanFilter(method="filter_unread")
    type = filters.CharFilter(field_name="notification_type", lookup_expr="iexact")

    class Meta:
        model = Notification
        fields = ["unread", "type"]

    def filter_unread(self, queryset, name, value):
        return queryset.filter(is_read=not value)
