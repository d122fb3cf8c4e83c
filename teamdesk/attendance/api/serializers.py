from rest_framework import serializers

from teamdesk.attendance.models import Availability
from teamdesk.attendance.services import MAX_AWAY_MINUTES


class AvailabilitySerializer(serializers.ModelSerializer):
    status_display = serializers.CharField(source="get_status_display", read_only=True)

    class Meta:
        model = Availability
        fields = [
            "status",
            "status_display",
            "away_started_at",
            "away_planned_minutes",
            "updated_at",
        ]
        read_only_fields = fields


class AwaySerializer(serializers.Serializer):
    minutes = serializers.IntegerField(
        min_value=1,
        error_messages={"min_value": "minutes must be a positive number"},
    )

    def validate_minutes(self, value):
        # Clamp instead of rejecting long breaks
        return min(value, MAX_AWAY_MINUTES)
