from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from teamdesk.attendance import services
from teamdesk.attendance.models import Availability

from .serializers import AvailabilitySerializer
from .serializers import AwaySerializer


@extend_schema(tags=["Attendance"])
class AvailabilityViewSet(viewsets.ViewSet):
    """Self-service availability; every change is announced in chat."""

    permission_classes = [IsAuthenticated]

    def _respond(self, availability: Availability) -> Response:
        data = {"success": True, **AvailabilitySerializer(availability).data}
        return Response(data, status=status.HTTP_200_OK)

    @extend_schema(request=None, responses=AvailabilitySerializer)
    @action(detail=False, methods=["get"], url_path="me")
    def me(self, request):
        availability, _ = Availability.objects.get_or_create(user=request.user)
        return Response(AvailabilitySerializer(availability).data)

    @extend_schema(request=None, responses=AvailabilitySerializer)
    @action(detail=False, methods=["post"], url_path="sign-in")
    def sign_in(self, request):
        return self._respond(services.mark_sign_in(request.user))

    @extend_schema(request=None, responses=AvailabilitySerializer)
    @action(detail=False, methods=["post"], url_path="sign-off")
    def sign_off(self, request):
        return self._respond(services.mark_sign_off(request.user))

    @extend_schema(request=AwaySerializer, responses=AvailabilitySerializer)
    @action(detail=False, methods=["post"], url_path="away")
    def away(self, request):
        ser = AwaySerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        return self._respond(
            services.mark_away(request.user, ser.validated_data["minutes"])
        )

    @extend_schema(request=None, responses=AvailabilitySerializer)
    @action(detail=False, methods=["post"], url_path="lunch")
    def lunch(self, request):
        return self._respond(services.mark_lunch(request.user))

    @extend_schema(request=None, responses=AvailabilitySerializer)
    @action(detail=False, methods=["post"], url_path="available")
    def available(self, request):
        return self._respond(services.mark_available(request.user))
