from django.urls import include
from django.urls import path
from rest_framework.routers import SimpleRouter

from teamdesk.attendance.api.views import AvailabilityViewSet

router = SimpleRouter()
router.register("", AvailabilityViewSet, basename="availability")

urlpatterns = [
    path("", include(router.urls)),
]
