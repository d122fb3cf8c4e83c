from django.conf import settings
from django.urls import include
from django.urls import path
from rest_framework.routers import DefaultRouter
from rest_framework.routers import SimpleRouter

from teamdesk.notifications.api.views import NotificationViewSet
from teamdesk.users.api.views import UserViewSet

router = DefaultRouter() if settings.DEBUG else SimpleRouter()

router.register("users", UserViewSet)
router.register("notifications", NotificationViewSet, basename="notifications")


app_name = "api"
# Prepend includes to ensure they take precedence over router routes
urlpatterns = [
    path("chat/", include("teamdesk.chat.api.urls")),
    path("attendance/", include("teamdesk.attendance.api.urls")),
    *router.urls,
]
