from django.urls import include
from django.urls import path
from rest_framework.routers import SimpleRouter

from teamdesk.chat.api.views import ChannelHistoryView
from teamdesk.chat.api.views import ChannelsForUserView
from teamdesk.chat.api.views import ChannelViewSet
from teamdesk.chat.api.views import ChatMessageView

router = SimpleRouter()
router.register("channels", ChannelViewSet, basename="chat-channel")

urlpatterns = [
    path("", ChatMessageView.as_view(), name="chat-message"),
    path(
        "for-channel/<str:channel_ref>/",
        ChannelHistoryView.as_view(),
        name="chat-history",
    ),
    path("for-user/", ChannelsForUserView.as_view(), name="chat-for-user"),
    path("", include(router.urls)),
]
