from django.urls import path

from booking.realtime.consumers import CaseUpdatesConsumer

websocket_urlpatterns = [
    path("ws/cases/", CaseUpdatesConsumer.as_asgi()),
]
