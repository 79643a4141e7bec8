from django.urls import path

from engine.realtime.consumers import FacilityQueueConsumer, FacilityResourceConsumer

websocket_urlpatterns = [
    path("ws/facilities/<int:facility_id>/resources/", FacilityResourceConsumer.as_asgi()),
    path("ws/facilities/<int:facility_id>/queue/", FacilityQueueConsumer.as_asgi()),
]
