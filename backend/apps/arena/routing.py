"""WebSocket URL routing for the arena app."""
from django.urls import re_path

from . import consumers

websocket_urlpatterns = [
    re_path(r'ws/arena/$', consumers.ArenaConsumer.as_asgi()),
]
