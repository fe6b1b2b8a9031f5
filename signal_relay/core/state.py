# signal_relay/core/state.py
from __future__ import annotations

from signal_relay.core.config import settings
from signal_relay.services.connection_manager import ConnectionManager
from signal_relay.services.endpoint_directory import EndpointDirectory
from signal_relay.services.room_registry import RoomRegistry
from signal_relay.services.router import Router

# Global singletons for app state
room_registry = RoomRegistry()
endpoint_directory = EndpointDirectory()
connection_manager = ConnectionManager(outbox_size=settings.OUTBOX_SIZE)
router = Router(transport=connection_manager, rooms=room_registry, directory=endpoint_directory)
