# signal_relay/services/room_registry.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from signal_relay.models.models import Member, Room

logger = logging.getLogger(__name__)

# ============================================================================
# ROOM REGISTRY
# ============================================================================

class RoomRegistry:
    """
    In-memory registry of rooms and their ordered member lists.

    A room exists only while it has at least one member: it is created by
    the first join and deleted when the last member leaves or disconnects.
    Nothing is persisted; a restart starts with no rooms.

    Attributes:
        rooms: Dictionary mapping room_id -> Room object

    Every operation is total. An absent room is a normal state, never an
    error.
    """

    def __init__(self) -> None:
        self.rooms: Dict[str, Room] = {}

    def __contains__(self, room_id: str) -> bool:
        return room_id in self.rooms

    def __len__(self) -> int:
        return len(self.rooms)

    def get(self, room_id: str) -> Optional[Room]:
        return self.rooms.get(room_id)

    def ensure(self, room_id: str) -> Room:
        """
        Get a room, creating an empty one if needed.

        Args:
            room_id: Client-supplied room key

        Returns:
            Room: The existing room, or a new one stamped with created_at=now
        """
        room = self.rooms.get(room_id)
        if room is None:
            room = Room(id=room_id)
            self.rooms[room_id] = room
            logger.info("✓ Created room %s", room_id)
        return room

    def add_member(self, room_id: str, endpoint_id: str, username: Any) -> None:
        """
        Append (endpoint_id, username) to the room unless already present.

        Membership is keyed on endpoint_id only; a second join from the same
        endpoint keeps the original entry and position.
        """
        room = self.ensure(room_id)
        if any(m.endpoint_id == endpoint_id for m in room.members):
            return
        room.members.append(Member(endpoint_id=endpoint_id, username=username))

    def remove_member(self, room_id: str, endpoint_id: str) -> List[Member]:
        """
        Remove an endpoint from a room.

        Args:
            room_id: Room to remove from
            endpoint_id: Endpoint to remove

        Returns:
            The members left after removal. An empty list means the room
            no longer exists (it was deleted, or never existed).
        """
        room = self.rooms.get(room_id)
        if room is None:
            return []

        room.members = [m for m in room.members if m.endpoint_id != endpoint_id]
        if not room.members:
            del self.rooms[room_id]
            logger.info("✗ Deleted empty room %s", room_id)
            return []
        return list(room.members)

    def members(self, room_id: str) -> List[Member]:
        room = self.rooms.get(room_id)
        if room is None:
            return []
        return list(room.members)
