# signal_relay/models/models.py
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for models that go over the wire with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class Member(WireModel):
    """
    A (endpointId, username) pair stored in a room's member list.

    Members are value copies taken at join time, so a room snapshot never
    changes under a broadcast that is already in flight.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    endpoint_id: str
    # Free-form display name, whatever the client sent
    username: Any = None


class Room(WireModel):
    id: str
    members: List[Member] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class EndpointState(str, Enum):
    """
    Lifecycle of one live connection.

    Attributes:
        CONNECTED: Transport connection is open, no room joined yet.
        JOINED: The endpoint announced a username and a room.
    """

    CONNECTED = "connected"
    JOINED = "joined"


class Endpoint(WireModel):
    id: str
    state: EndpointState = EndpointState.CONNECTED
    username: Any = None
    room_id: Optional[str] = None


class Envelope(BaseModel):
    """
    One inbound frame: {"event": "<name>", "data": {...}}.

    `data` is kept as an untyped dict; payload fields are relayed as-is.
    """

    event: str
    data: Optional[Dict[str, Any]] = None
