# signal_relay/services/endpoint_directory.py

from __future__ import annotations

from typing import Any, Dict, Optional

from signal_relay.models.models import Endpoint, EndpointState


class EndpointDirectory:
    """
    Maps a connection's endpoint id to its username and current room.

    Gives the router the reverse lookup it needs to stamp relayed messages
    with the sender's name and to clean up room membership when a
    connection goes away.
    """

    def __init__(self) -> None:
        self.endpoints: Dict[str, Endpoint] = {}

    def __contains__(self, endpoint_id: str) -> bool:
        return endpoint_id in self.endpoints

    def __len__(self) -> int:
        return len(self.endpoints)

    def register(self, endpoint_id: str) -> Endpoint:
        """Track a new connection. No-op if it is already known."""
        endpoint = self.endpoints.get(endpoint_id)
        if endpoint is None:
            endpoint = Endpoint(id=endpoint_id)
            self.endpoints[endpoint_id] = endpoint
        return endpoint

    def set_identity(self, endpoint_id: str, username: Any, room_id: str) -> Endpoint:
        endpoint = Endpoint(
            id=endpoint_id,
            state=EndpointState.JOINED,
            username=username,
            room_id=room_id,
        )
        self.endpoints[endpoint_id] = endpoint
        return endpoint

    def lookup(self, endpoint_id: str) -> Optional[Endpoint]:
        return self.endpoints.get(endpoint_id)

    def unregister(self, endpoint_id: str) -> Optional[Endpoint]:
        """
        Forget an endpoint.

        Returns:
            The record as it was before removal, so callers can still use
            the last known room and username, or None if it was unknown.
        """
        return self.endpoints.pop(endpoint_id, None)
