# signal_relay/services/router.py

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Dict, List, Optional, Tuple

from signal_relay.models.models import EndpointState, Member
from signal_relay.services.endpoint_directory import EndpointDirectory
from signal_relay.services.room_registry import RoomRegistry
from signal_relay.services.transport import SendResult, Transport

logger = logging.getLogger(__name__)

Handler = Callable[[str, Dict[str, Any]], List[SendResult]]

# Point-to-point relays: event -> (payload fields copied through, stamp fromUsername)
TARGETED_EVENTS: Dict[str, Tuple[Tuple[str, ...], bool]] = {
    "offer": (("offer",), True),
    "answer": (("answer",), True),
    "ice-candidate": (("candidate",), False),
    "file-metadata": (("fileName", "fileSize", "fileType"), True),
    "file-progress": (("progress", "fileName"), False),
    "file-complete": (("fileName",), False),
    "file-download-request": (("offer", "fileId"), False),
    "file-download-answer": (("answer", "fileId"), False),
}


def _pick(data: Dict[str, Any], fields: Tuple[str, ...]) -> Dict[str, Any]:
    """Copy the fields the client actually sent; absent ones stay absent."""
    return {field: data[field] for field in fields if field in data}


def _room_key(value: Any) -> Optional[str]:
    """Room ids are strings; numbers are accepted and keyed by their text."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _members_payload(members: List[Member]) -> Dict[str, Any]:
    return {"members": [m.to_wire() for m in members]}


# ============================================================================
# EVENT ROUTER
# ============================================================================

class Router:
    """
    Protocol state machine: one inbound event in, registry updates and
    outbound sends out.

    Addressing:
        - target: one endpoint named by `targetEndpointId`
        - room: every subscriber of a room, usually minus the sender
        - global: every connected endpoint minus the sender

    Each handler runs to completion without awaiting, so the registries
    are never observed half-updated by another event. Every handler
    returns the SendResults of the sends it made; nothing is reported back
    to clients when a relay is dropped.
    """

    def __init__(
        self,
        transport: Transport,
        rooms: Optional[RoomRegistry] = None,
        directory: Optional[EndpointDirectory] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.transport = transport
        self.rooms = rooms if rooms is not None else RoomRegistry()
        self.directory = directory if directory is not None else EndpointDirectory()
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._last_timestamp: Optional[datetime] = None

        self.handlers: Dict[str, Handler] = {
            "join-room": self.join_room,
            "leave-room": self.leave_room,
            "chat-message": self.chat_message,
            "file-share-announce": self.file_share_announce,
            "file-share-stop": self.file_share_stop,
            "file-download-connect": self.file_download_connect,
        }
        for event, (fields, with_username) in TARGETED_EVENTS.items():
            self.handlers[event] = partial(self._relay_to_target, event, fields, with_username)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def handle_connect(self, endpoint_id: str) -> None:
        self.directory.register(endpoint_id)

    def handle_disconnect(self, endpoint_id: str) -> List[SendResult]:
        """
        Clean up after a closed connection, using its last known identity.

        Notifies the remaining room members exactly as an explicit
        leave-room would.
        """
        record = self.directory.unregister(endpoint_id)
        if record is None or record.room_id is None:
            return []
        return self._depart(endpoint_id, record.room_id, record.username)

    def dispatch(self, endpoint_id: str, event: str, data: Optional[Dict[str, Any]] = None) -> List[SendResult]:
        """
        Route one inbound event from `endpoint_id`.

        Unknown events are ignored. An endpoint sending before it was
        registered is registered implicitly.
        """
        handler = self.handlers.get(event)
        if handler is None:
            logger.debug("Ignoring unknown event %r from %s", event, endpoint_id)
            return []

        self.directory.register(endpoint_id)
        results = handler(endpoint_id, data or {})
        for result in results:
            logger.debug("[routing] %s from %s -> %s (%d)", result.event, endpoint_id, result.delivery.value, result.recipients)
        return results

    # ------------------------------------------------------------------
    # Room presence
    # ------------------------------------------------------------------

    def join_room(self, sender: str, data: Dict[str, Any]) -> List[SendResult]:
        room_id = _room_key(data.get("roomId"))
        username = data.get("username")
        if room_id is None:
            logger.debug("join-room from %s without a usable roomId", sender)
            return []

        results: List[SendResult] = []

        # Joining a different room leaves the previous one first
        current = self.directory.lookup(sender)
        if current is not None and current.state is EndpointState.JOINED and current.room_id != room_id:
            results.extend(self._depart(sender, current.room_id, current.username))

        self.directory.set_identity(sender, username, room_id)
        self.rooms.ensure(room_id)
        self.rooms.add_member(room_id, sender, username)
        self.transport.join_room(sender, room_id)

        results.append(
            self.transport.send_to_room(
                room_id, "user-joined", {"username": username, "endpointId": sender}, skip=sender
            )
        )
        results.append(
            self.transport.send_to_room(room_id, "room-users", _members_payload(self.rooms.members(room_id)))
        )

        logger.info("→ %s joined room %s as %r", sender, room_id, username)
        return results

    def leave_room(self, sender: str, data: Dict[str, Any]) -> List[SendResult]:
        room_id = _room_key(data.get("roomId"))
        if room_id is None:
            return []

        self.transport.leave_room(sender, room_id)

        record = self.directory.lookup(sender)
        if record is None or record.state is not EndpointState.JOINED or record.room_id != room_id:
            return []

        # Identity goes away with the room; the connection itself stays known
        self.directory.unregister(sender)
        self.directory.register(sender)

        logger.info("← %s left room %s", sender, room_id)
        return self._depart(sender, room_id, record.username)

    def _depart(self, endpoint_id: str, room_id: str, username: Any) -> List[SendResult]:
        """Remove an endpoint from a room and tell whoever is left."""
        self.transport.leave_room(endpoint_id, room_id)
        remaining = self.rooms.remove_member(room_id, endpoint_id)

        results: List[SendResult] = []
        if remaining:
            results.append(self.transport.send_to_room(room_id, "room-users", _members_payload(remaining)))
        results.append(
            self.transport.send_to_room(room_id, "user-left", {"username": username}, skip=endpoint_id)
        )
        return results

    def chat_message(self, sender: str, data: Dict[str, Any]) -> List[SendResult]:
        room_id = _room_key(data.get("roomId"))
        if room_id is None:
            return []

        payload = _pick(data, ("message", "username"))
        payload["timestamp"] = self._timestamp()
        # Sender gets its own message back so every client renders the same log
        return [self.transport.send_to_room(room_id, "chat-message", payload)]

    def _timestamp(self) -> str:
        now = self._clock()
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        # Same shape as JavaScript's Date.toISOString()
        return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")

    # ------------------------------------------------------------------
    # Point-to-point signaling
    # ------------------------------------------------------------------

    def _relay_to_target(
        self,
        event: str,
        fields: Tuple[str, ...],
        with_username: bool,
        sender: str,
        data: Dict[str, Any],
    ) -> List[SendResult]:
        target = data.get("targetEndpointId")
        if not isinstance(target, str) or target == sender:
            return [SendResult.of(event, 0)]

        payload = _pick(data, fields)
        payload["fromEndpointId"] = sender
        if with_username:
            record = self.directory.lookup(sender)
            if record is not None and record.state is EndpointState.JOINED:
                payload["fromUsername"] = record.username
        return [self.transport.send(target, event, payload)]

    # ------------------------------------------------------------------
    # File sharing discovery (no room scope)
    # ------------------------------------------------------------------

    def file_share_announce(self, sender: str, data: Dict[str, Any]) -> List[SendResult]:
        payload = _pick(data, ("fileId", "metadata"))
        payload["seederEndpointId"] = sender
        return [self.transport.broadcast("file-share-announce", payload, skip=sender)]

    def file_share_stop(self, sender: str, data: Dict[str, Any]) -> List[SendResult]:
        return [self.transport.broadcast("file-share-stop", _pick(data, ("fileId",)), skip=sender)]

    def file_download_connect(self, sender: str, data: Dict[str, Any]) -> List[SendResult]:
        payload = _pick(data, ("fileId",))
        payload["downloaderEndpointId"] = sender
        return [self.transport.broadcast("file-download-connect", payload, skip=sender)]
