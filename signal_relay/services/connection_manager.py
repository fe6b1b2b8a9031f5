# signal_relay/services/connection_manager.py

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, Iterable, Optional, Set

from fastapi import WebSocket

from signal_relay.services.transport import SendResult

logger = logging.getLogger(__name__)

# ============================================================================
# WEBSOCKET CONNECTION MANAGER
# ============================================================================

class Connection:
    """
    One accepted WebSocket and its outbound queue.

    Frames are queued with put_nowait() and written by a single writer
    task, so sends never block the caller and frames reach the client in
    the order they were queued.
    """

    def __init__(self, endpoint_id: str, websocket: WebSocket, outbox_size: int = 0) -> None:
        self.endpoint_id = endpoint_id
        self.websocket = websocket
        self.outbox: asyncio.Queue[Dict[str, Any]] = asyncio.Queue(maxsize=outbox_size)
        self.rooms: Set[str] = set()
        self.closed = False
        self.writer: Optional[asyncio.Task] = None


class ConnectionManager:
    """
    WebSocket transport: endpoint identities, room subscriptions and fan-out.

    Data Structures:
        connections: Maps endpoint_id -> Connection
                     Example: {"3f2b...": Connection(...)}

        rooms: Maps room_id -> Set of endpoint_ids subscribed to that room
               Example: {"r1": {"3f2b...", "9a1c..."}}

    Room subscriptions here only scope fan-out. Which room an endpoint
    belongs to, and the ordered member list, are tracked by the router's
    registries.

    Every send method is synchronous and returns a SendResult. A missing
    recipient is not an error, the frame is simply dropped.
    """

    def __init__(self, outbox_size: int = 0) -> None:
        self.connections: Dict[str, Connection] = {}
        self.rooms: Dict[str, Set[str]] = {}
        self.outbox_size = outbox_size

    async def connect(self, websocket: WebSocket) -> str:
        """
        Accept a new WebSocket connection and start its writer.

        Returns:
            The endpoint id assigned to this connection. The client learns
            it from the first frame: {"event": "connect", "data": {"endpointId": ...}}
        """
        await websocket.accept()
        connection = self.register(websocket)
        connection.writer = asyncio.create_task(self._write_loop(connection))
        return connection.endpoint_id

    def register(self, websocket: WebSocket) -> Connection:
        endpoint_id = str(uuid.uuid4())
        connection = Connection(endpoint_id, websocket, self.outbox_size)
        self.connections[endpoint_id] = connection
        self._enqueue(connection, {"event": "connect", "data": {"endpointId": endpoint_id}})

        logger.info("✓ Endpoint %s connected. Total: %d", endpoint_id, len(self.connections))
        return connection

    def disconnect(self, endpoint_id: str) -> None:
        """
        Drop a connection and its room subscriptions.

        Cleanup:
            1. Remove from every subscribed room
            2. Delete rooms left with no subscribers
            3. Stop the writer task
        """
        connection = self.connections.pop(endpoint_id, None)
        if connection is None:
            return

        for room_id in connection.rooms:
            self._unsubscribe(endpoint_id, room_id)
        connection.rooms.clear()

        if connection.writer is not None:
            connection.writer.cancel()

        logger.info("✗ Endpoint %s disconnected. Total: %d", endpoint_id, len(self.connections))

    def join_room(self, endpoint_id: str, room_id: str) -> None:
        connection = self.connections.get(endpoint_id)
        if connection is None:
            return  # Connection already closed
        self.rooms.setdefault(room_id, set()).add(endpoint_id)
        connection.rooms.add(room_id)

    def leave_room(self, endpoint_id: str, room_id: str) -> None:
        connection = self.connections.get(endpoint_id)
        if connection is not None:
            connection.rooms.discard(room_id)
        self._unsubscribe(endpoint_id, room_id)

    def _unsubscribe(self, endpoint_id: str, room_id: str) -> None:
        subscribers = self.rooms.get(room_id)
        if subscribers is None:
            return
        subscribers.discard(endpoint_id)
        # Clean up empty room
        if not subscribers:
            del self.rooms[room_id]

    # ------------------------------------------------------------------
    # Fan-out
    # ------------------------------------------------------------------

    def send(self, endpoint_id: str, event: str, payload: Dict[str, Any]) -> SendResult:
        connection = self.connections.get(endpoint_id)
        if connection is None:
            logger.debug("[routing] Dropped %s: endpoint %s not connected", event, endpoint_id)
            return SendResult.of(event, 0)
        return SendResult.of(event, self._deliver([connection], event, payload))

    def send_to_room(
        self,
        room_id: str,
        event: str,
        payload: Dict[str, Any],
        skip: Optional[str] = None,
    ) -> SendResult:
        subscribers = self.rooms.get(room_id, set())
        targets = [self.connections[eid] for eid in subscribers if eid != skip and eid in self.connections]
        if not targets:
            logger.debug("[routing] Skipped %s: room=%s has no other subscribers", event, room_id)
        return SendResult.of(event, self._deliver(targets, event, payload))

    def broadcast(self, event: str, payload: Dict[str, Any], skip: Optional[str] = None) -> SendResult:
        targets = [c for eid, c in self.connections.items() if eid != skip]
        return SendResult.of(event, self._deliver(targets, event, payload))

    def _deliver(self, connections: Iterable[Connection], event: str, payload: Dict[str, Any]) -> int:
        frame = {"event": event, "data": payload}
        delivered = 0
        for connection in connections:
            if self._enqueue(connection, frame):
                delivered += 1
        logger.debug("📨 %s queued for %d endpoint(s)", event, delivered)
        return delivered

    def _enqueue(self, connection: Connection, frame: Dict[str, Any]) -> bool:
        if connection.closed:
            return False
        try:
            connection.outbox.put_nowait(frame)
        except asyncio.QueueFull:
            logger.warning(
                "Outbox full for endpoint %s, dropping %s",
                connection.endpoint_id,
                frame.get("event"),
            )
            return False
        return True

    async def _write_loop(self, connection: Connection) -> None:
        """Drain one connection's outbox onto its socket until it fails."""
        while True:
            frame = await connection.outbox.get()
            try:
                await connection.websocket.send_json(frame)
            except Exception as e:
                # Socket is closing; the receive loop will run the disconnect cleanup
                logger.error("Send error to %s: %s", connection.endpoint_id, e)
                connection.closed = True
                return
