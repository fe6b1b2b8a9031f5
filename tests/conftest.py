from __future__ import annotations

from typing import Any, Dict, List

import pytest

from signal_relay.services.connection_manager import ConnectionManager
from signal_relay.services.router import Router


class FakeSocket:
    """Stand-in for a WebSocket; unit tests read frames straight from the outbox."""


@pytest.fixture
def manager() -> ConnectionManager:
    return ConnectionManager()


@pytest.fixture
def router(manager: ConnectionManager) -> Router:
    return Router(transport=manager)


@pytest.fixture
def drain(manager: ConnectionManager):
    def _drain(endpoint_id: str) -> List[Dict[str, Any]]:
        outbox = manager.connections[endpoint_id].outbox
        frames = []
        while not outbox.empty():
            frames.append(outbox.get_nowait())
        return frames

    return _drain


@pytest.fixture
def connect(manager: ConnectionManager, router: Router, drain):
    """Open a fake connection, discard its handshake frame, return its endpoint id."""

    def _connect() -> str:
        connection = manager.register(FakeSocket())
        router.handle_connect(connection.endpoint_id)
        drain(connection.endpoint_id)
        return connection.endpoint_id

    return _connect


@pytest.fixture
def join(router: Router):
    def _join(endpoint_id: str, room_id: str, username: str):
        return router.dispatch(endpoint_id, "join-room", {"roomId": room_id, "username": username})

    return _join
