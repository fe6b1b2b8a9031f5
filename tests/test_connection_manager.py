import asyncio

from signal_relay.services.connection_manager import ConnectionManager
from signal_relay.services.transport import Delivery

from tests.conftest import FakeSocket


def test_register_queues_handshake_with_endpoint_id(manager, drain):
    connection = manager.register(FakeSocket())

    assert drain(connection.endpoint_id) == [
        {"event": "connect", "data": {"endpointId": connection.endpoint_id}}
    ]


def test_endpoint_ids_are_unique(manager):
    ids = {manager.register(FakeSocket()).endpoint_id for _ in range(50)}

    assert len(ids) == 50


def test_room_send_skips_excluded_endpoint(manager, connect, drain):
    a, b, c = connect(), connect(), connect()
    manager.join_room(a, "r1")
    manager.join_room(b, "r1")

    result = manager.send_to_room("r1", "ping", {"n": 1}, skip=a)

    assert result.recipients == 1
    assert drain(a) == []
    assert drain(b) == [{"event": "ping", "data": {"n": 1}}]
    assert drain(c) == []


def test_disconnect_drops_room_subscriptions(manager, connect):
    a, b = connect(), connect()
    manager.join_room(a, "r1")
    manager.join_room(b, "r1")
    manager.join_room(a, "r2")

    manager.disconnect(a)

    assert manager.rooms == {"r1": {b}}
    assert a not in manager.connections
    assert manager.send(a, "ping", {}).delivery is Delivery.DROPPED_NO_RECIPIENT


def test_leave_room_deletes_empty_subscription(manager, connect):
    a = connect()
    manager.join_room(a, "r1")
    manager.leave_room(a, "r1")

    assert "r1" not in manager.rooms


def test_join_room_for_closed_connection_is_ignored(manager):
    manager.join_room("gone", "r1")

    assert manager.rooms == {}


def test_full_outbox_drops_frame():
    manager = ConnectionManager(outbox_size=1)
    connection = manager.register(FakeSocket())  # handshake fills the outbox

    result = manager.send(connection.endpoint_id, "ping", {})

    assert result.delivery is Delivery.DROPPED_NO_RECIPIENT
    assert connection.outbox.qsize() == 1


class BrokenSocket:
    async def send_json(self, data):
        raise RuntimeError("socket closed")


def test_failed_write_stops_counting_connection_as_recipient(manager):
    connection = manager.register(BrokenSocket())

    asyncio.run(manager._write_loop(connection))

    assert connection.closed
    assert manager.send(connection.endpoint_id, "ping", {}).delivery is Delivery.DROPPED_NO_RECIPIENT
    assert manager.broadcast("ping", {}).recipients == 0
