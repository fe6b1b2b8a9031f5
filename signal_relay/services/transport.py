# signal_relay/services/transport.py

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Protocol


class Delivery(str, Enum):
    DELIVERED = "delivered"
    DROPPED_NO_RECIPIENT = "dropped_no_recipient"


class SendResult(NamedTuple):
    """Outcome of one outbound send. Never reported to clients."""

    event: str
    delivery: Delivery
    recipients: int = 0

    @classmethod
    def of(cls, event: str, recipients: int) -> "SendResult":
        if recipients:
            return cls(event, Delivery.DELIVERED, recipients)
        return cls(event, Delivery.DROPPED_NO_RECIPIENT, 0)

    @property
    def delivered(self) -> bool:
        return self.delivery is Delivery.DELIVERED


class Transport(Protocol):
    """
    Publish primitive the router sends through.

    Every method is synchronous: implementations queue frames and return
    immediately so that one inbound event is handled without suspending.
    """

    def send(self, endpoint_id: str, event: str, payload: Dict[str, Any]) -> SendResult:
        """Send to one endpoint by identity."""

    def send_to_room(
        self,
        room_id: str,
        event: str,
        payload: Dict[str, Any],
        skip: Optional[str] = None,
    ) -> SendResult:
        """Send to every endpoint subscribed to `room_id` except `skip`."""

    def broadcast(self, event: str, payload: Dict[str, Any], skip: Optional[str] = None) -> SendResult:
        """Send to every connected endpoint except `skip`."""

    def join_room(self, endpoint_id: str, room_id: str) -> None:
        ...

    def leave_room(self, endpoint_id: str, room_id: str) -> None:
        ...
