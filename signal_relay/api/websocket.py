# signal_relay/api/websocket.py

from __future__ import annotations

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from signal_relay.core import state
from signal_relay.models.models import Envelope

logger = logging.getLogger(__name__)

router = APIRouter()

# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint every client connects to.

    Protocol:
    =========
    Every frame, in both directions, is a JSON object:
        {"event": "<name>", "data": {...}}

    On connect the server sends the endpoint id assigned to the client:
        {"event": "connect", "data": {"endpointId": "..."}}

    Client -> Server Events:
    ------------------------
    Rooms:      join-room {roomId, username}, leave-room {roomId}
    Chat:       chat-message {roomId, message, username}
    Signaling:  offer {offer, targetEndpointId}
                answer {answer, targetEndpointId}
                ice-candidate {candidate, targetEndpointId}
    Transfers:  file-metadata {fileName, fileSize, fileType, targetEndpointId}
                file-progress {progress, fileName, targetEndpointId}
                file-complete {fileName, targetEndpointId}
    Sharing:    file-share-announce {fileId, metadata}
                file-share-stop {fileId}
                file-download-connect {fileId}
                file-download-request {offer, fileId, targetEndpointId}
                file-download-answer {answer, fileId, targetEndpointId}

    Server -> Client Events:
    ------------------------
    user-joined {username, endpointId}, user-left {username},
    room-users {members: [{endpointId, username}, ...]}, plus every relayed
    event above stamped with the sender's id.

    Error Handling:
        There is no error frame. Frames that are not valid JSON envelopes
        are logged and dropped, unknown events are ignored, and relays to
        missing targets vanish silently.
    """
    endpoint_id = await state.connection_manager.connect(websocket)
    state.router.handle_connect(endpoint_id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            # Binary frames are accepted when they carry UTF-8 JSON
            data = message.get("text")
            if data is None:
                data = message.get("bytes")
            if data is None:
                continue

            try:
                envelope = Envelope.model_validate(json.loads(data))
            except (ValueError, ValidationError) as e:
                logger.warning("Dropping malformed frame from %s: %s", endpoint_id, e)
                continue

            logger.debug("Websocket input from %s: event=%s", endpoint_id, envelope.event)
            state.router.dispatch(endpoint_id, envelope.event, envelope.data)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("WebSocket error: %s", e)
    finally:
        # Also runs when the server cancels the handler on shutdown
        state.router.handle_disconnect(endpoint_id)
        state.connection_manager.disconnect(endpoint_id)
