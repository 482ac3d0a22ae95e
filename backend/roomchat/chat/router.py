"""Chat router providing the WebSocket endpoint.

This module provides:
    - WebSocket /ws/chat: Real-time room chat

The WebSocket protocol mirrors the browser client's events. Every inbound
frame is a JSON object with a ``type`` and an optional ``ackId`` that is
echoed back in the acknowledgment.

Inbound Message Types:
    - join: {username, room}
    - clientMessage: {text}
    - locationData: {latitude, longitude}

Outbound Message Types:
    - serverMessage: {username, text, createdAt}
    - locationMessage: {username, mapUrl, createdAt}
    - roomData: {room, users: [{username, room}]}
    - ack: {event, ackId, error, status}
    - error: {error} for frames that could not be understood

Closing the socket is the disconnect event.
"""
import json
import logging

import anyio
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from . import events
from .connections import ConnectionManager
from .events import Outcome
from .registry import ChatRegistry

logger = logging.getLogger(__name__)

router = APIRouter()

JOIN = "join"
CLIENT_MESSAGE = "clientMessage"
LOCATION_DATA = "locationData"


async def _dispatch(
    manager: ConnectionManager,
    registry: ChatRegistry,
    connection_id: str,
    event: str,
    outcome: Outcome,
    ack_id: object,
) -> None:
    """Deliver an outcome's directives, then acknowledge the sender."""
    await manager.deliver(outcome.directives, registry)
    if outcome.ack is not None:
        await manager.send_ack(connection_id, event, outcome.ack, ack_id)


@router.websocket("/ws/chat")
async def websocket_chat_endpoint(websocket: WebSocket) -> None:
    """WebSocket endpoint for room chat.

    The connection ID is assigned by the backend on accept. The client must
    send a ``join`` frame before its messages are relayed; frames from a
    connection that has not joined are ignored.

    Args:
        websocket: The WebSocket connection.
    """
    state = websocket.app.state
    registry: ChatRegistry = state.registry
    manager: ConnectionManager = state.connections
    chat_settings = state.config.chat

    connection_id = await manager.connect(websocket)

    try:
        # Main message loop
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            text = message.get("text")
            if text is None:
                await manager.send_error(connection_id, "Invalid message format: expected a text frame")
                continue

            try:
                data = json.loads(text)
            except ValueError:
                await manager.send_error(connection_id, "Invalid message format: expected JSON")
                continue

            if not isinstance(data, dict):
                await manager.send_error(connection_id, "Invalid message format: expected an object")
                continue

            message_type = data.get("type")
            ack_id = data.get("ackId")
            logger.debug("[WS] Connection %s received: type=%s", connection_id, message_type)

            # --- Handle JOIN ---
            if message_type == JOIN:
                outcome = events.handle_join(
                    registry,
                    connection_id,
                    data.get("username"),
                    data.get("room"),
                    state.clock,
                    admin_name=chat_settings.admin_name,
                )
                await _dispatch(manager, registry, connection_id, JOIN, outcome, ack_id)
                continue

            # --- Handle text message ---
            if message_type == CLIENT_MESSAGE:
                outcome = events.handle_text_message(
                    registry,
                    connection_id,
                    data.get("text"),
                    state.clock,
                    state.profanity_filter,
                )
                await _dispatch(manager, registry, connection_id, CLIENT_MESSAGE, outcome, ack_id)
                continue

            # --- Handle location share ---
            if message_type == LOCATION_DATA:
                coordinates = {
                    key: data[key] for key in ("latitude", "longitude") if key in data
                }
                outcome = events.handle_location(
                    registry,
                    connection_id,
                    coordinates,
                    state.clock,
                    map_host=chat_settings.map_host,
                )
                await _dispatch(manager, registry, connection_id, LOCATION_DATA, outcome, ack_id)
                continue

            await manager.send_error(connection_id, f"Unknown message type: {message_type}")

    except WebSocketDisconnect:
        logger.info(f"[WS] Disconnect from {connection_id}")
    finally:
        manager.disconnect(connection_id)
        outcome = events.handle_disconnect(
            registry,
            connection_id,
            state.clock,
            admin_name=chat_settings.admin_name,
        )
        # The room must hear about the departure even when this task is
        # being cancelled.
        with anyio.CancelScope(shield=True):
            await manager.deliver(outcome.directives, registry)
