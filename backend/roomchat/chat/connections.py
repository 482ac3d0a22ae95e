"""WebSocket connection manager for the chat relay.

Owns the live WebSocket objects and turns router directives into frames on
the wire. Membership lives in the ChatRegistry; this class only knows which
socket belongs to which connection ID.

Performance Notes:
    - Each directive is sent to its recipients concurrently with asyncio.gather()
    - Directives from one event are delivered sequentially, in order
    - Failed sends drop the dead socket; delivery is best-effort, at most once
"""
import asyncio
import logging
import uuid
from typing import Dict, Iterable, List, Optional

from fastapi import WebSocket

from .events import Acknowledgment, Directive
from .registry import ChatRegistry

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Maps connection IDs to WebSocket connections and delivers frames."""

    def __init__(self) -> None:
        # connection_id -> active WebSocket
        self.active_connections: Dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket) -> str:
        """Accept a WebSocket connection and assign it a connection ID.

        The ID is generated here and never taken from the client.

        Returns:
            The new connection ID.
        """
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self.active_connections[connection_id] = websocket
        logger.info(
            f"[WS] New websocket connection {connection_id} "
            f"({self.get_connection_count()} open)"
        )
        return connection_id

    def disconnect(self, connection_id: str) -> None:
        """Forget a connection. Safe to call more than once."""
        if self.active_connections.pop(connection_id, None) is not None:
            logger.info(f"[WS] Connection {connection_id} closed")

    def get_connection_count(self) -> int:
        return len(self.active_connections)

    async def deliver(self, directives: Iterable[Directive], registry: ChatRegistry) -> None:
        """Deliver directives in order, resolving targets against the registry.

        Args:
            directives: Directives produced by one router call.
            registry: Registry used to expand room targets into connections.
        """
        for directive in directives:
            recipients = directive.target.resolve(registry)
            frame = {"type": directive.event.value, **directive.payload}
            await self.send_many(recipients, frame)

    async def send_many(self, connection_ids: List[str], message: dict) -> None:
        """Send a frame to several connections concurrently."""
        connections = [
            (cid, self.active_connections[cid])
            for cid in connection_ids
            if cid in self.active_connections
        ]
        if not connections:
            return

        results = await asyncio.gather(
            *[self._safe_send(conn, message) for _, conn in connections],
            return_exceptions=True
        )

        # Remove failed connections
        for (cid, _), success in zip(connections, results):
            if success is not True:
                self.active_connections.pop(cid, None)
                logger.debug(f"Removed dead connection {cid}")

    async def send_ack(
        self,
        connection_id: str,
        event: str,
        ack: Acknowledgment,
        ack_id: Optional[object] = None,
    ) -> None:
        """Send the acknowledgment for an inbound event to its sender."""
        await self.send_many([connection_id], {
            "type": "ack",
            "event": event,
            "ackId": ack_id,
            "error": ack.error,
            "status": ack.status,
        })

    async def send_error(self, connection_id: str, error: str) -> None:
        await self.send_many([connection_id], {"type": "error", "error": error})

    async def _safe_send(self, connection: WebSocket, message: dict) -> bool:
        """Send a message to a WebSocket connection with error handling.

        Args:
            connection: The WebSocket to send to.
            message: JSON-serializable message to send.

        Returns:
            True if successful, False if connection failed.
        """
        try:
            await connection.send_json(message)
            return True
        except Exception as e:
            logger.debug(f"Failed to send to connection: {e}")
            return False
