"""
WebSocket connection manager for real-time job updates

ARCHITECTURE NOTE: Non-blocking, channel-scoped broadcast
- Each connection joins exactly one channel (its organization's)
- Each connection has a dedicated send queue and sender task
- Publishing only queues messages; slow clients never block the pipeline
- Full queues result in dropped messages (logged) rather than blocking
"""
import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket, WebSocketDisconnect

from constants import WebSocketConfig
from services.interfaces import INotificationTransport

logger = logging.getLogger(__name__)


class ConnectionManager(INotificationTransport):
    """
    Tracks WebSocket connections grouped by notification channel and
    delivers published events to every connection of that channel.
    """

    def __init__(self, queue_size: int = WebSocketConfig.SEND_QUEUE_SIZE):
        self.queue_size = queue_size
        self.channels: Dict[str, Set[WebSocket]] = {}
        self.connection_metadata: Dict[WebSocket, dict] = {}
        self.send_queues: Dict[WebSocket, asyncio.Queue] = {}
        self.sender_tasks: Dict[WebSocket, asyncio.Task] = {}

    @property
    def connection_count(self) -> int:
        return len(self.connection_metadata)

    def subscriber_count(self, channel: str) -> int:
        return len(self.channels.get(channel, ()))

    async def connect(self, websocket: WebSocket, channel: str, client_id: Optional[str] = None):
        """
        Accept a connection and subscribe it to a channel.

        Args:
            websocket: FastAPI WebSocket connection
            channel: Channel name, e.g. org-acme
            client_id: Optional client identifier (the user id)
        """
        await websocket.accept()
        self.register(websocket, channel, client_id)

        await websocket.send_json({
            "type": "connection",
            "status": "connected",
            "channel": channel,
        })

    def register(self, websocket: WebSocket, channel: str, client_id: Optional[str] = None):
        """Subscribe an already-accepted connection and start its sender task."""
        self.channels.setdefault(channel, set()).add(websocket)
        self.connection_metadata[websocket] = {
            'client_id': client_id or f"client-{id(websocket)}",
            'channel': channel,
            'connected_at': datetime.utcnow().isoformat(),
        }
        self.send_queues[websocket] = asyncio.Queue(maxsize=self.queue_size)
        self.sender_tasks[websocket] = asyncio.create_task(self._sender_loop(websocket))

        logger.info(
            f"WebSocket client {self.connection_metadata[websocket]['client_id']} joined {channel}. "
            f"Total connections: {self.connection_count}"
        )

    def disconnect(self, websocket: WebSocket):
        """Unsubscribe a connection and stop its sender task."""
        metadata = self.connection_metadata.pop(websocket, {})
        channel = metadata.get('channel')

        task = self.sender_tasks.pop(websocket, None)
        if task:
            task.cancel()
        self.send_queues.pop(websocket, None)

        if channel in self.channels:
            self.channels[channel].discard(websocket)
            if not self.channels[channel]:
                del self.channels[channel]

        logger.info(
            f"WebSocket client {metadata.get('client_id')} left {channel}. "
            f"Total connections: {self.connection_count}"
        )

    async def _sender_loop(self, websocket: WebSocket):
        queue = self.send_queues[websocket]
        try:
            while True:
                message = await queue.get()
                try:
                    await websocket.send_text(message)
                except Exception as e:
                    # Dead connection; the endpoint's disconnect() cleans up
                    logger.warning(f"Failed to send to client: {e}")
                    break
        except asyncio.CancelledError:
            pass

    async def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> None:
        """
        Queue an event for every connection subscribed to a channel.

        Message format:
        {
            "type": "video:progress" | "video:complete" | "video:error",
            "data": {...},
            "timestamp": "..."
        }
        """
        subscribers = self.channels.get(channel)
        if not subscribers:
            logger.debug(f"No subscribers on {channel} for {event}")
            return

        message = json.dumps({
            "type": event,
            "data": payload,
            "timestamp": datetime.utcnow().isoformat(),
        })

        queued = 0
        dropped = 0
        for connection in list(subscribers):
            queue = self.send_queues.get(connection)
            if queue is None:
                continue
            try:
                queue.put_nowait(message)
                queued += 1
            except asyncio.QueueFull:
                dropped += 1

        if dropped:
            logger.warning(f"Dropped {event} for {dropped} clients on {channel} (full queues)")
        else:
            logger.debug(f"Queued {event} to {queued} clients on {channel}")


# Global connection manager instance
manager = ConnectionManager()


async def websocket_session(websocket: WebSocket, channel: str, client_id: str):
    """
    Serve one subscribed connection until the client goes away.

    Handles keepalive pings; every other client message is ignored.
    """
    await manager.connect(websocket, channel, client_id)
    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON from client: {data}")
                continue

            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
            else:
                logger.debug(f"Ignoring client message: {message}")
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected normally")
    finally:
        manager.disconnect(websocket)
