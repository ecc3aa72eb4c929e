"""
hookpilot/stream.py
WebSocket connection manager for streaming agent loop activity to the live dashboard.
Exports: stream_enabled, ConnectionManager, make_event, emit, manager
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import WebSocket

from hookpilot.config import Config

logger = logging.getLogger(__name__)


def stream_enabled() -> bool:
    """Return whether dashboard streaming is enabled via HOOKPILOT_STREAM_ENABLED.

    Returns:
        True unless env var is set to a falsy value.
    """
    return Config.stream_enabled()


def make_event(
    event_type: str,
    delivery_id: str,
    *,
    iteration: int = 0,
    content: str = "",
    tool_name: str = "",
    call_id: str = "",
    is_error: bool = False,
) -> dict[str, Any]:
    """Build a standardized event dict for WebSocket broadcast.

    Args:
        event_type: Event category (agent_start, model_response, tool_call,
            tool_result, agent_end, agent_error).
        delivery_id: Delivery identifier of the run emitting the event.
        iteration: Loop iteration number (0 outside the loop).
        content: Text content of the event.
        tool_name: Name of tool being invoked (tool events only).
        call_id: Correlation id of the tool call (tool events only).
        is_error: Whether the event reports a failure.
    Returns:
        Dict ready for JSON serialization.
    """
    return {
        "type": event_type,
        "delivery_id": delivery_id,
        "iteration": iteration,
        "content": content,
        "tool_name": tool_name,
        "call_id": call_id,
        "is_error": is_error,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class ConnectionManager:
    """Manages dashboard WebSocket connections and fan-out broadcast."""

    def __init__(self) -> None:
        self._connections: list[WebSocket] = []

    async def connect(self, ws: WebSocket) -> None:
        """Accept and register a WebSocket connection.

        Args:
            ws: Incoming WebSocket to accept.
        """
        await ws.accept()
        self._connections.append(ws)
        logger.info("WebSocket connected. Total: %d", len(self._connections))

    def disconnect(self, ws: WebSocket) -> None:
        """Remove a WebSocket connection from the pool.

        Args:
            ws: WebSocket to remove.
        """
        if ws in self._connections:
            self._connections.remove(ws)
        logger.info("WebSocket disconnected. Total: %d", len(self._connections))

    async def broadcast_event(self, data: dict[str, Any]) -> None:
        """Send data to all connected WebSockets, removing dead connections.

        Args:
            data: Dict to serialize as JSON and send.
        """
        if not self._connections:
            return
        message = json.dumps(data, default=str)
        dead: list[WebSocket] = []
        for ws in self._connections:
            try:
                await ws.send_text(message)
            except Exception:
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws)


manager = ConnectionManager()


async def emit(data: dict[str, Any]) -> None:
    """Broadcast an event when streaming is enabled; never raises."""
    if not stream_enabled():
        return
    try:
        await manager.broadcast_event(data)
    except Exception:
        logger.exception("Dashboard broadcast failed.")
