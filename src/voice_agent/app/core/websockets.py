"""
WebSocket utilities for the Voice Agent.

This module provides safe send helpers, an ordered outbound channel per
client and the connection manager holding live voice sessions.
"""

import asyncio
import logging
from typing import Any
from typing import Optional

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


async def ws_send_json_safe(ws: WebSocket, data: dict[str, Any]) -> bool:
    """
    Safely send JSON data over a WebSocket connection.

    Returns:
        True if successful, False otherwise
    """
    try:
        if ws.application_state == WebSocketState.CONNECTED:
            await ws.send_json(data)
            return True
    except Exception as e:
        logger.error(f"Failed to send JSON over WebSocket: {str(e)}")
    return False


async def ws_send_bytes_safe(ws: WebSocket, data: bytes) -> bool:
    """
    Safely send binary data over a WebSocket connection.

    Returns:
        True if successful, False otherwise
    """
    try:
        if ws.application_state == WebSocketState.CONNECTED:
            await ws.send_bytes(data)
            return True
    except Exception as e:
        logger.error(f"Failed to send bytes over WebSocket: {str(e)}")
    return False


async def ws_error(
    ws: WebSocket, message: str, code: int = 1011, extra: dict[str, Any] | None = None
):
    """
    Send an error over WebSocket and try to close gracefully.

    Args:
        ws: WebSocket connection
        message: Error message
        code: WebSocket close code
        extra: Additional data to include in the error message
    """
    payload = {"type": "error", "message": message}
    if extra:
        payload.update(extra)
    try:
        if ws.application_state == WebSocketState.CONNECTED:
            await ws.send_json(payload)
    except (WebSocketDisconnect, RuntimeError):
        # Connection already closed, nothing to do
        pass
    except Exception:
        logger.exception("Failed to send WS error")
    finally:
        try:
            if ws.application_state == WebSocketState.CONNECTED:
                await ws.close(code=code, reason=message)
        except (WebSocketDisconnect, RuntimeError):
            pass


class ClientChannel:
    """
    Ordered outbound queue for one WebSocket.

    The core emits events synchronously, so sends are queued and written by
    a single writer task; an audio_start header always precedes its bytes.
    """

    def __init__(self, ws: WebSocket):
        self.ws = ws
        self.queue: asyncio.Queue = asyncio.Queue()
        self._writer_task: Optional[asyncio.Task] = None

    def start(self) -> None:
        if self._writer_task is None:
            self._writer_task = asyncio.create_task(self._writer())

    def send_json(self, data: dict[str, Any]) -> None:
        self.queue.put_nowait(("json", data))

    def send_bytes(self, data: bytes) -> None:
        self.queue.put_nowait(("bytes", data))

    @property
    def connected(self) -> bool:
        return self.ws.application_state == WebSocketState.CONNECTED

    async def _writer(self) -> None:
        while True:
            kind, data = await self.queue.get()
            try:
                if kind == "json":
                    await ws_send_json_safe(self.ws, data)
                else:
                    await ws_send_bytes_safe(self.ws, data)
            finally:
                self.queue.task_done()

    async def close(self) -> None:
        if self._writer_task is None:
            return
        self._writer_task.cancel()
        try:
            await self._writer_task
        except asyncio.CancelledError:
            pass
        self._writer_task = None


class ConnectionManager:
    """Track voice sessions by session id."""

    def __init__(self):
        self.sessions: dict[str, Any] = {}

    def register(self, session_id: str, session) -> None:
        previous = self.sessions.get(session_id)
        if previous is not None and previous is not session:
            logger.info(f"Replacing existing voice session {session_id}")
            previous.close()
        self.sessions[session_id] = session
        logger.info(f"Voice session registered: {session_id}")

    def disconnect(self, session_id: str, session=None) -> None:
        current = self.sessions.get(session_id)
        if current is None or (session is not None and current is not session):
            return
        del self.sessions[session_id]
        logger.info(f"Voice session disconnected: {session_id}")

    def close_all(self) -> None:
        for session in list(self.sessions.values()):
            session.close()
        self.sessions.clear()

    def __len__(self) -> int:
        return len(self.sessions)
