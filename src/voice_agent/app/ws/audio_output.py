"""
Audio output that plays through the connected client.

Audio is pushed to the client as an audio_start header followed by one
binary frame. The client reports back whether playback started, was blocked
by the autoplay policy, failed, or ended.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Optional

from voice_agent.core.constants import DEFAULTS
from voice_agent.core.errors import AutoplayBlockedError
from voice_agent.core.errors import PlaybackError
from voice_agent.voice.audio import AudioResource

from ..core.websockets import ClientChannel

logger = logging.getLogger(__name__)

PLAYBACK_EVENTS = ("started", "blocked", "ended", "error")


class WebSocketAudioOutput:
    """AudioOutput backed by the browser on the other end of a WebSocket."""

    def __init__(
        self,
        channel: ClientChannel,
        start_timeout: float = DEFAULTS["playback_start_timeout"],
    ):
        self.channel = channel
        self.start_timeout = start_timeout
        self.ended_callback: Optional[Callable[[str], None]] = None
        self._pending: dict[str, asyncio.Future] = {}
        self._ended_early: set[str] = set()

    async def start(self, resource: AudioResource) -> None:
        if not self.channel.connected:
            raise PlaybackError("Client disconnected", kind=PlaybackError.OUTPUT)
        if resource.data is None:
            raise PlaybackError("Audio resource already released", kind=PlaybackError.DECODE)

        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._pending[resource.id] = future

        self.channel.send_json(
            {
                "type": "audio_start",
                "resource_id": resource.id,
                "mime_type": resource.mime_type,
                "size": resource.size,
                "source": resource.source,
            }
        )
        self.channel.send_bytes(resource.data)

        try:
            event, message = await asyncio.wait_for(future, timeout=self.start_timeout)
        except asyncio.TimeoutError:
            raise PlaybackError(
                f"Client did not start playback within {self.start_timeout:.1f}s",
                kind=PlaybackError.TIMEOUT,
            )
        finally:
            self._pending.pop(resource.id, None)

        if event == "blocked":
            raise AutoplayBlockedError()
        if event == "error":
            raise PlaybackError(message or "Client could not play audio", kind=PlaybackError.DECODE)

        if resource.id in self._ended_early:
            # Runs after the playback manager has moved the session to PLAYING
            self._ended_early.discard(resource.id)
            if self.ended_callback is not None:
                loop.call_soon(self.ended_callback, resource.id)

    def notify(self, event: str, resource_id: str, message: Optional[str] = None) -> bool:
        """
        Route a client playback report to a pending start.

        Returns:
            True if the report settled a pending start()
        """
        future = self._pending.get(resource_id)
        if future is None or future.done():
            return False
        if event == "ended":
            # Short clip finished before its start was reported
            self._ended_early.add(resource_id)
            event = "started"
        future.set_result((event, message))
        return True

    def stop(self, resource: AudioResource) -> None:
        self._cancel_pending(resource.id)
        self.channel.send_json({"type": "audio_stop", "resource_id": resource.id})

    def pause(self, resource: AudioResource) -> None:
        self.channel.send_json({"type": "audio_pause", "resource_id": resource.id})

    def resume(self, resource: AudioResource) -> None:
        self.channel.send_json({"type": "audio_resume", "resource_id": resource.id})

    def release(self, resource: AudioResource) -> None:
        self._ended_early.discard(resource.id)
        self.channel.send_json({"type": "audio_release", "resource_id": resource.id})

    def _cancel_pending(self, resource_id: str) -> None:
        future = self._pending.get(resource_id)
        if future is not None and not future.done():
            future.set_result(("stopped", None))

    def close(self) -> None:
        for resource_id in list(self._pending):
            self._cancel_pending(resource_id)
