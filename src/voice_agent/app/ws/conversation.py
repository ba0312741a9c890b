"""
Conversation WebSocket endpoint for the Voice Agent.

The browser runs speech recognition and audio playback; this endpoint runs
the turn-taking core. Every core event is forwarded to the client as JSON.
"""

import asyncio
import json
import logging
import time
from datetime import datetime
from typing import Any

from fastapi import WebSocket
from fastapi import WebSocketDisconnect

from voice_agent.core.constants import ERROR_CODES
from voice_agent.core.errors import CaptureError
from voice_agent.core.errors import error_handler
from voice_agent.core.events import Event
from voice_agent.voice.session import VoiceSession

from ..core.websockets import ClientChannel
from ..core.websockets import ws_error
from .audio_output import PLAYBACK_EVENTS
from .audio_output import WebSocketAudioOutput

logger = logging.getLogger(__name__)


def _error_payload(error: Exception) -> dict[str, Any]:
    payload = error_handler.format_error_response(error)
    payload["type"] = "error"
    return payload


def _validation_error(message: str) -> dict[str, Any]:
    return {"type": "error", "message": message, "code": ERROR_CODES["VALIDATION_ERROR"]}


class ConversationHandler:
    """Applies client messages to one voice session."""

    def __init__(self, session: VoiceSession, output: WebSocketAudioOutput, channel: ClientChannel):
        self.session = session
        self.output = output
        self.channel = channel
        self.tasks: set[asyncio.Task] = set()

    def _spawn(self, coro) -> None:
        # Playback starts wait for the client, so they must not block the receive loop
        task = asyncio.create_task(coro)
        self.tasks.add(task)
        task.add_done_callback(self.tasks.discard)

    async def handle(self, message: dict[str, Any]) -> None:
        message_type = message.get("type")
        handler = getattr(self, f"on_{message_type}", None) if message_type else None
        if handler is None:
            logger.warning(f"Unknown message type: {message_type}")
            self.channel.send_json(_validation_error(f"Unknown message type: {message_type}"))
            return
        await handler(message)

    async def on_start(self, message: dict[str, Any]) -> None:
        try:
            await self.session.start_listening()
        except CaptureError as e:
            error_handler.log_error(e, {"action": "start"}, level=logging.WARNING)
            self.channel.send_json(_error_payload(e))

    async def on_hypothesis(self, message: dict[str, Any]) -> None:
        text = message.get("text")
        if not isinstance(text, str):
            self.channel.send_json(_validation_error("hypothesis requires text"))
            return
        self.session.detector.on_hypothesis(text, bool(message.get("is_final", False)))

    async def on_source_ended(self, message: dict[str, Any]) -> None:
        self.session.detector.on_source_ended()

    async def on_source_error(self, message: dict[str, Any]) -> None:
        # Reported to the client through the capture_error event
        self.session.detector.on_source_error(str(message.get("reason") or "unknown"))

    async def on_stop(self, message: dict[str, Any]) -> None:
        await self.session.stop_listening()

    async def on_user_gesture(self, message: dict[str, Any]) -> None:
        self._spawn(self.session.user_gesture())

    async def on_playback(self, message: dict[str, Any]) -> None:
        event = message.get("event")
        resource_id = message.get("resource_id")
        if event not in PLAYBACK_EVENTS or not resource_id:
            self.channel.send_json(_validation_error("playback requires event and resource_id"))
            return
        if self.output.notify(event, resource_id, message.get("message")):
            return
        if event == "ended":
            self.session.playback.handle_ended(resource_id)
        elif event == "error":
            self.session.playback.handle_error(
                resource_id, message.get("message") or "Audio playback failed"
            )
        else:
            logger.debug(f"Ignoring late '{event}' report for {resource_id}")

    async def on_pause(self, message: dict[str, Any]) -> None:
        self.session.pause()

    async def on_resume(self, message: dict[str, Any]) -> None:
        self.session.resume()

    async def on_stop_speaking(self, message: dict[str, Any]) -> None:
        self.session.stop_speaking()

    async def on_select_preset(self, message: dict[str, Any]) -> None:
        try:
            self.session.select_preset(message.get("name"))
        except KeyError as e:
            self.channel.send_json(_validation_error(str(e.args[0])))
            return
        self.channel.send_json({"type": "preset_selected", "name": self.session.presets.selected})

    async def on_set_voice_controls(self, message: dict[str, Any]) -> None:
        if message.get("reset"):
            self.session.presets.clear_controls()
            controls = {}
        else:
            try:
                controls = self.session.set_voice_controls(
                    rate=message.get("rate"),
                    pitch=message.get("pitch"),
                    volume=message.get("volume"),
                )
            except (TypeError, ValueError) as e:
                self.channel.send_json(_validation_error(str(e)))
                return
        self.channel.send_json({"type": "voice_controls", "controls": controls})

    async def on_speak_last(self, message: dict[str, Any]) -> None:
        if self.session.speak_last() is None:
            self.channel.send_json(
                {"type": "notice", "kind": "nothing_to_speak", "message": "No reply to speak yet."}
            )

    async def on_set_auto_speak(self, message: dict[str, Any]) -> None:
        enabled = bool(message.get("enabled", True))
        self.session.set_auto_speak(enabled)
        self.channel.send_json({"type": "auto_speak", "enabled": enabled})

    async def on_clear(self, message: dict[str, Any]) -> None:
        self.session.clear()
        self.channel.send_json({"type": "cleared"})

    async def on_export(self, message: dict[str, Any]) -> None:
        self.channel.send_json(
            {
                "type": "export",
                "text": self.session.export_text(),
                "filename": f"conversation-{datetime.now().strftime('%Y%m%d-%H%M%S')}.txt",
            }
        )

    async def on_grant_permission(self, message: dict[str, Any]) -> None:
        self.session.grant_permission()

    async def on_ping(self, message: dict[str, Any]) -> None:
        self.channel.send_json({"type": "pong", "timestamp": datetime.now().isoformat()})

    async def close(self) -> None:
        self.output.close()
        for task in list(self.tasks):
            task.cancel()
        if self.tasks:
            await asyncio.gather(*self.tasks, return_exceptions=True)


async def conversation_websocket(websocket: WebSocket, session_id: str, app):
    """WebSocket endpoint running one voice conversation."""
    connection_start_time = time.time()
    settings = app.state.settings
    connections = app.state.connection_manager

    await websocket.accept()
    logger.info(f"Conversation WebSocket connected: {session_id}")

    channel = ClientChannel(websocket)
    output = WebSocketAudioOutput(channel, start_timeout=settings.playback_start_timeout)
    try:
        session = app.state.session_factory(settings, output)
    except Exception as e:
        logger.exception(f"Failed to create voice session {session_id}")
        await ws_error(
            websocket,
            "Failed to create voice session",
            code=1011,
            extra={"code": "VOICE_SESSION_CREATION_FAILED", "detail": str(e)},
        )
        return

    channel.start()
    output.ended_callback = session.playback.handle_ended
    connections.register(session_id, session)
    handler = ConversationHandler(session, output, channel)

    def forward(event: Event) -> None:
        channel.send_json(event.to_dict())

    session.events.subscribe(forward)
    channel.send_json(
        {
            "type": "session_ready",
            "session_id": session_id,
            "remote_tts": session.orchestrator.remote_configured,
            "local_tts": session.orchestrator.local is not None,
            "server_transcription": session.transcription is not None,
            "auto_speak": session.controller.auto_speak,
            "silence_timeout_ms": settings.silence_timeout_ms,
            "options": session.options.model_dump(),
            "timestamp": datetime.now().isoformat(),
        }
    )

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            if message.get("bytes") is not None:
                try:
                    await session.feed_audio(message["bytes"])
                except CaptureError:
                    # Already reported through the capture_error event
                    pass
                continue

            try:
                data = json.loads(message.get("text") or "")
            except json.JSONDecodeError:
                channel.send_json(_validation_error("Messages must be JSON objects"))
                continue
            if not isinstance(data, dict):
                channel.send_json(_validation_error("Messages must be JSON objects"))
                continue

            try:
                await handler.handle(data)
            except Exception as e:
                error_handler.log_error(e, {"session_id": session_id, "type": data.get("type")})
                channel.send_json(_error_payload(e))

    except WebSocketDisconnect:
        logger.info(f"Conversation WebSocket disconnected: {session_id}")
    finally:
        await handler.close()
        session.close()
        connections.disconnect(session_id, session)
        await channel.close()
        duration = time.time() - connection_start_time
        logger.info(f"Conversation session {session_id} ended after {duration:.1f}s")
