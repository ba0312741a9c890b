"""
Voice session wiring.

A VoiceSession owns one conversation: the endpoint detector, turn
controller, TTS orchestrator and playback manager, all constructed here and
torn down together by close().
"""

import asyncio
import logging
import random
from typing import Optional

from voice_agent.conversation.log import ConversationLog
from voice_agent.conversation.presets import PresetBook
from voice_agent.conversation.responses import ResponseGenerator
from voice_agent.core.events import EventEmitter
from voice_agent.core.settings import Settings

from .audio import AudioOutput
from .elevenlabs_tts_service import ElevenLabsTTSService
from .endpoint_detector import EndpointDetector
from .piper_tts_service import PiperTTSService
from .playback_manager import PlaybackManager
from .playback_manager import PlaybackState
from .transcription import TranscriptionOptions
from .tts_orchestrator import TTSOrchestrator
from .turn_controller import TurnController
from .vosk_transcription_source import VoskTranscriptionSource

logger = logging.getLogger(__name__)


class VoiceSession:
    """One user's conversation and everything it owns."""

    def __init__(
        self,
        settings: Settings,
        output: AudioOutput,
        remote=None,
        local=None,
        events: Optional[EventEmitter] = None,
        rng: Optional[random.Random] = None,
    ):
        self.settings = settings
        self.events = events or EventEmitter()
        self.options = TranscriptionOptions.from_settings(settings)
        self.log = ConversationLog(self.events)
        self.presets = PresetBook(settings.default_preset)
        self.playback = PlaybackManager(output, self.events)
        self.orchestrator = TTSOrchestrator(self.playback, remote, local, self.events)
        self.controller = TurnController(
            self.log,
            generator=ResponseGenerator(rng),
            orchestrator=self.orchestrator,
            presets=self.presets,
            events=self.events,
            auto_speak=settings.auto_speak,
        )
        self.detector = EndpointDetector(
            silence_timeout=settings.silence_timeout,
            events=self.events,
            on_turn=self.controller.submit,
            continuous=self.options.continuous,
        )
        self.transcription: Optional[VoskTranscriptionSource] = None
        self.closed = False

    async def start_listening(self) -> None:
        """
        Start capture.

        Raises:
            CaptureError: microphone permission denied
        """
        if self.transcription is not None:
            await self.transcription.start(self.options)
        else:
            self.detector.start()

    async def stop_listening(self) -> None:
        """Manual stop: finalize what was heard so far."""
        self.detector.stop_manually()
        if self.transcription is not None:
            await self.transcription.stop()

    async def feed_audio(self, audio_data: bytes) -> Optional[str]:
        if self.transcription is None:
            logger.debug("Ignoring audio: no in-process transcription source")
            return None
        return await self.transcription.process_audio(audio_data)

    async def user_gesture(self) -> PlaybackState:
        return await self.playback.retry_after_gesture()

    def pause(self) -> bool:
        return self.playback.pause()

    def resume(self) -> bool:
        return self.playback.resume()

    def stop_speaking(self) -> None:
        self.orchestrator.stop()

    def select_preset(self, name: Optional[str]) -> None:
        self.presets.select(name)

    def set_voice_controls(self, rate=None, pitch=None, volume=None) -> dict:
        return self.presets.set_controls(rate=rate, pitch=pitch, volume=volume)

    def speak_last(self) -> Optional[asyncio.Task]:
        """Speak the last agent reply again (the only way to hear it with auto_speak off)."""
        return self.controller.speak_last()

    def set_auto_speak(self, enabled: bool) -> None:
        self.controller.auto_speak = enabled
        if not enabled:
            self.orchestrator.stop()

    def grant_permission(self) -> None:
        self.detector.reset_permission()

    def clear(self) -> None:
        """Clear the conversation log and the duplicate-turn memory."""
        self.orchestrator.stop()
        self.log.clear()
        self.controller.reset()
        logger.info("Conversation cleared")

    def export_text(self) -> str:
        return self.log.export_text()

    def close(self) -> None:
        """Cancel timers and generation, release playback, close providers."""
        if self.closed:
            return
        self.closed = True
        self.detector.close()
        self.controller.close()
        self.orchestrator.close()
        if self.transcription is not None:
            self.transcription.close()
            self.transcription = None
        self.events.clear()
        logger.info("Voice session closed")


def build_voice_session(
    settings: Settings, output: AudioOutput, events: Optional[EventEmitter] = None
) -> VoiceSession:
    """Create a session with the providers the settings and installed extras allow."""
    remote = ElevenLabsTTSService.from_settings(settings)
    if not remote.is_configured():
        logger.info("ElevenLabs API key not set, the local voice will speak")

    local = None
    if settings.piper_enabled:
        try:
            local = PiperTTSService.from_settings(settings)
        except (ImportError, FileNotFoundError) as e:
            logger.warning(f"Piper voice unavailable: {str(e)}")

    session = VoiceSession(settings, output, remote=remote, local=local, events=events)

    if settings.vosk_enabled:
        try:
            session.transcription = VoskTranscriptionSource.from_settings(
                session.detector, settings
            )
        except (ImportError, FileNotFoundError) as e:
            logger.warning(f"Vosk transcription unavailable: {str(e)}")

    return session
