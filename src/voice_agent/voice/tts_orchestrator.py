"""
TTS Orchestrator for the Voice Agent.

Speaks agent responses through a best-effort provider chain: the remote
ElevenLabs voice first, the local Piper voice as automatic fallback. The
rest of the pipeline never learns which provider spoke.
"""

import logging
from enum import Enum
from typing import Any
from typing import Optional

from voice_agent.conversation.models import ResponsePreset
from voice_agent.core.errors import GenerationError
from voice_agent.core.events import EventEmitter
from voice_agent.core.events import EventType

from .audio import AudioResource
from .playback_manager import PlaybackManager
from .playback_manager import PlaybackState

logger = logging.getLogger(__name__)

DEFAULT_PRESET = ResponsePreset(name="default")


class OrchestratorState(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    READY = "ready"
    FAILED = "failed"


class TTSOrchestrator:
    """
    Remote-primary, local-fallback speech generation.

    Each speak() call takes a new generation token. Provider calls suspend,
    so when one returns the token is checked again: results of a superseded
    or stopped generation are released and dropped instead of played.
    """

    def __init__(
        self,
        playback: PlaybackManager,
        remote: Optional[Any] = None,
        local: Optional[Any] = None,
        events: Optional[EventEmitter] = None,
    ):
        self.playback = playback
        self.remote = remote
        self.local = local
        self.events = events or EventEmitter()
        self.state = OrchestratorState.IDLE
        self._generation = 0

    @property
    def remote_configured(self) -> bool:
        return self.remote is not None and self.remote.is_configured()

    def _set_state(self, state: OrchestratorState, **extra) -> None:
        old_state = self.state
        self.state = state
        logger.debug(f"TTS orchestrator: {old_state.value} -> {state.value}")
        self.events.emit(
            EventType.ORCHESTRATOR_STATE_CHANGED,
            state=state.value,
            previous=old_state.value,
            **extra,
        )

    def _is_current(self, token: int) -> bool:
        return token == self._generation

    def _discard(self, resource: Optional[AudioResource], token: int) -> None:
        logger.info(f"Discarding result of superseded generation {token}")
        if resource is not None:
            resource.release()

    async def speak(
        self, text: str, preset: Optional[ResponsePreset] = None
    ) -> Optional[PlaybackState]:
        """
        Generate speech for text and hand it to the playback manager.

        Args:
            text: Text to speak
            preset: Voice parameters for either provider

        Returns:
            PlaybackState of the started session, or None when this generation
            was superseded or stopped before audio was ready

        Raises:
            GenerationError: neither provider could produce audio
        """
        preset = preset or DEFAULT_PRESET
        self._generation += 1
        token = self._generation
        resource: Optional[AudioResource] = None

        if self.remote_configured:
            self._set_state(OrchestratorState.GENERATING, provider="remote")
            try:
                resource = await self.remote.generate(text, preset)
            except Exception as e:
                if not self._is_current(token):
                    return None
                error = (
                    e
                    if isinstance(e, GenerationError)
                    else GenerationError(str(e), kind=GenerationError.NETWORK)
                )
                logger.warning(f"Remote speech generation failed: {error.message}")
                self._set_state(OrchestratorState.FAILED, provider="remote")
                self.events.emit(EventType.GENERATION_FAILED, error=error.to_dict(), fatal=False)
                self.events.emit(
                    EventType.ORCHESTRATOR_FALLBACK_ENGAGED,
                    reason=error.kind,
                    status=error.status,
                    informational=False,
                )
            else:
                if not self._is_current(token):
                    self._discard(resource, token)
                    return None
        else:
            logger.debug("Remote speech not configured, using local voice")
            self.events.emit(
                EventType.ORCHESTRATOR_FALLBACK_ENGAGED,
                reason=GenerationError.UNCONFIGURED,
                status=None,
                informational=True,
            )

        if resource is None:
            resource = await self._synthesize_locally(text, preset, token)
            if resource is None:
                return None

        self._set_state(OrchestratorState.READY, source=resource.source, resource_id=resource.id)
        return await self.playback.play(resource)

    async def _synthesize_locally(
        self, text: str, preset: ResponsePreset, token: int
    ) -> Optional[AudioResource]:
        if self.local is None:
            error = GenerationError("No local speech provider available", kind=GenerationError.LOCAL)
            self._fail_terminal(error)
            raise error

        self._set_state(OrchestratorState.GENERATING, provider="local")
        try:
            resource = await self.local.synthesize(
                text,
                rate=preset.rate,
                pitch=preset.pitch,
                volume=preset.volume,
                voice_name=preset.voice_name,
            )
        except Exception as e:
            if not self._is_current(token):
                return None
            if isinstance(e, GenerationError):
                self._fail_terminal(e)
                raise
            error = GenerationError(f"Local speech failed: {str(e)}", kind=GenerationError.LOCAL)
            self._fail_terminal(error)
            raise error from e

        if not self._is_current(token):
            self._discard(resource, token)
            return None
        return resource

    def _fail_terminal(self, error: GenerationError) -> None:
        logger.error(f"Speech generation failed on every provider: {error.message}")
        self._set_state(OrchestratorState.FAILED, provider="local")
        self.events.emit(EventType.GENERATION_FAILED, error=error.to_dict(), fatal=True)

    def stop(self) -> None:
        """Invalidate in-flight generation and stop the current playback."""
        self._generation += 1
        if self.state == OrchestratorState.GENERATING:
            self._set_state(OrchestratorState.IDLE)
        self.playback.stop()

    def close(self) -> None:
        self.stop()
        self.playback.close()
        for provider in (self.remote, self.local):
            if provider is not None and hasattr(provider, "close"):
                provider.close()
