"""
Endpoint Detector for the Voice Agent.

Turns the live stream of partial transcription hypotheses into finalized
turns. There is no push-to-talk: a turn ends when the source has been quiet
for the silence timeout, or when the user stops manually.
"""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from enum import Enum
from typing import Any
from typing import Optional

from voice_agent.conversation.models import FinalizationReason
from voice_agent.conversation.models import Turn
from voice_agent.core.constants import DEFAULTS
from voice_agent.core.constants import PERMISSION_DENIED_MESSAGE
from voice_agent.core.errors import CaptureError
from voice_agent.core.events import EventEmitter
from voice_agent.core.events import EventType

logger = logging.getLogger(__name__)

TurnHandler = Callable[[Turn], Any]


class DetectorState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    FINALIZED = "finalized"
    STOPPED = "stopped"
    BLOCKED = "blocked"


class EndpointDetector:
    """
    Silence-timer endpointing over transcription hypotheses.

    Every hypothesis received while listening cancels the pending silence
    timer and schedules a new one. When the timer fires, the latest non-empty
    hypothesis text (read from this object at fire time) becomes the turn.
    Finalizing leaves LISTENING, so one utterance yields at most one turn.
    A manual stop also ends capture: hypotheses are ignored until start().
    """

    def __init__(
        self,
        silence_timeout: float = DEFAULTS["silence_timeout_ms"] / 1000.0,
        events: Optional[EventEmitter] = None,
        on_turn: Optional[TurnHandler] = None,
        continuous: bool = True,
    ):
        if silence_timeout <= 0:
            raise ValueError("silence_timeout must be positive")
        self.silence_timeout = silence_timeout
        self.events = events or EventEmitter()
        self.on_turn = on_turn
        self.continuous = continuous
        self.state = DetectorState.IDLE

        self._timer: Optional[asyncio.TimerHandle] = None
        self._hypotheses: list[tuple[str, bool]] = []
        self._latest_text = ""
        self._started_at: Optional[datetime] = None

    @property
    def latest_text(self) -> str:
        return self._latest_text

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None

    def _set_state(self, state: DetectorState) -> None:
        if state == self.state:
            return
        old_state = self.state
        self.state = state
        logger.debug(f"Endpoint detector: {old_state.value} -> {state.value}")
        self.events.emit(
            EventType.DETECTOR_STATE_CHANGED, state=state.value, previous=old_state.value
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _reset_utterance(self) -> None:
        self._hypotheses = []
        self._latest_text = ""
        self._started_at = None

    def start(self) -> None:
        """
        Begin listening for a new utterance.

        Raises:
            CaptureError: microphone permission was denied and not re-granted
        """
        if self.state == DetectorState.BLOCKED:
            raise CaptureError(PERMISSION_DENIED_MESSAGE, kind=CaptureError.PERMISSION_DENIED)
        if self.state == DetectorState.LISTENING:
            return
        self._cancel_timer()
        self._reset_utterance()
        self._set_state(DetectorState.LISTENING)

    def on_hypothesis(self, text: str, is_final: bool = False) -> None:
        """Record a partial or final hypothesis and restart the silence timer."""
        if self.state == DetectorState.FINALIZED and self.continuous:
            # Continuous recognition keeps running; new speech is a new utterance
            self._reset_utterance()
            self._set_state(DetectorState.LISTENING)
        if self.state != DetectorState.LISTENING:
            logger.debug(f"Ignoring hypothesis while {self.state.value}")
            return

        text = text or ""
        self._hypotheses.append((text, is_final))
        if text.strip():
            self._latest_text = text
            if self._started_at is None:
                self._started_at = datetime.now()

        self._cancel_timer()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.silence_timeout, self._on_silence)

    def _on_silence(self) -> None:
        self._timer = None
        if self.state != DetectorState.LISTENING:
            return
        logger.debug(f"Silence for {self.silence_timeout:.2f}s, finalizing turn")
        self._finalize(FinalizationReason.SILENCE)

    def stop_manually(self) -> Optional[Turn]:
        """Finalize the current utterance now."""
        if self.state != DetectorState.LISTENING:
            return None
        return self._finalize(FinalizationReason.MANUAL_STOP)

    def _finalize(self, reason: FinalizationReason) -> Optional[Turn]:
        self._cancel_timer()
        text = self._latest_text.strip()
        started_at = self._started_at or datetime.now()
        self._reset_utterance()
        if reason == FinalizationReason.MANUAL_STOP:
            self._set_state(DetectorState.STOPPED)
        else:
            self._set_state(DetectorState.FINALIZED)

        if not text:
            logger.debug(f"Nothing to finalize ({reason.value})")
            return None

        turn = Turn(text=text, started_at=started_at, finalization_reason=reason)
        logger.info(f"Turn finalized ({reason.value}): '{text[:50]}'")
        self.events.emit(EventType.TURN_FINALIZED, turn=turn.model_dump(mode="json"))
        if self.on_turn is not None:
            self.on_turn(turn)
        return turn

    def on_source_ended(self) -> None:
        """The transcription source stopped; drop whatever was accumulated."""
        self._cancel_timer()
        self._reset_utterance()
        if self.state != DetectorState.BLOCKED:
            self._set_state(DetectorState.IDLE)

    def on_source_error(self, reason: str) -> CaptureError:
        """
        The transcription source failed.

        Permission errors block the detector until reset_permission().

        Returns:
            CaptureError: the typed error for the reported reason
        """
        error = CaptureError.from_reason(reason)
        self._cancel_timer()
        self._reset_utterance()
        if error.is_permission_denied:
            logger.warning("Microphone permission denied, capture blocked")
            self._set_state(DetectorState.BLOCKED)
        else:
            logger.error(f"Transcription source error: {reason}")
            self._set_state(DetectorState.IDLE)

        self.events.emit(
            EventType.CAPTURE_ERROR,
            error=error.to_dict(),
            persistent=error.is_permission_denied,
        )
        return error

    def reset_permission(self) -> None:
        """The user granted microphone access again."""
        if self.state == DetectorState.BLOCKED:
            logger.info("Microphone permission re-granted")
            self._set_state(DetectorState.IDLE)

    def close(self) -> None:
        self._cancel_timer()
        self._reset_utterance()
        self.on_turn = None
        if self.state != DetectorState.BLOCKED:
            self._set_state(DetectorState.IDLE)
