"""
Turn Controller for the Voice Agent.

Accepts finalized turns, runs classification and response generation, logs
both sides of the exchange and dispatches the reply to the TTS orchestrator.
A processing lock keeps turns strictly ordered and never overlapping.
"""

import asyncio
import logging
from collections.abc import Callable
from typing import Optional

from voice_agent.conversation.classifier import classify
from voice_agent.conversation.log import ConversationLog
from voice_agent.conversation.models import Classification
from voice_agent.conversation.models import Emotion
from voice_agent.conversation.models import GeneratedResponse
from voice_agent.conversation.models import Role
from voice_agent.conversation.models import Turn
from voice_agent.conversation.models import new_id
from voice_agent.conversation.presets import PresetBook
from voice_agent.conversation.responses import ResponseGenerator
from voice_agent.core.constants import PIPELINE_ERROR_RESPONSE
from voice_agent.core.errors import GenerationError
from voice_agent.core.errors import PipelineError
from voice_agent.core.events import EventEmitter
from voice_agent.core.events import EventType

logger = logging.getLogger(__name__)


class ProcessingLock:
    """Non-blocking guard tagged with the id of the turn holding it."""

    def __init__(self):
        self.turn_id: Optional[str] = None

    @property
    def held(self) -> bool:
        return self.turn_id is not None

    def acquire(self, turn_id: str) -> bool:
        if self.held:
            return False
        self.turn_id = turn_id
        return True

    def release(self, turn_id: Optional[str] = None) -> None:
        if turn_id is not None and self.held and turn_id != self.turn_id:
            logger.warning(f"Turn {turn_id} tried to release a lock held by {self.turn_id}")
            return
        self.turn_id = None


class TurnController:
    """
    Single-flight turn processing.

    submit() rejects, before doing any work, turns with empty text, turns
    arriving while another is in flight, and a turn repeating the text of
    the last accepted one (a silence finalize racing a manual stop). The
    lock is released in a finally block once the orchestrator returns,
    whether audio started or every provider failed.
    """

    def __init__(
        self,
        log: ConversationLog,
        generator: Optional[ResponseGenerator] = None,
        orchestrator=None,
        presets: Optional[PresetBook] = None,
        events: Optional[EventEmitter] = None,
        auto_speak: bool = True,
        classifier: Callable[[str], Classification] = classify,
    ):
        self.log = log
        self.generator = generator or ResponseGenerator()
        self.orchestrator = orchestrator
        self.presets = presets or PresetBook()
        self.events = events or EventEmitter()
        self.auto_speak = auto_speak
        self.classifier = classifier
        self.lock = ProcessingLock()
        self.current_task: Optional[asyncio.Task] = None
        self.last_response: Optional[GeneratedResponse] = None
        self._last_accepted_text: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self.lock.held

    def submit(self, turn: Turn) -> Optional[asyncio.Task]:
        """
        Process a finalized turn.

        Returns:
            The dispatch task for an accepted turn, None if it was rejected
        """
        text = (turn.text or "").strip()
        if not text:
            logger.debug(f"Rejected turn {turn.id}: empty text")
            return None
        if self.lock.held:
            logger.info(f"Rejected turn {turn.id}: turn {self.lock.turn_id} still in flight")
            return None
        if text == self._last_accepted_text:
            logger.info(f"Rejected turn {turn.id}: duplicate of the previous turn")
            return None

        self.lock.acquire(turn.id)
        self._last_accepted_text = text
        try:
            self.log.append(Role.USER, text)
            response = self._respond(turn, text)
            self.log.append(
                Role.AGENT,
                response.text,
                emotion=response.emotion,
                voice_style=response.suggested_voice_style,
            )
        except BaseException:
            self.lock.release(turn.id)
            raise

        self.last_response = response
        self.current_task = asyncio.create_task(
            self._dispatch(turn.id, response, speak=self.auto_speak)
        )
        return self.current_task

    def speak_last(self) -> Optional[asyncio.Task]:
        """
        Speak the most recent agent reply again, even with auto_speak off.

        Replays take the processing lock like a turn, so they never overlap
        one.

        Returns:
            The dispatch task, None if there is no reply or a turn is in flight
        """
        if self.last_response is None:
            logger.debug("Nothing to replay yet")
            return None
        replay_id = f"replay-{new_id()}"
        if not self.lock.acquire(replay_id):
            logger.info(f"Replay rejected: turn {self.lock.turn_id} still in flight")
            return None

        self.current_task = asyncio.create_task(
            self._dispatch(replay_id, self.last_response, speak=True)
        )
        return self.current_task

    def _respond(self, turn: Turn, text: str) -> GeneratedResponse:
        try:
            classification = self.classifier(text)
            return self.generator.generate(classification.intent, classification.emotion, text)
        except Exception as e:
            error = PipelineError(f"Response pipeline failed: {str(e)}", turn_id=turn.id)
            logger.exception(f"Pipeline error for turn {turn.id}")
            self.events.emit(EventType.PIPELINE_ERROR, error=error.to_dict(), turn_id=turn.id)
            return GeneratedResponse(
                text=PIPELINE_ERROR_RESPONSE,
                emotion=Emotion.GENTLE.value,
                suggested_voice_style=Emotion.GENTLE.value,
            )

    async def _dispatch(self, lock_id: str, response: GeneratedResponse, speak: bool) -> None:
        try:
            if speak and self.orchestrator is not None:
                preset = self.presets.resolve(response.suggested_voice_style)
                await self.orchestrator.speak(response.text, preset)
        except GenerationError as e:
            # Already reported as a generation_failed event
            logger.warning(f"{lock_id} was not spoken: {e.message}")
        except Exception:
            logger.exception(f"Dispatch failed for {lock_id}")
        finally:
            self.lock.release(lock_id)
            logger.debug(f"{lock_id} dispatched")

    def reset(self) -> None:
        """Forget the last accepted text and reply (conversation cleared)."""
        self._last_accepted_text = None
        self.last_response = None

    def close(self) -> None:
        # A task cancelled before it first runs never reaches its finally block
        if self.current_task is not None and not self.current_task.done():
            self.current_task.cancel()
        self.current_task = None
        self.lock.release()
