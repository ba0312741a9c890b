"""
Playback Manager for the Voice Agent.

Owns the audio output: at most one playback session exists at a time, and
every session's audio resource is released exactly once whichever way the
session ends (ended, error, stopped or superseded).
"""

import logging
from enum import Enum
from typing import Optional

from voice_agent.core.constants import AUTOPLAY_BLOCKED_MESSAGE
from voice_agent.core.errors import AutoplayBlockedError
from voice_agent.core.errors import PlaybackError
from voice_agent.core.events import EventEmitter
from voice_agent.core.events import EventType

from .audio import AudioOutput
from .audio import AudioResource

logger = logging.getLogger(__name__)


class PlaybackState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"
    ERROR = "error"
    STOPPED = "stopped"
    NEEDS_USER_GESTURE = "needs_user_gesture"


ACTIVE_STATES = frozenset(
    {
        PlaybackState.LOADING,
        PlaybackState.PLAYING,
        PlaybackState.PAUSED,
        PlaybackState.NEEDS_USER_GESTURE,
    }
)


class PlaybackSession:
    """One resource on its way through the output."""

    def __init__(self, resource: AudioResource):
        self.resource = resource
        self.state = PlaybackState.IDLE
        self.released = False
        self.error: Optional[PlaybackError] = None

    @property
    def active(self) -> bool:
        return self.state in ACTIVE_STATES


class PlaybackManager:
    """
    Single-session playback with autoplay gating.

    A play() request stops and releases the current session before loading
    the new one. If the platform blocks autoplay the session waits in
    NEEDS_USER_GESTURE until retry_after_gesture() is called from a real user
    gesture; nothing retries on its own.
    """

    def __init__(self, output: AudioOutput, events: Optional[EventEmitter] = None):
        self.output = output
        self.events = events or EventEmitter()
        self.state = PlaybackState.IDLE
        self._session: Optional[PlaybackSession] = None

    @property
    def session(self) -> Optional[PlaybackSession]:
        return self._session

    def _transition(self, session: PlaybackSession, state: PlaybackState, **extra) -> None:
        old_state = session.state
        session.state = state
        if session is self._session:
            self.state = state
        logger.debug(f"Playback {session.resource.id}: {old_state.value} -> {state.value}")
        self.events.emit(
            EventType.PLAYBACK_STATE_CHANGED,
            state=state.value,
            previous=old_state.value,
            resource_id=session.resource.id,
            source=session.resource.source,
            **extra,
        )

    def _release(self, session: PlaybackSession) -> None:
        if session.released:
            return
        session.released = True
        session.resource.release()
        try:
            self.output.release(session.resource)
        except Exception as e:
            logger.error(f"Audio output failed to release {session.resource.id}: {str(e)}")

    def _finish(self, session: PlaybackSession, state: PlaybackState, **extra) -> None:
        self._transition(session, state, **extra)
        self._release(session)
        if session is self._session:
            self._session = None

    def _teardown_current(self) -> bool:
        session = self._session
        if session is None or not session.active:
            return False
        try:
            self.output.stop(session.resource)
        except Exception as e:
            logger.error(f"Audio output failed to stop {session.resource.id}: {str(e)}")
        self._finish(session, PlaybackState.STOPPED)
        return True

    async def play(self, resource: AudioResource) -> PlaybackState:
        """
        Start playing a resource, superseding whatever is playing now.

        Returns:
            PlaybackState: state of this resource's session when start settles
        """
        if self._teardown_current():
            logger.info("Previous playback superseded")

        session = PlaybackSession(resource)
        self._session = session
        self._transition(session, PlaybackState.LOADING)
        return await self._start(session)

    async def _start(self, session: PlaybackSession) -> PlaybackState:
        try:
            await self.output.start(session.resource)
        except AutoplayBlockedError as e:
            if session is not self._session or session.state != PlaybackState.LOADING:
                return session.state
            logger.info(f"Autoplay blocked for {session.resource.id}, waiting for a user gesture")
            self._transition(session, PlaybackState.NEEDS_USER_GESTURE, message=e.message)
            self.events.emit(
                EventType.NOTICE,
                kind="autoplay_blocked",
                message=AUTOPLAY_BLOCKED_MESSAGE,
                action="user_gesture",
            )
            return session.state
        except PlaybackError as e:
            return self._fail(session, e)
        except Exception as e:
            return self._fail(session, PlaybackError(str(e), kind=PlaybackError.OUTPUT))

        if session is not self._session or session.state != PlaybackState.LOADING:
            # Stopped or superseded while the output was loading
            return session.state

        self._transition(session, PlaybackState.PLAYING)
        return session.state

    def _fail(self, session: PlaybackSession, error: PlaybackError) -> PlaybackState:
        session.error = error
        if session is not self._session or not session.active:
            return session.state
        logger.error(f"Playback failed for {session.resource.id}: {error.message}")
        self._finish(session, PlaybackState.ERROR, error=error.to_dict())
        return PlaybackState.ERROR

    async def retry_after_gesture(self) -> PlaybackState:
        """Retry a blocked start; call only in response to a user gesture."""
        session = self._session
        if session is None or session.state != PlaybackState.NEEDS_USER_GESTURE:
            return self.state
        logger.info(f"User gesture received, retrying playback {session.resource.id}")
        self._transition(session, PlaybackState.LOADING)
        return await self._start(session)

    def stop(self) -> bool:
        """Stop and release the current session. Returns True if one was active."""
        return self._teardown_current()

    def pause(self) -> bool:
        session = self._session
        if session is None or session.state != PlaybackState.PLAYING:
            return False
        self.output.pause(session.resource)
        self._transition(session, PlaybackState.PAUSED)
        return True

    def resume(self) -> bool:
        session = self._session
        if session is None or session.state != PlaybackState.PAUSED:
            return False
        self.output.resume(session.resource)
        self._transition(session, PlaybackState.PLAYING)
        return True

    def _current(self, resource_id: str) -> Optional[PlaybackSession]:
        session = self._session
        if session is None or session.resource.id != resource_id or not session.active:
            logger.debug(f"Ignoring notification for stale resource {resource_id}")
            return None
        return session

    def handle_ended(self, resource_id: str) -> None:
        """The output finished playing a resource."""
        session = self._current(resource_id)
        if session is not None:
            self._finish(session, PlaybackState.ENDED)

    def handle_error(self, resource_id: str, message: str = "Audio playback failed") -> None:
        """The output failed after playback had started."""
        session = self._current(resource_id)
        if session is not None:
            self._fail(session, PlaybackError(message, kind=PlaybackError.DECODE))

    def close(self) -> None:
        self._teardown_current()
        self.state = PlaybackState.IDLE
