"""
Typed event channel between the conversation core and its observers.

Components publish events here instead of calling back into the UI, so the
core runs (and is tested) without any rendering layer attached.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from dataclasses import field
from enum import Enum
from typing import Any
from typing import Iterable
from typing import Optional

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """Events produced by the core."""

    TURN_FINALIZED = "turn_finalized"
    MESSAGE_APPENDED = "message_appended"
    PLAYBACK_STATE_CHANGED = "playback_state_changed"
    ORCHESTRATOR_FALLBACK_ENGAGED = "orchestrator_fallback_engaged"
    ORCHESTRATOR_STATE_CHANGED = "orchestrator_state_changed"
    DETECTOR_STATE_CHANGED = "detector_state_changed"
    GENERATION_FAILED = "generation_failed"
    CAPTURE_ERROR = "capture_error"
    PIPELINE_ERROR = "pipeline_error"
    NOTICE = "notice"


@dataclass
class Event:
    """A single event with its payload."""

    type: EventType
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type.value, "timestamp": self.timestamp, **self.payload}


Listener = Callable[[Event], None]


class EventEmitter:
    """
    Synchronous observer list.

    Listeners run in emission order on the caller's stack. A failing listener
    is logged and does not stop delivery to the others.
    """

    def __init__(self):
        self._listeners: list[tuple[Listener, Optional[frozenset]]] = []

    def subscribe(
        self, listener: Listener, types: Optional[Iterable[EventType]] = None
    ) -> Callable[[], None]:
        """
        Register a listener, optionally filtered to some event types.

        Returns:
            Callable that removes the listener again
        """
        entry = (listener, frozenset(types) if types is not None else None)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def emit(self, event_type: EventType, **payload: Any) -> Event:
        event = Event(type=event_type, payload=payload)
        for listener, types in list(self._listeners):
            if types is not None and event_type not in types:
                continue
            try:
                listener(event)
            except Exception:
                logger.exception(f"Event listener failed for {event_type.value}")
        return event

    def clear(self) -> None:
        self._listeners.clear()

    def __len__(self) -> int:
        return len(self._listeners)
