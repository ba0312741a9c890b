"""
Append-only conversation log.
"""

import logging
from typing import Iterator
from typing import Optional

from voice_agent.core.events import EventEmitter
from voice_agent.core.events import EventType

from .models import ConversationMessage
from .models import Role

logger = logging.getLogger(__name__)


class ConversationLog:
    """
    Ordered record of user and agent messages for one session.

    Messages are immutable; the only mutation is appending, or clearing the
    whole log when the user starts over.
    """

    def __init__(self, events: Optional[EventEmitter] = None):
        self.events = events
        self._messages: list[ConversationMessage] = []

    def append(
        self,
        role: Role,
        text: str,
        emotion: Optional[str] = None,
        voice_style: Optional[str] = None,
    ) -> ConversationMessage:
        message = ConversationMessage(role=role, text=text, emotion=emotion, voice_style=voice_style)
        self._messages.append(message)
        logger.debug(f"{role.value} message appended: '{text[:50]}'")
        if self.events:
            self.events.emit(EventType.MESSAGE_APPENDED, message=message.model_dump(mode="json"))
        return message

    @property
    def messages(self) -> tuple[ConversationMessage, ...]:
        return tuple(self._messages)

    def clear(self) -> None:
        self._messages.clear()

    def export_text(self) -> str:
        """Plain-text transcript, one `[HH:MM:SS] ROLE: text` line per message."""
        return "\n".join(
            f"[{m.created_at.strftime('%H:%M:%S')}] {m.role.value.upper()}: {m.text}"
            for m in self._messages
        )

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ConversationMessage]:
        return iter(list(self._messages))
