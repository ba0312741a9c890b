"""
Generated audio buffers and the output device capability.
"""

import logging
import uuid
from typing import Optional
from typing import Protocol

logger = logging.getLogger(__name__)


class AudioResource:
    """
    A generated audio buffer owned by whoever plays it.

    release() drops the bytes. Releasing twice is a bug in the owner; it is
    logged and otherwise ignored.
    """

    def __init__(self, data: bytes, mime_type: str = "audio/mpeg", source: str = "unknown"):
        self.id = uuid.uuid4().hex
        self.data: Optional[bytes] = data
        self.mime_type = mime_type
        self.source = source
        self.size = len(data)
        self.released = False

    def release(self) -> None:
        if self.released:
            logger.warning(f"Audio resource {self.id} released twice")
            return
        self.released = True
        self.data = None
        logger.debug(f"Released audio resource {self.id} ({self.size} bytes, {self.source})")

    def __repr__(self) -> str:
        return f"AudioResource(id={self.id!r}, source={self.source!r}, size={self.size})"


class AudioOutput(Protocol):
    """
    Device (or remote client) that actually plays audio.

    start() returns once audio is audibly playing. It raises
    AutoplayBlockedError when the platform wants a user gesture first and
    PlaybackError for any other failure. Completion and late failures are
    reported back through PlaybackManager.handle_ended / handle_error.
    release() lets the device free its own copy (an object URL, a buffer).
    """

    async def start(self, resource: AudioResource) -> None: ...

    def stop(self, resource: AudioResource) -> None: ...

    def pause(self, resource: AudioResource) -> None: ...

    def resume(self, resource: AudioResource) -> None: ...

    def release(self, resource: AudioResource) -> None: ...
