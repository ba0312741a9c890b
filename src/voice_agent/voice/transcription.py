"""
Transcription source capability.

A source pushes hypotheses, an ended notification and typed errors into the
endpoint detector. Browser recognition engines reach the detector through
the WebSocket; the Vosk adapter does it in-process.
"""

from typing import Protocol

from pydantic import BaseModel
from pydantic import ConfigDict


class TranscriptionOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    continuous: bool = True
    interim_results: bool = True
    locale: str = "en-US"

    @classmethod
    def from_settings(cls, settings) -> "TranscriptionOptions":
        return cls(
            continuous=settings.continuous,
            interim_results=settings.interim_results,
            locale=settings.locale,
        )


class TranscriptionSource(Protocol):
    async def start(self, options: TranscriptionOptions) -> None: ...

    async def stop(self) -> None: ...
