"""
Pydantic models for turns, conversation messages and voice presets.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


def new_id() -> str:
    return uuid.uuid4().hex


class FinalizationReason(str, Enum):
    SILENCE = "silence"
    MANUAL_STOP = "manual_stop"


class Role(str, Enum):
    USER = "user"
    AGENT = "agent"


class Intent(str, Enum):
    GREETING = "greeting"
    GOODBYE = "goodbye"
    THANKS = "thanks"
    QUESTION = "question"
    HELP = "help"
    CONVERSATION = "conversation"


class Emotion(str, Enum):
    EXCITED = "excited"
    GENTLE = "gentle"
    PROFESSIONAL = "professional"
    FRIENDLY = "friendly"
    NEUTRAL = "neutral"
    CONFIDENT = "confident"


class Turn(BaseModel):
    """One finalized user utterance."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    text: str = Field(..., description="Latest hypothesis text at finalization")
    started_at: datetime
    finalized_at: datetime = Field(default_factory=datetime.now)
    finalization_reason: FinalizationReason


class ConversationMessage(BaseModel):
    """A user or agent entry in the conversation log."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    role: Role
    text: str
    created_at: datetime = Field(default_factory=datetime.now)
    emotion: Optional[str] = None
    voice_style: Optional[str] = None


class Classification(BaseModel):
    model_config = ConfigDict(frozen=True)

    intent: Intent
    emotion: Emotion


class GeneratedResponse(BaseModel):
    """Agent reply and the speaking style suggested for it."""

    model_config = ConfigDict(frozen=True)

    text: str
    emotion: str
    suggested_voice_style: str


class ResponsePreset(BaseModel):
    """Voice parameters for both the remote and the local provider."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: str = ""
    provider_voice_id: Optional[str] = None
    provider_model_id: Optional[str] = None
    stability: float = Field(default=0.5, ge=0.0, le=1.0)
    similarity_boost: float = Field(default=0.8, ge=0.0, le=1.0)
    style: float = Field(default=0.0, ge=0.0, le=1.0)
    speaker_boost: bool = True
    rate: float = Field(default=1.0, gt=0.0)
    pitch: float = Field(default=1.0, gt=0.0)
    volume: float = Field(default=1.0, ge=0.0, le=1.0)
    voice_name: Optional[str] = None
