"""
Conversation package: turn and message models, keyword classification,
rule-based replies, voice presets and the conversation log.
"""

from .classifier import classify
from .classifier import detect_emotion
from .classifier import detect_intent
from .log import ConversationLog
from .models import Classification
from .models import ConversationMessage
from .models import Emotion
from .models import FinalizationReason
from .models import GeneratedResponse
from .models import Intent
from .models import ResponsePreset
from .models import Role
from .models import Turn
from .presets import PresetBook
from .responses import ResponseGenerator

__all__ = [
    "classify",
    "detect_emotion",
    "detect_intent",
    "ConversationLog",
    "Classification",
    "ConversationMessage",
    "Emotion",
    "FinalizationReason",
    "GeneratedResponse",
    "Intent",
    "ResponsePreset",
    "Role",
    "Turn",
    "PresetBook",
    "ResponseGenerator",
]
