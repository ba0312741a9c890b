"""
Rule-based response generation.

Each intent has a small pool of canned replies drawn uniformly at random.
Free conversation draws from a base pool that grows by a couple of
tone-matched candidates for excited, gentle and professional speakers, which
biases the draw without forcing a single reply.
"""

import logging
import random
from typing import Optional

from voice_agent.core.constants import EMPTY_INPUT_RESPONSE

from .classifier import classify
from .models import Emotion
from .models import GeneratedResponse
from .models import Intent

logger = logging.getLogger(__name__)

GREETINGS = [
    "Hello! How can I help you today?",
    "Hi there! What would you like to talk about?",
    "Greetings! I'm here to assist you.",
    "Hey! What's on your mind?",
    "Good day! How may I assist you?",
]

GOODBYES = [
    "It was great talking with you! Have a wonderful day!",
    "Thanks for the conversation! Take care!",
    "Goodbye! Feel free to chat anytime.",
    "See you later! Have a great time ahead!",
    "Farewell! It was a pleasure talking with you.",
]

THANKS = [
    "You're very welcome! I'm glad I could help you.",
    "Happy to help! Anything else on your mind?",
    "My pleasure! It's nice to be useful.",
]

HELP = [
    "I'm here to help! I can listen to what you say and respond with different voice styles. "
    "Try asking me something or just have a conversation!",
    "Just speak naturally. When you pause, I'll answer out loud.",
    "I can chat with you and reply in a voice that matches your mood. Go ahead and say something!",
]

CONFIRMATIONS = [
    "I understand what you're saying.",
    "That makes sense to me.",
    "I hear you loud and clear.",
    "Got it! Thanks for sharing that.",
    "I see what you mean.",
]

ENCOURAGEMENTS = [
    "That sounds really interesting!",
    "Tell me more about that!",
    "How fascinating! Please continue.",
    "I'd love to hear more details.",
    "That's quite intriguing!",
]

QUESTION_PREFIX = (
    "That's a great question! While I'm a voice interface demo, "
    "I can reflect on what you're asking. "
)

EMOTION_EXTRAS = {
    Emotion.EXCITED: [
        "Your enthusiasm is contagious! I love your energy!",
        "How exciting! That sounds absolutely wonderful!",
    ],
    Emotion.GENTLE: [
        "I understand this might be difficult to talk about. I'm here to listen.",
        "Thank you for sharing something so personal with me.",
    ],
    Emotion.PROFESSIONAL: [
        "I appreciate you bringing this professional matter to my attention.",
        "That's a very professional approach to handling this situation.",
    ],
}

VOICE_STYLE_MAP = {
    Emotion.EXCITED.value: "excited",
    Emotion.GENTLE.value: "gentle",
    Emotion.PROFESSIONAL.value: "professional",
    Emotion.FRIENDLY.value: "friendly",
    Emotion.NEUTRAL.value: "neutral",
}
DEFAULT_VOICE_STYLE = "friendly"


def voice_style_for(emotion) -> str:
    """Map an emotion (enum or string) to a voice style key."""
    key = emotion.value if isinstance(emotion, Emotion) else str(emotion)
    return VOICE_STYLE_MAP.get(key, DEFAULT_VOICE_STYLE)


class ResponseGenerator:
    """Pick a reply for a classified utterance."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def _pick(self, pool: list[str]) -> str:
        return self.rng.choice(pool)

    def candidates(self, intent: Intent, emotion: Emotion) -> list[str]:
        """
        Build the candidate pool for an intent and emotion.

        Conversation templates that embed a confirmation or an encouragement
        are resolved here, so every entry is a finished reply.
        """
        if intent == Intent.GREETING:
            return list(GREETINGS)
        if intent == Intent.GOODBYE:
            return list(GOODBYES)
        if intent == Intent.THANKS:
            return list(THANKS)
        if intent == Intent.HELP:
            return list(HELP)
        if intent == Intent.QUESTION:
            return [QUESTION_PREFIX + encouragement for encouragement in ENCOURAGEMENTS]

        pool = [
            f"{self._pick(CONFIRMATIONS)} You mentioned something really thoughtful.",
            f"I find that quite interesting! {self._pick(ENCOURAGEMENTS)}",
            f"{self._pick(CONFIRMATIONS)} That sounds like something worth exploring further.",
            "Thanks for sharing that with me! I appreciate your perspective on this.",
            "That's a fascinating point! I can tell you've put thought into this.",
        ]
        pool.extend(EMOTION_EXTRAS.get(emotion, []))
        return pool

    def generate(self, intent: Intent, emotion: Emotion, text: str) -> GeneratedResponse:
        """
        Generate a reply for an already classified utterance.

        Args:
            intent: Detected intent
            emotion: Detected emotion
            text: The user's words

        Returns:
            GeneratedResponse: reply text, emotion and suggested voice style
        """
        reply = self._pick(self.candidates(Intent(intent), Emotion(emotion)))
        logger.debug(f"Reply for intent={intent} emotion={emotion}: '{reply[:40]}'")
        return GeneratedResponse(
            text=reply,
            emotion=Emotion(emotion).value,
            suggested_voice_style=voice_style_for(emotion),
        )

    def respond(self, text: str) -> GeneratedResponse:
        """Classify and answer in one step."""
        if not text or not text.strip():
            return GeneratedResponse(
                text=EMPTY_INPUT_RESPONSE,
                emotion=Emotion.NEUTRAL.value,
                suggested_voice_style=DEFAULT_VOICE_STYLE,
            )
        classification = classify(text)
        return self.generate(classification.intent, classification.emotion, text)
