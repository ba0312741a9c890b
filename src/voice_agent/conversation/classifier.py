"""
Keyword intent and emotion classification.

Both detectors work on the lower-cased text and walk their categories in a
fixed precedence; the first category with a matching keyword wins. Intent
picks the reply template, emotion picks its tone and the voice.

Keywords are matched at word starts, so "this" is not a greeting and
"working" still counts as work talk.
"""

import re

from .models import Classification
from .models import Emotion
from .models import Intent


def _patterns(*keywords: str) -> tuple[re.Pattern, ...]:
    return tuple(re.compile(keyword) for keyword in keywords)


EMOTION_PATTERNS = [
    (
        Emotion.EXCITED,
        _patterns(r"\bhappy", r"\bexcit", r"\bgreat", r"\bawesome", r"\bwonderful", r"\bamazing"),
    ),
    (Emotion.GENTLE, _patterns(r"\bsad\b", r"\bupset", r"\bdisappointed", r"\bdown\b")),
    (
        Emotion.PROFESSIONAL,
        _patterns(r"\bbusiness", r"\bwork", r"\bprofessional", r"\bmeeting"),
    ),
    (
        Emotion.FRIENDLY,
        _patterns(r"\bfriend", r"\bchat", r"\btalk", r"\bhey\b", r"\bhi\b", r"\bhello\b"),
    ),
]

INTENT_PATTERNS = [
    (
        Intent.GREETING,
        _patterns(r"\bhello\b", r"\bhi\b", r"\bhey\b", r"\bgood morning\b", r"\bgood evening\b"),
    ),
    (
        Intent.GOODBYE,
        _patterns(r"\bbye\b", r"\bgoodbye\b", r"\bsee you\b", r"\bfarewell\b", r"\btalk to you later\b"),
    ),
    (Intent.THANKS, _patterns(r"\bthank")),
    (
        Intent.QUESTION,
        _patterns(r"\?", r"\bwhat\b", r"\bhow\b", r"\bwhy\b", r"\bwhen\b", r"\bwhere\b"),
    ),
    (Intent.HELP, _patterns(r"\bhelp", r"\bassist", r"\bsupport")),
]


def _first_match(text: str, table, default):
    lowered = text.lower()
    for category, patterns in table:
        if any(pattern.search(lowered) for pattern in patterns):
            return category
    return default


def detect_emotion(text: str) -> Emotion:
    return _first_match(text, EMOTION_PATTERNS, Emotion.NEUTRAL)


def detect_intent(text: str) -> Intent:
    return _first_match(text, INTENT_PATTERNS, Intent.CONVERSATION)


def classify(text: str) -> Classification:
    """Classify text into an intent and an emotion."""
    return Classification(intent=detect_intent(text), emotion=detect_emotion(text))
