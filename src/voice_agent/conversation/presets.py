"""
Voice presets.

Style presets are picked automatically from the suggested voice style of each
reply. Named voice presets pin one remote voice; selecting one overrides the
style presets until the selection is cleared.
"""

import logging
from typing import Optional

from voice_agent.core.constants import ELEVENLABS_DEFAULT_MODEL_ID

from .models import ResponsePreset

logger = logging.getLogger(__name__)

RACHEL = "21m00Tcm4TlvDq8ikWAM"
SARAH = "EXAVITQu4vr4xnSDxMaL"
BRIAN = "nPczCjzI2devNBz1zQrb"
ALICE = "Xb7hH8MSUJpSbSDYk0k2"
RIVER = "SAz9YHcvj6GT2YYXdXww"
ERIC = "cjVigY5qzO86Huf0OWal"

STYLE_PRESETS: dict[str, ResponsePreset] = {
    "neutral": ResponsePreset(
        name="Neutral",
        description="Natural, calm speaking style",
        provider_voice_id=RIVER,
        provider_model_id=ELEVENLABS_DEFAULT_MODEL_ID,
        stability=0.5,
        similarity_boost=0.7,
        style=0.0,
        rate=1.0,
        pitch=1.0,
        volume=1.0,
    ),
    "friendly": ResponsePreset(
        name="Friendly",
        description="Warm and welcoming tone",
        provider_voice_id=RACHEL,
        provider_model_id=ELEVENLABS_DEFAULT_MODEL_ID,
        stability=0.5,
        similarity_boost=0.8,
        style=0.0,
        rate=0.95,
        pitch=1.1,
        volume=0.9,
    ),
    "excited": ResponsePreset(
        name="Excited",
        description="Energetic and enthusiastic",
        provider_voice_id=RACHEL,
        provider_model_id=ELEVENLABS_DEFAULT_MODEL_ID,
        stability=0.35,
        similarity_boost=0.8,
        style=0.4,
        rate=1.2,
        pitch=1.15,
        volume=1.0,
    ),
    "professional": ResponsePreset(
        name="Professional",
        description="Clear, authoritative tone",
        provider_voice_id=SARAH,
        provider_model_id=ELEVENLABS_DEFAULT_MODEL_ID,
        stability=0.6,
        similarity_boost=0.9,
        style=0.1,
        rate=0.9,
        pitch=0.95,
        volume=0.95,
    ),
    "gentle": ResponsePreset(
        name="Gentle",
        description="Soft and soothing voice",
        provider_voice_id=BRIAN,
        provider_model_id=ELEVENLABS_DEFAULT_MODEL_ID,
        stability=0.7,
        similarity_boost=0.8,
        style=0.2,
        rate=0.85,
        pitch=0.9,
        volume=0.8,
    ),
    "confident": ResponsePreset(
        name="Confident",
        description="Strong and assertive tone",
        provider_voice_id=ERIC,
        provider_model_id=ELEVENLABS_DEFAULT_MODEL_ID,
        stability=0.6,
        similarity_boost=0.8,
        style=0.1,
        rate=0.95,
        pitch=0.9,
        volume=1.0,
    ),
}

VOICE_PRESETS: dict[str, ResponsePreset] = {
    "rachel_casual": ResponsePreset(
        name="Rachel (Casual)",
        description="Matter-of-fact, personable woman",
        provider_voice_id=RACHEL,
        provider_model_id=ELEVENLABS_DEFAULT_MODEL_ID,
        stability=0.5,
        similarity_boost=0.8,
        style=0.0,
    ),
    "sarah_professional": ResponsePreset(
        name="Sarah (Professional)",
        description="Confident and warm, mature quality",
        provider_voice_id=SARAH,
        provider_model_id=ELEVENLABS_DEFAULT_MODEL_ID,
        stability=0.6,
        similarity_boost=0.9,
        style=0.1,
    ),
    "brian_narrator": ResponsePreset(
        name="Brian (Narrator)",
        description="Resonant and comforting tone",
        provider_voice_id=BRIAN,
        provider_model_id=ELEVENLABS_DEFAULT_MODEL_ID,
        stability=0.7,
        similarity_boost=0.8,
        style=0.2,
    ),
    "alice_british": ResponsePreset(
        name="Alice (British)",
        description="Clear and engaging, British accent",
        provider_voice_id=ALICE,
        provider_model_id=ELEVENLABS_DEFAULT_MODEL_ID,
        stability=0.6,
        similarity_boost=0.8,
        style=0.1,
    ),
    "river_neutral": ResponsePreset(
        name="River (Neutral)",
        description="Relaxed, neutral voice",
        provider_voice_id=RIVER,
        provider_model_id=ELEVENLABS_DEFAULT_MODEL_ID,
        stability=0.5,
        similarity_boost=0.7,
        style=0.0,
    ),
    "eric_confident": ResponsePreset(
        name="Eric (Confident)",
        description="Smooth tenor, perfect for AI agents",
        provider_voice_id=ERIC,
        provider_model_id=ELEVENLABS_DEFAULT_MODEL_ID,
        stability=0.6,
        similarity_boost=0.8,
        style=0.1,
    ),
}

DEFAULT_STYLE = "friendly"

# Slider ranges for the user voice controls
VOICE_CONTROL_RANGES = {
    "rate": (0.5, 2.0),
    "pitch": (0.5, 2.0),
    "volume": (0.0, 1.0),
}


class PresetBook:
    """
    Resolves the preset used for each spoken reply.

    A pinned preset replaces the per-style choice. User voice controls
    (rate, pitch, volume) are applied on top of whichever preset resolves.
    """

    def __init__(self, selected: Optional[str] = None):
        self.selected: Optional[str] = None
        self.overrides: dict[str, float] = {}
        if selected:
            self.select(selected)

    def resolve(self, style: str) -> ResponsePreset:
        if self.selected:
            preset = self.get(self.selected)
        else:
            preset = STYLE_PRESETS.get(style, STYLE_PRESETS[DEFAULT_STYLE])
        if self.overrides:
            return preset.model_copy(update=self.overrides)
        return preset

    def get(self, name: str) -> ResponsePreset:
        if name in VOICE_PRESETS:
            return VOICE_PRESETS[name]
        if name in STYLE_PRESETS:
            return STYLE_PRESETS[name]
        raise KeyError(f"Unknown voice preset: {name}")

    def select(self, name: Optional[str]) -> None:
        """Pin a preset by key; None returns to per-style presets."""
        if name is not None:
            self.get(name)
        self.selected = name
        logger.info(f"Voice preset selection: {name or 'automatic'}")

    def set_controls(
        self,
        rate: Optional[float] = None,
        pitch: Optional[float] = None,
        volume: Optional[float] = None,
    ) -> dict[str, float]:
        """
        Set user voice controls; None leaves a control unchanged.

        Raises:
            ValueError: a value outside its slider range
        """
        requested = {"rate": rate, "pitch": pitch, "volume": volume}
        updates = {}
        for key, value in requested.items():
            if value is None:
                continue
            low, high = VOICE_CONTROL_RANGES[key]
            value = float(value)
            if not low <= value <= high:
                raise ValueError(f"{key} must be between {low} and {high}")
            updates[key] = value

        self.overrides.update(updates)
        logger.info(f"Voice controls: {self.overrides}")
        return dict(self.overrides)

    def clear_controls(self) -> None:
        self.overrides.clear()

    def describe(self) -> dict:
        return {
            "selected": self.selected,
            "controls": dict(self.overrides),
            "control_ranges": VOICE_CONTROL_RANGES,
            "styles": {key: preset.model_dump() for key, preset in STYLE_PRESETS.items()},
            "voices": {key: preset.model_dump() for key, preset in VOICE_PRESETS.items()},
        }
