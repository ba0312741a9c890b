"""
Unit tests for the rule-based response generator and voice presets.
"""

import random

import pytest

from voice_agent.conversation.models import Emotion
from voice_agent.conversation.models import Intent
from voice_agent.conversation.presets import STYLE_PRESETS
from voice_agent.conversation.presets import VOICE_PRESETS
from voice_agent.conversation.presets import PresetBook
from voice_agent.conversation.responses import EMOTION_EXTRAS
from voice_agent.conversation.responses import GOODBYES
from voice_agent.conversation.responses import GREETINGS
from voice_agent.conversation.responses import ResponseGenerator
from voice_agent.conversation.responses import voice_style_for
from voice_agent.core.constants import EMPTY_INPUT_RESPONSE


@pytest.fixture
def generator(rng):
    return ResponseGenerator(rng)


class TestScenarios:
    def test_hello_is_a_friendly_greeting(self, generator):
        response = generator.respond("Hello")

        assert response.text in GREETINGS
        assert response.emotion == "friendly"
        assert response.suggested_voice_style == "friendly"

    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty_input(self, generator, text):
        response = generator.respond(text)

        assert response.text == EMPTY_INPUT_RESPONSE
        assert response.emotion == "neutral"
        assert response.suggested_voice_style == "friendly"

    def test_excited_conversation(self, generator):
        response = generator.respond("I'm so excited about this!")

        assert response.emotion == "excited"
        assert response.suggested_voice_style == "excited"
        pool = generator.candidates(Intent.CONVERSATION, Emotion.EXCITED)
        assert len(pool) == 5 + len(EMOTION_EXTRAS[Emotion.EXCITED])


class TestGenerator:
    def test_goodbye_pool(self, generator):
        response = generator.generate(Intent.GOODBYE, Emotion.NEUTRAL, "bye")
        assert response.text in GOODBYES
        assert response.suggested_voice_style == "neutral"

    def test_question_pool_entries_are_complete(self, generator):
        pool = generator.candidates(Intent.QUESTION, Emotion.NEUTRAL)
        assert pool
        assert all(entry.startswith("That's a great question!") for entry in pool)

    @pytest.mark.parametrize("emotion", [Emotion.EXCITED, Emotion.GENTLE, Emotion.PROFESSIONAL])
    def test_conversation_pool_extended_for_emotion(self, generator, emotion):
        base = generator.candidates(Intent.CONVERSATION, Emotion.NEUTRAL)
        extended = generator.candidates(Intent.CONVERSATION, emotion)
        assert len(extended) == len(base) + 2
        assert extended[-2:] == EMOTION_EXTRAS[emotion]

    def test_friendly_conversation_not_extended(self, generator):
        base = generator.candidates(Intent.CONVERSATION, Emotion.NEUTRAL)
        assert len(generator.candidates(Intent.CONVERSATION, Emotion.FRIENDLY)) == len(base)

    def test_extra_candidates_can_be_drawn(self):
        extras = set(EMOTION_EXTRAS[Emotion.GENTLE])
        drawn = {
            ResponseGenerator(random.Random(seed))
            .generate(Intent.CONVERSATION, Emotion.GENTLE, "I'm sad")
            .text
            for seed in range(200)
        }
        assert drawn & extras
        assert drawn - extras

    def test_seeded_generators_agree(self):
        a = ResponseGenerator(random.Random(7)).respond("hello there")
        b = ResponseGenerator(random.Random(7)).respond("hello there")
        assert a == b

    @pytest.mark.parametrize(
        "emotion,style",
        [
            ("excited", "excited"),
            ("gentle", "gentle"),
            ("professional", "professional"),
            ("friendly", "friendly"),
            ("neutral", "neutral"),
            ("confident", "friendly"),
            ("grumpy", "friendly"),
        ],
    )
    def test_voice_style_map(self, emotion, style):
        assert voice_style_for(emotion) == style


class TestPresetBook:
    def test_resolve_by_style(self):
        book = PresetBook()
        assert book.resolve("excited") is STYLE_PRESETS["excited"]

    def test_unknown_style_falls_back_to_friendly(self):
        assert PresetBook().resolve("whisper") is STYLE_PRESETS["friendly"]

    def test_pinned_preset_wins(self):
        book = PresetBook("brian_narrator")
        assert book.resolve("excited") is VOICE_PRESETS["brian_narrator"]

        book.select(None)
        assert book.resolve("excited") is STYLE_PRESETS["excited"]

    def test_unknown_preset_rejected(self):
        book = PresetBook()
        with pytest.raises(KeyError):
            book.select("nobody")
        assert book.selected is None

    def test_describe(self):
        described = PresetBook().describe()
        assert set(described["voices"]) == set(VOICE_PRESETS)
        assert described["selected"] is None

    def test_voice_controls_apply_on_top_of_presets(self):
        book = PresetBook()
        controls = book.set_controls(rate=1.5, volume=0.4)

        assert controls == {"rate": 1.5, "volume": 0.4}
        preset = book.resolve("gentle")
        assert preset.rate == 1.5
        assert preset.volume == 0.4
        assert preset.pitch == STYLE_PRESETS["gentle"].pitch
        assert preset.provider_voice_id == STYLE_PRESETS["gentle"].provider_voice_id
        assert STYLE_PRESETS["gentle"].rate == 0.85

        book.clear_controls()
        assert book.resolve("gentle") is STYLE_PRESETS["gentle"]

    @pytest.mark.parametrize("controls", [{"rate": 2.5}, {"pitch": 0.1}, {"volume": 1.2}])
    def test_voice_controls_out_of_range(self, controls):
        book = PresetBook()
        with pytest.raises(ValueError):
            book.set_controls(**controls)
        assert book.overrides == {}
