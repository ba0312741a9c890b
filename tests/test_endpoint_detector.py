"""
Tests for silence-timer endpointing.

Timings are scaled down: a 50 ms silence timeout stands in for 1000 ms.
"""

import asyncio

import pytest

from voice_agent.conversation.models import FinalizationReason
from voice_agent.core.errors import CaptureError
from voice_agent.core.events import EventType
from voice_agent.voice.endpoint_detector import DetectorState
from voice_agent.voice.endpoint_detector import EndpointDetector

SILENCE = 0.05


@pytest.fixture
def turns():
    return []


@pytest.fixture
def detector(events, turns):
    detector = EndpointDetector(silence_timeout=SILENCE, events=events, on_turn=turns.append)
    yield detector
    detector.close()


class TestSilenceFinalization:
    @pytest.mark.asyncio
    async def test_latest_hypothesis_wins(self, detector, turns, recorder):
        # Two hypotheses 10 ms apart (200 ms at full scale), then silence
        detector.start()
        detector.on_hypothesis("what is")
        await asyncio.sleep(SILENCE / 5)
        detector.on_hypothesis("what is the weather")
        await asyncio.sleep(SILENCE * 3)

        assert len(turns) == 1
        assert turns[0].text == "what is the weather"
        assert turns[0].finalization_reason == FinalizationReason.SILENCE
        assert len(recorder.of(EventType.TURN_FINALIZED)) == 1
        assert detector.state == DetectorState.FINALIZED

    @pytest.mark.asyncio
    async def test_gaps_below_threshold_never_finalize(self, detector, turns):
        detector.start()
        for i in range(8):
            detector.on_hypothesis(f"word {i}")
            await asyncio.sleep(SILENCE / 5)

        assert turns == []
        assert detector.state == DetectorState.LISTENING

        turn = detector.stop_manually()
        assert turn.text == "word 7"
        assert turn.finalization_reason == FinalizationReason.MANUAL_STOP

    @pytest.mark.asyncio
    async def test_empty_hypothesis_keeps_latest_text(self, detector, turns):
        detector.start()
        detector.on_hypothesis("hello there")
        detector.on_hypothesis("   ")
        await asyncio.sleep(SILENCE * 3)

        assert [turn.text for turn in turns] == ["hello there"]

    @pytest.mark.asyncio
    async def test_only_empty_text_emits_no_turn(self, detector, turns, recorder):
        detector.start()
        detector.on_hypothesis("")
        await asyncio.sleep(SILENCE * 3)

        assert turns == []
        assert recorder.of(EventType.TURN_FINALIZED) == []
        assert detector.state == DetectorState.FINALIZED

    @pytest.mark.asyncio
    async def test_final_flag_does_not_skip_silence(self, detector, turns):
        detector.start()
        detector.on_hypothesis("good morning", is_final=True)

        assert turns == []
        await asyncio.sleep(SILENCE * 3)
        assert [turn.text for turn in turns] == ["good morning"]

    @pytest.mark.asyncio
    async def test_hypotheses_ignored_when_idle(self, detector, turns):
        detector.on_hypothesis("nobody is listening")
        await asyncio.sleep(SILENCE * 2)

        assert turns == []
        assert not detector.timer_pending


class TestManualStop:
    @pytest.mark.asyncio
    async def test_manual_stop_cancels_timer(self, detector, turns):
        detector.start()
        detector.on_hypothesis("stop right now")
        detector.stop_manually()
        await asyncio.sleep(SILENCE * 3)

        assert len(turns) == 1
        assert turns[0].finalization_reason == FinalizationReason.MANUAL_STOP
        assert not detector.timer_pending

    @pytest.mark.asyncio
    async def test_second_finalize_is_noop(self, detector, turns):
        detector.start()
        detector.on_hypothesis("only once")
        await asyncio.sleep(SILENCE * 3)

        assert detector.stop_manually() is None
        assert len(turns) == 1

    @pytest.mark.asyncio
    async def test_continuous_recognition_starts_next_utterance(self, detector, turns):
        detector.start()
        detector.on_hypothesis("first")
        await asyncio.sleep(SILENCE * 3)
        detector.on_hypothesis("second")
        await asyncio.sleep(SILENCE * 3)

        assert [turn.text for turn in turns] == ["first", "second"]

    @pytest.mark.asyncio
    async def test_single_utterance_mode_ignores_after_finalize(self, events, turns):
        detector = EndpointDetector(
            silence_timeout=SILENCE, events=events, on_turn=turns.append, continuous=False
        )
        detector.start()
        detector.on_hypothesis("first")
        detector.stop_manually()
        detector.on_hypothesis("late words")
        await asyncio.sleep(SILENCE * 3)

        assert [turn.text for turn in turns] == ["first"]

    @pytest.mark.asyncio
    async def test_trailing_result_after_manual_stop_is_ignored(self, detector, turns):
        detector.start()
        detector.on_hypothesis("hello there")
        detector.stop_manually()
        detector.on_hypothesis("Hello there.", is_final=True)
        await asyncio.sleep(SILENCE * 3)

        assert [turn.text for turn in turns] == ["hello there"]
        assert detector.state == DetectorState.STOPPED
        assert not detector.timer_pending

    @pytest.mark.asyncio
    async def test_start_after_manual_stop_listens_again(self, detector, turns):
        detector.start()
        detector.on_hypothesis("first")
        detector.stop_manually()

        detector.start()
        detector.on_hypothesis("second")
        await asyncio.sleep(SILENCE * 3)

        assert [turn.text for turn in turns] == ["first", "second"]


class TestSourceEvents:
    @pytest.mark.asyncio
    async def test_source_ended_never_finalizes(self, detector, turns):
        detector.start()
        detector.on_hypothesis("half a sentence")
        detector.on_source_ended()
        await asyncio.sleep(SILENCE * 3)

        assert turns == []
        assert detector.state == DetectorState.IDLE
        assert detector.latest_text == ""

    @pytest.mark.asyncio
    async def test_engine_error(self, detector, turns, recorder):
        detector.start()
        detector.on_hypothesis("something")
        error = detector.on_source_error("network")
        await asyncio.sleep(SILENCE * 3)

        assert turns == []
        assert error.kind == CaptureError.ENGINE_FAULT
        assert detector.state == DetectorState.IDLE
        captured = recorder.of(EventType.CAPTURE_ERROR)
        assert captured[0].payload["persistent"] is False

    @pytest.mark.parametrize("reason", ["permission_denied", "not-allowed"])
    def test_permission_denied_blocks(self, detector, recorder, reason):
        detector.start()
        error = detector.on_source_error(reason)

        assert error.is_permission_denied
        assert detector.state == DetectorState.BLOCKED
        assert recorder.of(EventType.CAPTURE_ERROR)[0].payload["persistent"] is True

        with pytest.raises(CaptureError):
            detector.start()

        detector.reset_permission()
        detector.start()
        assert detector.state == DetectorState.LISTENING

    def test_state_changes_are_emitted(self, detector, recorder):
        detector.start()
        detector.stop_manually()

        states = [e.payload["state"] for e in recorder.of(EventType.DETECTOR_STATE_CHANGED)]
        assert states == ["listening", "stopped"]


def test_rejects_non_positive_timeout():
    with pytest.raises(ValueError):
        EndpointDetector(silence_timeout=0)
