"""
Tests for turn acceptance, the processing lock and pipeline failures.
"""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock
from unittest.mock import Mock

import pytest

from voice_agent.conversation.classifier import classify
from voice_agent.conversation.log import ConversationLog
from voice_agent.conversation.models import FinalizationReason
from voice_agent.conversation.models import Role
from voice_agent.conversation.models import Turn
from voice_agent.conversation.responses import ResponseGenerator
from voice_agent.core.constants import PIPELINE_ERROR_RESPONSE
from voice_agent.core.errors import GenerationError
from voice_agent.core.events import EventType
from voice_agent.voice.turn_controller import ProcessingLock
from voice_agent.voice.turn_controller import TurnController


def make_turn(text: str, reason=FinalizationReason.SILENCE) -> Turn:
    return Turn(text=text, started_at=datetime.now(), finalization_reason=reason)


@pytest.fixture
def orchestrator():
    mock = Mock()
    mock.speak = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def log(events):
    return ConversationLog(events)


@pytest.fixture
def controller(log, orchestrator, events, rng):
    return TurnController(log, ResponseGenerator(rng), orchestrator, events=events)


class TestProcessingLock:
    def test_acquire_release(self):
        lock = ProcessingLock()
        assert lock.acquire("a")
        assert not lock.acquire("b")
        assert lock.turn_id == "a"

        lock.release("b")
        assert lock.held

        lock.release("a")
        assert not lock.held


class TestSubmit:
    @pytest.mark.asyncio
    async def test_accepted_turn(self, controller, log, orchestrator, recorder):
        task = controller.submit(make_turn("Hello"))
        await task

        assert [m.role for m in log.messages] == [Role.USER, Role.AGENT]
        assert log.messages[0].text == "Hello"
        agent = log.messages[1]
        assert agent.emotion == "friendly"
        assert agent.voice_style == "friendly"
        orchestrator.speak.assert_awaited_once()
        spoken_text, preset = orchestrator.speak.await_args.args
        assert spoken_text == agent.text
        assert preset.name == "Friendly"
        assert not controller.busy
        assert len(recorder.of(EventType.MESSAGE_APPENDED)) == 2

    @pytest.mark.asyncio
    async def test_empty_text_rejected(self, controller, log):
        assert controller.submit(make_turn("   ")) is None
        assert len(log) == 0

    @pytest.mark.asyncio
    async def test_same_text_twice_accepted_once(self, controller, log, orchestrator):
        # Silence finalize racing a manual stop for the same utterance
        first = controller.submit(make_turn("what is the time"))
        await first
        second = controller.submit(make_turn("what is the time", FinalizationReason.MANUAL_STOP))

        assert second is None
        assert len([m for m in log.messages if m.role == Role.AGENT]) == 1
        assert orchestrator.speak.await_count == 1

    @pytest.mark.asyncio
    async def test_reset_allows_repeating_text(self, controller, log):
        await controller.submit(make_turn("hello"))
        controller.reset()
        task = controller.submit(make_turn("hello"))

        assert task is not None
        await task
        assert len(log) == 4

    @pytest.mark.asyncio
    async def test_lock_rejects_concurrent_turns(self, log, events, rng):
        gate = asyncio.Event()

        async def slow_speak(text, preset):
            await gate.wait()

        orchestrator = Mock()
        orchestrator.speak = AsyncMock(side_effect=slow_speak)
        controller = TurnController(log, ResponseGenerator(rng), orchestrator, events=events)

        first = controller.submit(make_turn("tell me a story"))
        await asyncio.sleep(0)
        assert controller.busy

        assert controller.submit(make_turn("something else")) is None
        assert len(log) == 2

        gate.set()
        await first
        assert not controller.busy
        assert controller.submit(make_turn("something else")) is not None

    @pytest.mark.asyncio
    async def test_slow_classifier_holds_lock(self, log, orchestrator, events, rng):
        inner_turn = make_turn("second turn")
        results = []

        def classifier(text):
            # A turn arriving mid-classification is rejected
            results.append(controller.submit(inner_turn))
            return classify(text)

        controller = TurnController(
            log, ResponseGenerator(rng), orchestrator, events=events, classifier=classifier
        )
        await controller.submit(make_turn("first turn"))

        assert results == [None]
        assert [m.text for m in log.messages if m.role == Role.USER] == ["first turn"]


class TestFailures:
    @pytest.mark.asyncio
    async def test_pipeline_error_apologizes_and_releases(self, log, orchestrator, events, recorder):
        def broken(text):
            raise ValueError("classifier bug")

        controller = TurnController(log, orchestrator=orchestrator, events=events, classifier=broken)
        await controller.submit(make_turn("hello"))

        agent = log.messages[-1]
        assert agent.text == PIPELINE_ERROR_RESPONSE
        assert agent.emotion == "gentle"
        assert agent.voice_style == "gentle"
        assert len(recorder.of(EventType.PIPELINE_ERROR)) == 1
        assert not controller.busy
        assert controller.submit(make_turn("try again")) is not None

    @pytest.mark.asyncio
    async def test_generation_failure_releases_lock(self, log, events, rng):
        orchestrator = Mock()
        orchestrator.speak = AsyncMock(
            side_effect=GenerationError("no voice", kind=GenerationError.LOCAL)
        )
        controller = TurnController(log, ResponseGenerator(rng), orchestrator, events=events)

        await controller.submit(make_turn("hello"))

        assert not controller.busy
        assert len(log) == 2

    @pytest.mark.asyncio
    async def test_unexpected_dispatch_failure_releases_lock(self, log, events, rng):
        orchestrator = Mock()
        orchestrator.speak = AsyncMock(side_effect=RuntimeError("boom"))
        controller = TurnController(log, ResponseGenerator(rng), orchestrator, events=events)

        await controller.submit(make_turn("hello"))
        assert not controller.busy


class TestAutoSpeak:
    @pytest.mark.asyncio
    async def test_auto_speak_off_logs_without_speaking(self, controller, log, orchestrator):
        controller.auto_speak = False
        await controller.submit(make_turn("hello"))

        assert len(log) == 2
        orchestrator.speak.assert_not_awaited()
        assert not controller.busy


class TestSpeakLast:
    @pytest.mark.asyncio
    async def test_nothing_to_replay(self, controller, orchestrator):
        assert controller.speak_last() is None
        orchestrator.speak.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_replays_last_reply_with_auto_speak_off(self, controller, log, orchestrator):
        controller.auto_speak = False
        await controller.submit(make_turn("hello"))
        orchestrator.speak.assert_not_awaited()

        task = controller.speak_last()
        await task

        spoken_text, preset = orchestrator.speak.await_args.args
        assert spoken_text == log.messages[-1].text
        assert preset.name == "Friendly"
        assert len(log) == 2
        assert not controller.busy

    @pytest.mark.asyncio
    async def test_replay_rejected_while_turn_in_flight(self, log, events, rng):
        gate = asyncio.Event()

        async def slow_speak(text, preset):
            await gate.wait()

        orchestrator = Mock()
        orchestrator.speak = AsyncMock(side_effect=slow_speak)
        controller = TurnController(log, ResponseGenerator(rng), orchestrator, events=events)

        first = controller.submit(make_turn("hello"))
        await asyncio.sleep(0)
        assert controller.speak_last() is None

        gate.set()
        await first
        assert controller.speak_last() is not None

    @pytest.mark.asyncio
    async def test_reset_forgets_last_reply(self, controller):
        await controller.submit(make_turn("hello"))
        controller.reset()
        assert controller.speak_last() is None


class TestClose:
    @pytest.mark.asyncio
    async def test_close_before_dispatch_runs_releases_lock(self, controller, orchestrator):
        task = controller.submit(make_turn("hello"))
        assert controller.busy

        controller.close()

        assert not controller.busy
        with pytest.raises(asyncio.CancelledError):
            await task
        orchestrator.speak.assert_not_awaited()
        assert controller.submit(make_turn("hello again")) is not None
