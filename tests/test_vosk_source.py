"""
Tests for the offline Vosk transcription source.
"""

import asyncio
import json
from unittest.mock import MagicMock
from unittest.mock import patch

import pytest

from voice_agent.core.errors import CaptureError
from voice_agent.voice import vosk_transcription_source
from voice_agent.voice.endpoint_detector import DetectorState
from voice_agent.voice.endpoint_detector import EndpointDetector
from voice_agent.voice.transcription import TranscriptionOptions
from voice_agent.voice.vosk_transcription_source import VoskTranscriptionSource

SILENCE = 0.05


@pytest.fixture
def recognizer():
    mock = MagicMock()
    mock.AcceptWaveform.return_value = False
    mock.PartialResult.return_value = json.dumps({"partial": ""})
    return mock


@pytest.fixture
def vosk_module(recognizer):
    module = MagicMock()
    module.KaldiRecognizer.return_value = recognizer
    with patch.object(vosk_transcription_source, "vosk", module):
        yield module


@pytest.fixture
def turns():
    return []


@pytest.fixture
def detector(events, turns):
    return EndpointDetector(SILENCE, events=events, on_turn=turns.append)


@pytest.fixture
def source(vosk_module, detector, tmp_path):
    model_dir = tmp_path / "vosk-model"
    model_dir.mkdir()
    return VoskTranscriptionSource(detector, {"model_path": str(model_dir)})


class TestVoskTranscriptionSource:
    def test_missing_library(self, detector):
        with patch.object(vosk_transcription_source, "vosk", None):
            with pytest.raises(ImportError):
                VoskTranscriptionSource(detector)

    def test_missing_model(self, vosk_module, detector, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path))
        with pytest.raises(FileNotFoundError):
            VoskTranscriptionSource(detector)

    @pytest.mark.asyncio
    async def test_start_listens(self, source, detector, vosk_module):
        await source.start()

        assert source.running
        assert detector.state == DetectorState.LISTENING
        vosk_module.KaldiRecognizer.assert_called_once_with(source.model, 16000)

    @pytest.mark.asyncio
    async def test_audio_before_start_is_ignored(self, source, recognizer):
        assert await source.process_audio(b"\x00\x00") is None
        recognizer.AcceptWaveform.assert_not_called()

    @pytest.mark.asyncio
    async def test_changed_partials_are_forwarded(self, source, detector, recognizer):
        await source.start()

        recognizer.PartialResult.return_value = json.dumps({"partial": "hello"})
        assert await source.process_audio(b"\x00") == "hello"
        assert await source.process_audio(b"\x00") is None

        assert detector.latest_text == "hello"
        assert detector.timer_pending

    @pytest.mark.asyncio
    async def test_final_result_then_silence_yields_turn(self, source, recognizer, turns):
        await source.start()

        recognizer.AcceptWaveform.return_value = True
        recognizer.Result.return_value = json.dumps({"text": "what time is it"})
        assert await source.process_audio(b"\x00") == "what time is it"

        assert turns == []

        await asyncio.sleep(SILENCE * 3)
        assert [turn.text for turn in turns] == ["what time is it"]

    @pytest.mark.asyncio
    async def test_single_utterance_mode_stops_on_final(self, source, detector, recognizer, turns):
        await source.start(TranscriptionOptions(continuous=False))

        recognizer.AcceptWaveform.return_value = True
        recognizer.Result.return_value = json.dumps({"text": "stop here"})
        await source.process_audio(b"\x00")

        assert [turn.text for turn in turns] == ["stop here"]
        assert turns[0].finalization_reason.value == "manual_stop"
        assert not source.running
        assert detector.state == DetectorState.IDLE

    @pytest.mark.asyncio
    async def test_interim_results_disabled(self, source, detector, recognizer):
        await source.start(TranscriptionOptions(interim_results=False))

        recognizer.PartialResult.return_value = json.dumps({"partial": "hel"})
        assert await source.process_audio(b"\x00") is None
        assert detector.latest_text == ""

    @pytest.mark.asyncio
    async def test_recognizer_failure_is_capture_error(self, source, detector, recognizer, recorder):
        await source.start()
        recognizer.AcceptWaveform.side_effect = RuntimeError("kaldi fault")

        with pytest.raises(CaptureError) as exc_info:
            await source.process_audio(b"\x00")

        assert exc_info.value.kind == CaptureError.ENGINE_FAULT
        assert not source.running
        assert detector.state == DetectorState.IDLE

    @pytest.mark.asyncio
    async def test_stop_ends_source(self, source, detector):
        await source.start()
        await source.stop()

        assert not source.running
        assert detector.state == DetectorState.IDLE

    @pytest.mark.asyncio
    async def test_close_drops_recognizer_silently(self, source, detector):
        await source.start()
        source.close()

        assert not source.running
        assert detector.state == DetectorState.LISTENING
        assert await source.process_audio(b"\x00") is None

    @pytest.mark.asyncio
    async def test_result_dropped_when_closed_while_decoding(self, source, recognizer, turns):
        await source.start()

        def close_then_accept(audio):
            source.close()
            return True

        recognizer.AcceptWaveform.side_effect = close_then_accept
        recognizer.Result.return_value = json.dumps({"text": "too late"})

        assert await source.process_audio(b"\x00") is None
        await asyncio.sleep(SILENCE * 3)
        assert turns == []
