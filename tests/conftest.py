"""
Pytest configuration and fixtures for the voice agent tests.
"""

import asyncio
import random
import sys
from pathlib import Path
from typing import Optional

import pytest

# Add src to Python path for imports without an editable install
src_root = Path(__file__).parent.parent / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from voice_agent.core.errors import AutoplayBlockedError  # noqa: E402
from voice_agent.core.errors import GenerationError  # noqa: E402
from voice_agent.core.errors import PlaybackError  # noqa: E402
from voice_agent.core.events import EventEmitter  # noqa: E402
from voice_agent.core.settings import Settings  # noqa: E402
from voice_agent.voice.audio import AudioResource  # noqa: E402


class EventRecorder:
    """Collects every event emitted on an emitter."""

    def __init__(self, emitter: EventEmitter):
        self.events = []
        emitter.subscribe(self.events.append)

    def of(self, event_type):
        return [event for event in self.events if event.type == event_type]

    def types(self):
        return [event.type for event in self.events]


class FakeOutput:
    """
    In-memory audio output.

    mode controls start(): "play" succeeds, "blocked" raises
    AutoplayBlockedError, "error" raises PlaybackError, "hang" waits until
    release() or stop() is called.
    """

    def __init__(self, mode: str = "play"):
        self.mode = mode
        self.started: list[str] = []
        self.stopped: list[str] = []
        self.paused: list[str] = []
        self.resumed: list[str] = []
        self.released: list[str] = []
        self._hanging: dict[str, asyncio.Future] = {}

    async def start(self, resource: AudioResource) -> None:
        self.started.append(resource.id)
        if self.mode == "blocked":
            raise AutoplayBlockedError()
        if self.mode == "error":
            raise PlaybackError("cannot decode", kind=PlaybackError.DECODE)
        if self.mode == "hang":
            future = asyncio.get_running_loop().create_future()
            self._hanging[resource.id] = future
            await future

    def _wake(self, resource_id: str) -> None:
        future = self._hanging.pop(resource_id, None)
        if future is not None and not future.done():
            future.set_result(None)

    def stop(self, resource: AudioResource) -> None:
        self.stopped.append(resource.id)
        self._wake(resource.id)

    def pause(self, resource: AudioResource) -> None:
        self.paused.append(resource.id)

    def resume(self, resource: AudioResource) -> None:
        self.resumed.append(resource.id)

    def release(self, resource: AudioResource) -> None:
        self.released.append(resource.id)
        self._wake(resource.id)


class FakeRemote:
    """Remote provider double; set error to make generate() fail."""

    def __init__(self, configured: bool = True, error: Optional[Exception] = None, delay: float = 0):
        self.configured = configured
        self.error = error
        self.delay = delay
        self.calls: list[tuple[str, object]] = []
        self.resources: list[AudioResource] = []
        self.closed = False

    def is_configured(self) -> bool:
        return self.configured

    async def generate(self, text, preset=None) -> AudioResource:
        self.calls.append((text, preset))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        resource = AudioResource(b"ID3-remote-audio", mime_type="audio/mpeg", source="remote")
        self.resources.append(resource)
        return resource

    def close(self) -> None:
        self.closed = True


class FakeLocal:
    """Local provider double."""

    def __init__(self, error: Optional[Exception] = None, delay: float = 0):
        self.error = error
        self.delay = delay
        self.calls: list[dict] = []
        self.resources: list[AudioResource] = []

    async def synthesize(self, text, rate=1.0, pitch=1.0, volume=1.0, voice_name=None):
        self.calls.append(
            {"text": text, "rate": rate, "pitch": pitch, "volume": volume, "voice_name": voice_name}
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        resource = AudioResource(b"RIFF-local-audio", mime_type="audio/wav", source="local")
        self.resources.append(resource)
        return resource


@pytest.fixture
def events():
    return EventEmitter()


@pytest.fixture
def recorder(events):
    return EventRecorder(events)


@pytest.fixture
def output():
    return FakeOutput()


@pytest.fixture
def remote():
    return FakeRemote()


@pytest.fixture
def failing_remote():
    return FakeRemote(error=GenerationError("Network unreachable", kind=GenerationError.NETWORK))


@pytest.fixture
def local():
    return FakeLocal()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def settings():
    """Settings with a short silence timeout and no real providers."""
    return Settings(
        silence_timeout_ms=50,
        elevenlabs_api_key=None,
        piper_enabled=False,
        vosk_enabled=False,
        playback_start_timeout=1.0,
    )


# Pytest configuration
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        if "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        if "slow" in item.name:
            item.add_marker(pytest.mark.slow)
