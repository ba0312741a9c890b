"""
Voice package: endpointing, turn control, speech generation and playback.
"""

from .audio import AudioOutput
from .audio import AudioResource
from .endpoint_detector import DetectorState
from .endpoint_detector import EndpointDetector
from .playback_manager import PlaybackManager
from .playback_manager import PlaybackState
from .session import VoiceSession
from .session import build_voice_session
from .transcription import TranscriptionOptions
from .tts_orchestrator import OrchestratorState
from .tts_orchestrator import TTSOrchestrator
from .turn_controller import ProcessingLock
from .turn_controller import TurnController

__all__ = [
    "AudioOutput",
    "AudioResource",
    "DetectorState",
    "EndpointDetector",
    "PlaybackManager",
    "PlaybackState",
    "VoiceSession",
    "build_voice_session",
    "TranscriptionOptions",
    "OrchestratorState",
    "TTSOrchestrator",
    "ProcessingLock",
    "TurnController",
]
