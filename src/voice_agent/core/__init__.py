"""
Core utilities for the Voice Agent.

This package contains configuration, logging, HTTP, error and event helpers
shared by the conversation and voice packages.
"""

from .constants import DEFAULTS
from .errors import AutoplayBlockedError
from .errors import CaptureError
from .errors import ErrorHandler
from .errors import GenerationError
from .errors import PipelineError
from .errors import PlaybackError
from .errors import VoiceAgentError
from .events import Event
from .events import EventEmitter
from .events import EventType
from .settings import Settings
from .settings import get_settings
from .settings import reload_settings

__all__ = [
    "DEFAULTS",
    "AutoplayBlockedError",
    "CaptureError",
    "ErrorHandler",
    "GenerationError",
    "PipelineError",
    "PlaybackError",
    "VoiceAgentError",
    "Event",
    "EventEmitter",
    "EventType",
    "Settings",
    "get_settings",
    "reload_settings",
]
