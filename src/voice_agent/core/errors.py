"""
Error taxonomy and user-friendly error message generation.

Capture, generation, playback and pipeline failures each have their own
exception type. ErrorHandler turns any of them into a message and a
recovery suggestion that can be shown to the user.
"""

import logging
import traceback
from enum import Enum
from typing import Any
from typing import Optional

from .constants import AUTOPLAY_BLOCKED_MESSAGE
from .constants import ERROR_CODES
from .constants import PERMISSION_DENIED_MESSAGE

# Configure logging
logger = logging.getLogger(__name__)


class VoiceAgentError(Exception):
    """Base class for all voice agent errors."""

    category = "unknown"

    def __init__(self, message: str, kind: str = "unknown"):
        super().__init__(message)
        self.message = message
        self.kind = kind

    def to_dict(self) -> dict[str, Any]:
        return {"category": self.category, "kind": self.kind, "message": self.message}


class CaptureError(VoiceAgentError):
    """Speech capture failed (unsupported, permission denied, engine fault)."""

    category = "capture"

    UNSUPPORTED = "unsupported"
    PERMISSION_DENIED = "permission_denied"
    ENGINE_FAULT = "engine_fault"

    # Reason codes reported by browser recognition engines
    _BROWSER_REASONS = {
        "not-allowed": PERMISSION_DENIED,
        "service-not-allowed": PERMISSION_DENIED,
        "permission_denied": PERMISSION_DENIED,
        "language-not-supported": UNSUPPORTED,
        "unsupported": UNSUPPORTED,
    }

    @classmethod
    def from_reason(cls, reason: str) -> "CaptureError":
        kind = cls._BROWSER_REASONS.get((reason or "").strip().lower(), cls.ENGINE_FAULT)
        if kind == cls.PERMISSION_DENIED:
            return cls(PERMISSION_DENIED_MESSAGE, kind=kind)
        return cls(f"Speech recognition error: {reason or 'unknown'}", kind=kind)

    @property
    def is_permission_denied(self) -> bool:
        return self.kind == self.PERMISSION_DENIED


class GenerationError(VoiceAgentError):
    """Speech generation failed (network, HTTP status, auth, quota, configuration)."""

    category = "generation"

    NETWORK = "network"
    HTTP = "http"
    AUTH = "auth"
    QUOTA = "quota"
    UNCONFIGURED = "unconfigured"
    LOCAL = "local"

    def __init__(self, message: str, kind: str = HTTP, status: Optional[int] = None):
        super().__init__(message, kind=kind)
        self.status = status

    @classmethod
    def from_status(cls, status: int, message: str) -> "GenerationError":
        if status in (401, 403):
            kind = cls.AUTH
        elif status == 429:
            kind = cls.QUOTA
        else:
            kind = cls.HTTP
        return cls(f"TTS request failed: {status} {message}".strip(), kind=kind, status=status)

    @property
    def retriable(self) -> bool:
        return self.kind != self.UNCONFIGURED

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["status"] = self.status
        return data


class PlaybackError(VoiceAgentError):
    """Audio could not be played."""

    category = "playback"

    DECODE = "decode"
    AUTOPLAY_BLOCKED = "autoplay_blocked"
    TIMEOUT = "timeout"
    OUTPUT = "output"


class AutoplayBlockedError(PlaybackError):
    """The platform refused to start audio without a user gesture."""

    def __init__(self, message: str = AUTOPLAY_BLOCKED_MESSAGE):
        super().__init__(message, kind=PlaybackError.AUTOPLAY_BLOCKED)


class PipelineError(VoiceAgentError):
    """Unexpected failure inside classification or response generation."""

    category = "pipeline"

    def __init__(self, message: str, turn_id: Optional[str] = None):
        super().__init__(message, kind="pipeline")
        self.turn_id = turn_id


class ErrorCategory(Enum):
    """Error category enum."""

    CAPTURE = "capture"
    GENERATION = "generation"
    PLAYBACK = "playback"
    PIPELINE = "pipeline"
    NETWORK = "network"
    UNKNOWN = "unknown"


class ErrorHandler:
    """
    Error categorization and user-friendly error message generation.
    """

    def __init__(self):
        self.user_messages = {
            ErrorCategory.CAPTURE: "There was a problem listening to your microphone.",
            ErrorCategory.GENERATION: "The premium voice is unavailable, using the local voice.",
            ErrorCategory.PLAYBACK: "The response could not be played.",
            ErrorCategory.PIPELINE: "There was a problem preparing a response.",
            ErrorCategory.NETWORK: "There was a network connectivity issue.",
            ErrorCategory.UNKNOWN: "An unexpected error occurred.",
        }

        self.recovery_suggestions = {
            ErrorCategory.CAPTURE: "Check that a microphone is connected and try again.",
            ErrorCategory.GENERATION: "Check the ElevenLabs API key and quota.",
            ErrorCategory.PLAYBACK: "Try playing the response again.",
            ErrorCategory.PIPELINE: "Try saying that again.",
            ErrorCategory.NETWORK: "Check your internet connection.",
            ErrorCategory.UNKNOWN: "Try again in a few moments.",
        }

        self.error_codes = {
            ErrorCategory.CAPTURE: ERROR_CODES["CAPTURE_ERROR"],
            ErrorCategory.GENERATION: ERROR_CODES["GENERATION_ERROR"],
            ErrorCategory.PLAYBACK: ERROR_CODES["PLAYBACK_ERROR"],
            ErrorCategory.PIPELINE: ERROR_CODES["PIPELINE_ERROR"],
        }

    def categorize_error(self, error: Exception) -> ErrorCategory:
        """
        Categorize an error based on its type.

        Args:
            error: The exception to categorize

        Returns:
            ErrorCategory: The error category
        """
        if isinstance(error, VoiceAgentError):
            try:
                return ErrorCategory(error.category)
            except ValueError:
                return ErrorCategory.UNKNOWN
        if isinstance(error, ConnectionError | TimeoutError):
            return ErrorCategory.NETWORK
        return ErrorCategory.UNKNOWN

    def get_user_message(self, error: Exception) -> str:
        """
        Get a user-friendly error message for an exception.

        Permission and autoplay problems carry their own actionable text.
        """
        if isinstance(error, CaptureError) and error.is_permission_denied:
            return error.message
        if isinstance(error, AutoplayBlockedError):
            return error.message
        return self.user_messages[self.categorize_error(error)]

    def get_recovery_suggestion(self, error: Exception) -> str:
        category = self.categorize_error(error)

        if isinstance(error, CaptureError) and error.is_permission_denied:
            return "Allow microphone access in your browser settings, then start listening again."
        if isinstance(error, GenerationError) and error.kind == GenerationError.QUOTA:
            return "The ElevenLabs quota is exhausted; the local voice will be used."
        if isinstance(error, AutoplayBlockedError):
            return "Tap anywhere on the page to allow audio playback."

        return self.recovery_suggestions[category]

    def format_error_response(self, error: Exception, include_details: bool = False) -> dict[str, Any]:
        """
        Format an error payload for WebSocket clients.

        Args:
            error: The exception
            include_details: Whether to include technical details

        Returns:
            Dict[str, Any]: Formatted error response
        """
        category = self.categorize_error(error)

        response: dict[str, Any] = {
            "status": "error",
            "message": self.get_user_message(error),
            "suggestion": self.get_recovery_suggestion(error),
            "category": category.value,
        }

        if category in self.error_codes:
            response["code"] = self.error_codes[category]

        if isinstance(error, VoiceAgentError):
            response["kind"] = error.kind
            response["persistent"] = isinstance(error, CaptureError) and error.is_permission_denied

        if include_details:
            response["details"] = {"error_type": type(error).__name__, "error_message": str(error)}

        return response

    def log_error(
        self, error: Exception, context: dict[str, Any] | None = None, level: int = logging.ERROR
    ) -> None:
        """
        Log an error with context information.
        """
        category = self.categorize_error(error)

        message = f"Error [{category.value}]: {type(error).__name__}: {str(error)}"
        if context:
            context_str = ", ".join(f"{k}={v}" for k, v in context.items())
            message += f" (Context: {context_str})"

        logger.log(level, message)
        logger.debug(f"Traceback for {message}:\n{traceback.format_exc()}")


# Global error handler instance
error_handler = ErrorHandler()
