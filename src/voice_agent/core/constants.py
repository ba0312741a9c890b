"""
Constants and default values for the Voice Agent.

This module centralizes magic numbers, timeouts, and fixed phrases
to make them easier to configure and maintain.
"""

# Timeout constants (in seconds unless noted)
DEFAULTS = {
    # Endpointing
    "silence_timeout_ms": 1000,
    # Remote synthesis
    "http_connect_timeout": 3.05,
    "http_read_timeout": 30.0,
    "remote_tts_retries": 0,
    # Playback
    "playback_start_timeout": 10.0,
    # Log rotation
    "log_backup_count": 7,
    "log_rotation": "midnight",
}

# Remote provider defaults
ELEVENLABS_BASE_URL = "https://api.elevenlabs.io"
ELEVENLABS_DEFAULT_VOICE_ID = "21m00Tcm4TlvDq8ikWAM"  # Rachel
ELEVENLABS_DEFAULT_MODEL_ID = "eleven_turbo_v2_5"

# Fixed agent phrases
EMPTY_INPUT_RESPONSE = "I didn't catch that. Could you please say something?"
PIPELINE_ERROR_RESPONSE = (
    "I'm sorry, I encountered an issue generating a response. Please try again."
)
PERMISSION_DENIED_MESSAGE = (
    "Microphone access denied. Please allow microphone access and try again."
)
AUTOPLAY_BLOCKED_MESSAGE = "Tap to enable audio."

# Error codes for consistent error handling over the wire
ERROR_CODES = {
    "CAPTURE_ERROR": "CAPTURE_ERROR",
    "GENERATION_ERROR": "GENERATION_ERROR",
    "PLAYBACK_ERROR": "PLAYBACK_ERROR",
    "PIPELINE_ERROR": "PIPELINE_ERROR",
    "VALIDATION_ERROR": "VALIDATION_ERROR",
}
