"""
Settings management for the Voice Agent
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field
from pydantic import field_validator

from .constants import DEFAULTS
from .constants import ELEVENLABS_BASE_URL
from .constants import ELEVENLABS_DEFAULT_MODEL_ID
from .constants import ELEVENLABS_DEFAULT_VOICE_ID

logger = logging.getLogger(__name__)

ENV_PREFIX = "VA_"


class Settings(BaseModel):
    """Application settings with environment variable support."""

    model_config = ConfigDict(extra="ignore")

    # Server settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Root log level")
    log_dir: Optional[Path] = Field(default=None, description="Log directory")

    # Capture / endpointing
    silence_timeout_ms: int = Field(
        default=DEFAULTS["silence_timeout_ms"], description="Quiet period that ends a turn"
    )
    locale: str = Field(default="en-US", description="Recognition locale")
    continuous: bool = Field(default=True, description="Continuous recognition")
    interim_results: bool = Field(default=True, description="Emit interim hypotheses")
    vosk_enabled: bool = Field(default=False, description="Recognize raw PCM with Vosk")
    vosk_model_path: Optional[Path] = Field(default=None, description="Vosk model directory")

    # Response
    auto_speak: bool = Field(default=True, description="Speak agent responses automatically")
    default_preset: Optional[str] = Field(
        default=None, description="Preset pinned at startup (None = follow response style)"
    )

    # Remote synthesis (ElevenLabs)
    elevenlabs_api_key: Optional[str] = Field(default=None, description="ElevenLabs API key")
    elevenlabs_base_url: str = Field(default=ELEVENLABS_BASE_URL, description="API base URL")
    elevenlabs_voice_id: str = Field(default=ELEVENLABS_DEFAULT_VOICE_ID, description="Voice")
    elevenlabs_model_id: str = Field(default=ELEVENLABS_DEFAULT_MODEL_ID, description="Model")
    http_connect_timeout: float = Field(default=DEFAULTS["http_connect_timeout"])
    http_read_timeout: float = Field(default=DEFAULTS["http_read_timeout"])

    # Local synthesis (Piper)
    piper_enabled: bool = Field(default=True, description="Enable Piper fallback voice")
    piper_voice_name: str = Field(default="en_US-lessac-medium", description="Piper voice")
    piper_voice_path: Optional[Path] = Field(default=None, description="Piper .onnx path")

    # Playback
    playback_start_timeout: float = Field(
        default=DEFAULTS["playback_start_timeout"],
        description="Seconds the client has to confirm playback started",
    )

    @field_validator("elevenlabs_api_key")
    @classmethod
    def _blank_key_is_none(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @field_validator("silence_timeout_ms")
    @classmethod
    def _positive_timeout(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("silence_timeout_ms must be positive")
        return value

    @property
    def silence_timeout(self) -> float:
        """Quiet period in seconds."""
        return self.silence_timeout_ms / 1000.0

    @property
    def remote_tts_configured(self) -> bool:
        return bool(self.elevenlabs_api_key)

    @classmethod
    def from_env(
        cls, env_key: str = "VA_CONFIG", default_path: str = "configs/base.yaml"
    ) -> "Settings":
        """Load settings from environment and config file."""
        load_dotenv()
        config_path = Path(os.getenv(env_key, default_path))

        # Start with defaults
        data: dict[str, Any] = {}

        # Load from config file if it exists
        if config_path.exists():
            try:
                with open(config_path, encoding="utf-8") as f:
                    file_data = yaml.safe_load(f) or {}
                data.update(file_data)
                logger.info(f"Loaded config from {config_path}")
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load config from {config_path}: {e}")
        else:
            logger.info(f"Config file {config_path} not found, using defaults")

        # The provider's conventional variable name is honoured too
        if os.getenv("ELEVENLABS_API_KEY"):
            data["elevenlabs_api_key"] = os.environ["ELEVENLABS_API_KEY"]

        # Environment variables override config file
        env_overrides = {}
        for key, value in os.environ.items():
            if key.startswith(ENV_PREFIX) and key != env_key:
                config_key = key[len(ENV_PREFIX) :].lower()
                env_overrides[config_key] = value

        if env_overrides:
            data.update(env_overrides)
            logger.info(f"Applied environment overrides: {sorted(env_overrides)}")

        return cls(**data)

    def to_dict(self) -> dict[str, Any]:
        """Convert settings to dictionary, without secrets."""
        data = self.model_dump(mode="json")
        if data.get("elevenlabs_api_key"):
            data["elevenlabs_api_key"] = "***"
        return data


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reload_settings() -> Settings:
    """Reload settings from environment and config."""
    global _settings
    _settings = Settings.from_env()
    return _settings
