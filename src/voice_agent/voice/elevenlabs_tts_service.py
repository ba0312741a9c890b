"""
ElevenLabs Text-to-Speech Service for the Voice Agent.

This module provides the ElevenLabsTTSService class that requests speech
from the ElevenLabs HTTP API. It is the primary, remote voice; failures are
reported as GenerationError and never retried here.
"""

import asyncio
import logging
from typing import Optional

import requests

from voice_agent.conversation.models import ResponsePreset
from voice_agent.core.constants import DEFAULTS
from voice_agent.core.constants import ELEVENLABS_BASE_URL
from voice_agent.core.constants import ELEVENLABS_DEFAULT_MODEL_ID
from voice_agent.core.constants import ELEVENLABS_DEFAULT_VOICE_ID
from voice_agent.core.errors import GenerationError
from voice_agent.core.http import DEFAULT_TIMEOUT
from voice_agent.core.http import http_session

from .audio import AudioResource

PREDEFINED_VOICES = [
    {
        "voice_id": "21m00Tcm4TlvDq8ikWAM",
        "name": "Rachel",
        "description": "Matter-of-fact, personable woman. Great for conversational use cases.",
        "labels": {"accent": "american", "gender": "female", "use_case": "conversational"},
    },
    {
        "voice_id": "EXAVITQu4vr4xnSDxMaL",
        "name": "Sarah",
        "description": "Young adult woman with a confident and warm, mature quality.",
        "labels": {"accent": "american", "gender": "female", "use_case": "entertainment_tv"},
    },
    {
        "voice_id": "nPczCjzI2devNBz1zQrb",
        "name": "Brian",
        "description": "Middle-aged man with a resonant and comforting tone.",
        "labels": {"accent": "american", "gender": "male", "use_case": "social_media"},
    },
    {
        "voice_id": "Xb7hH8MSUJpSbSDYk0k2",
        "name": "Alice",
        "description": "Clear and engaging, friendly woman with a British accent.",
        "labels": {"accent": "british", "gender": "female", "use_case": "advertisement"},
    },
    {
        "voice_id": "SAz9YHcvj6GT2YYXdXww",
        "name": "River",
        "description": "A relaxed, neutral voice ready for narrations or conversational projects.",
        "labels": {"accent": "american", "gender": "neutral", "use_case": "conversational"},
    },
    {
        "voice_id": "cjVigY5qzO86Huf0OWal",
        "name": "Eric",
        "description": "A smooth tenor pitch from a man in his 40s - perfect for agentic use cases.",
        "labels": {"accent": "american", "gender": "male", "use_case": "conversational"},
    },
]


class ElevenLabsTTSService:
    """
    Remote text-to-speech using the ElevenLabs REST API.

    The blocking requests session runs in the default executor so the event
    loop keeps serving transcription and playback events meanwhile.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = ELEVENLABS_BASE_URL,
        voice_id: str = ELEVENLABS_DEFAULT_VOICE_ID,
        model_id: str = ELEVENLABS_DEFAULT_MODEL_ID,
        timeout: tuple[float, float] = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.api_key = api_key or None
        self.base_url = base_url.rstrip("/")
        self.voice_id = voice_id
        self.model_id = model_id
        self.session = session or http_session(
            timeout=timeout, retries=DEFAULTS["remote_tts_retries"]
        )
        self.voices: list[dict] = []

        # Performance metrics
        self.metrics = {"requests": 0, "failures": 0, "bytes": 0}

    @classmethod
    def from_settings(cls, settings) -> "ElevenLabsTTSService":
        return cls(
            api_key=settings.elevenlabs_api_key,
            base_url=settings.elevenlabs_base_url,
            voice_id=settings.elevenlabs_voice_id,
            model_id=settings.elevenlabs_model_id,
            timeout=(settings.http_connect_timeout, settings.http_read_timeout),
        )

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self, accept: str = "application/json") -> dict[str, str]:
        return {
            "xi-api-key": self.api_key or "",
            "Content-Type": "application/json",
            "Accept": accept,
        }

    def build_request(self, text: str, preset: Optional[ResponsePreset] = None) -> tuple[str, dict]:
        """
        Build the URL and JSON body for a synthesis request.

        Args:
            text: Text to synthesize
            preset: Voice parameters (defaults used when absent)

        Returns:
            tuple: (url, payload)
        """
        voice_id = (preset.provider_voice_id if preset else None) or self.voice_id
        payload = {
            "text": text,
            "model_id": (preset.provider_model_id if preset else None) or self.model_id,
            "voice_settings": {
                "stability": preset.stability if preset else 0.5,
                "similarity_boost": preset.similarity_boost if preset else 0.8,
                "style": preset.style if preset else 0.0,
                "use_speaker_boost": preset.speaker_boost if preset else True,
            },
        }
        return f"{self.base_url}/v1/text-to-speech/{voice_id}", payload

    def _post_speech(self, url: str, payload: dict) -> bytes:
        """Blocking request; runs in an executor."""
        try:
            response = self.session.post(url, json=payload, headers=self._headers("audio/mpeg"))
        except requests.RequestException as e:
            raise GenerationError(
                f"ElevenLabs request failed: {str(e)}", kind=GenerationError.NETWORK
            ) from e

        if not 200 <= response.status_code < 300:
            raise GenerationError.from_status(response.status_code, response.reason or "")

        return response.content

    async def generate(self, text: str, preset: Optional[ResponsePreset] = None) -> AudioResource:
        """
        Generate speech audio for text.

        Raises:
            GenerationError: missing API key, network failure or non-2xx response
        """
        if not self.is_configured():
            raise GenerationError(
                "ElevenLabs API key not provided", kind=GenerationError.UNCONFIGURED
            )

        url, payload = self.build_request(text, preset)
        self.metrics["requests"] += 1
        self.logger.debug(f"Requesting ElevenLabs speech: '{text[:50]}'")

        loop = asyncio.get_running_loop()
        try:
            audio = await loop.run_in_executor(None, self._post_speech, url, payload)
        except GenerationError as e:
            self.metrics["failures"] += 1
            self.logger.warning(f"ElevenLabs synthesis failed: {e.message}")
            raise

        if not audio:
            self.metrics["failures"] += 1
            raise GenerationError("ElevenLabs returned no audio", kind=GenerationError.HTTP)

        self.metrics["bytes"] += len(audio)
        return AudioResource(audio, mime_type="audio/mpeg", source="elevenlabs")

    def _get_voices(self) -> list[dict]:
        response = self.session.get(f"{self.base_url}/v1/voices", headers=self._headers())
        if response.status_code != 200:
            raise GenerationError.from_status(response.status_code, response.reason or "")
        return response.json().get("voices", [])

    async def list_voices(self) -> list[dict]:
        """
        List the voices available to this API key.

        Keys without the voices_read permission are common, so any failure
        falls back to the predefined premade voices.
        """
        if self.voices:
            return self.voices
        if not self.is_configured():
            return list(PREDEFINED_VOICES)

        loop = asyncio.get_running_loop()
        try:
            self.voices = await loop.run_in_executor(None, self._get_voices)
        except (requests.RequestException, GenerationError, ValueError) as e:
            self.logger.warning(f"Cannot load voices, using predefined voices: {str(e)}")
            self.voices = list(PREDEFINED_VOICES)
        return self.voices

    def get_service_info(self) -> dict:
        return {
            "service": "ElevenLabsTTSService",
            "configured": self.is_configured(),
            "base_url": self.base_url,
            "voice_id": self.voice_id,
            "model_id": self.model_id,
            "metrics": dict(self.metrics),
        }

    def close(self) -> None:
        self.session.close()
