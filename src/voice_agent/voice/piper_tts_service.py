"""
Piper Text-to-Speech Service for the Voice Agent.

This module provides the PiperTTSService class that handles offline speech
synthesis using the Piper TTS library. It is the local fallback voice.
"""

from typing import Optional
import asyncio
import io
import logging
import wave
from pathlib import Path

try:
    from piper import PiperVoice
    from piper import SynthesisConfig

    piper = True  # Flag to indicate piper is available
except ImportError:
    piper = None
    PiperVoice = None
    SynthesisConfig = None

from voice_agent.core.errors import GenerationError

from .audio import AudioResource


class PiperTTSService:
    """
    Text-to-speech service using Piper for offline synthesis.

    Produces complete WAV resources; playback, pause/resume and the start/end
    notifications are handled by the PlaybackManager like any other audio.
    """

    def __init__(self, config: dict = None):
        """
        Initialize PiperTTSService with configuration.

        Args:
            config: Configuration dictionary (voice_name, voice_path, sample_rate)
        """
        self.config = config or {}
        self.logger = logging.getLogger(__name__)

        # Check if Piper is available
        if piper is None or PiperVoice is None:
            raise ImportError("Piper TTS library not installed. Run: pip install piper-tts")

        self.voice_name = self.config.get("voice_name", "en_US-lessac-medium")
        self.sample_rate = self.config.get("sample_rate", 22050)

        # Loaded voices by name; the configured voice is loaded eagerly
        self.voices: dict[str, PiperVoice] = {}
        self.voice_path = self._get_voice_path(self.voice_name, self.config.get("voice_path"))
        self.voice = self._load_voice(self.voice_name, self.voice_path)

    @classmethod
    def from_settings(cls, settings) -> "PiperTTSService":
        config = {"voice_name": settings.piper_voice_name}
        if settings.piper_voice_path:
            config["voice_path"] = str(settings.piper_voice_path)
        return cls(config)

    def _get_voice_path(self, voice_name: str, configured: Optional[str] = None) -> Path:
        """Get the path to a Piper voice model."""
        # Try configured path first
        if configured:
            voice_path = Path(configured)
            if voice_path.exists():
                return voice_path

        project_root = Path.cwd()
        default_paths = [
            project_root / "models" / "piper" / voice_name / f"{voice_name}.onnx",
            project_root / "models" / "piper" / f"{voice_name}.onnx",
            Path.home() / ".cache" / "piper" / voice_name / f"{voice_name}.onnx",
        ]

        for path in default_paths:
            if path.exists():
                self.logger.info(f"Found Piper voice at: {path}")
                return path

        # Voice not found
        raise FileNotFoundError(
            f"Piper voice model not found. Download {voice_name}.onnx into models/piper/\n"
            f"Searched paths: {[str(p) for p in default_paths]}"
        )

    def _load_voice(self, voice_name: str, voice_path: Path) -> "PiperVoice":
        """Load a Piper voice model."""
        try:
            self.logger.info(f"Loading Piper voice from: {voice_path}")
            voice = PiperVoice.load(str(voice_path))
        except Exception as e:
            self.logger.error(f"Failed to load Piper voice: {str(e)}")
            raise

        if hasattr(voice, "config") and hasattr(voice.config, "sample_rate"):
            self.sample_rate = voice.config.sample_rate

        self.voices[voice_name] = voice
        self.logger.info(f"Piper voice {voice_name} loaded (sample_rate: {self.sample_rate})")
        return voice

    def _resolve_voice(self, voice_name: Optional[str]) -> "PiperVoice":
        if not voice_name or voice_name == self.voice_name:
            return self.voice
        if voice_name in self.voices:
            return self.voices[voice_name]
        try:
            return self._load_voice(voice_name, self._get_voice_path(voice_name))
        except FileNotFoundError:
            self.logger.warning(f"Piper voice {voice_name} not installed, using {self.voice_name}")
            return self.voice

    async def synthesize(
        self,
        text: str,
        rate: float = 1.0,
        pitch: float = 1.0,
        volume: float = 1.0,
        voice_name: Optional[str] = None,
    ) -> AudioResource:
        """
        Synthesize text to a WAV audio resource.

        Args:
            text: Text to synthesize
            rate: Speaking rate multiplier (2.0 = twice as fast)
            pitch: Requested pitch; Piper voices have a fixed pitch, so only logged
            volume: Output volume 0..1
            voice_name: Piper voice to use instead of the configured one

        Returns:
            AudioResource: audio/wav resource

        Raises:
            GenerationError: empty text or synthesis failure
        """
        if not text or not text.strip():
            raise GenerationError("Empty text provided for synthesis", kind=GenerationError.LOCAL)

        if pitch != 1.0:
            self.logger.debug(f"Piper ignores pitch {pitch}")

        voice = self._resolve_voice(voice_name)
        self.logger.debug(f"Synthesizing text: '{text[:50]}{'...' if len(text) > 50 else ''}'")

        # Use asyncio to run synthesis in thread pool to avoid blocking
        loop = asyncio.get_running_loop()
        try:
            audio = await loop.run_in_executor(None, self._synthesize_wav, voice, text, rate, volume)
        except Exception as e:
            self.logger.error(f"Failed to synthesize text: {str(e)}")
            raise GenerationError(
                f"Piper synthesis failed: {str(e)}", kind=GenerationError.LOCAL
            ) from e

        return AudioResource(audio, mime_type="audio/wav", source="piper")

    def _synthesize_wav(self, voice, text: str, rate: float, volume: float) -> bytes:
        """
        Synthesize text to WAV bytes (blocking operation).

        Returns:
            bytes: mono 16-bit WAV file
        """
        syn_config = SynthesisConfig(
            length_scale=1.0 / max(0.1, min(3.0, rate)),
            volume=max(0.0, min(1.0, volume)),
        )

        sample_rate = self.sample_rate
        audio_chunks = []
        for audio_chunk in voice.synthesize(text, syn_config=syn_config):
            sample_rate = getattr(audio_chunk, "sample_rate", sample_rate)
            # audio_chunk.audio_int16_bytes contains the raw PCM data
            audio_chunks.append(audio_chunk.audio_int16_bytes)

        if not audio_chunks:
            raise RuntimeError("Piper produced no audio")

        buffer = io.BytesIO()
        with wave.open(buffer, "wb") as wav_file:
            wav_file.setnchannels(1)  # Mono
            wav_file.setsampwidth(2)  # 16-bit
            wav_file.setframerate(sample_rate)
            wav_file.writeframes(b"".join(audio_chunks))
        return buffer.getvalue()
