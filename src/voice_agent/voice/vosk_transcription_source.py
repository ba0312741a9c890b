"""
Vosk Transcription Source for the Voice Agent.

This module provides the VoskTranscriptionSource class that recognizes raw
16 kHz PCM offline with Vosk and feeds the hypotheses to an endpoint
detector, in place of a browser recognition engine.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Dict
from typing import Optional

try:
    import vosk
except ImportError:
    vosk = None

from voice_agent.core.errors import CaptureError

from .endpoint_detector import EndpointDetector
from .transcription import TranscriptionOptions


class VoskTranscriptionSource:
    """
    Offline transcription source backed by a Vosk recognizer.

    Partial results become interim hypotheses and Vosk's own endpoint results
    become final ones; turn boundaries are still decided by the detector's
    silence timer.
    """

    def __init__(self, detector: EndpointDetector, config: Dict = None):
        """
        Initialize VoskTranscriptionSource with configuration.

        Args:
            detector: Endpoint detector receiving the hypotheses
            config: Configuration dictionary (model_path, sample_rate)
        """
        self.detector = detector
        self.config = config or {}
        self.logger = logging.getLogger(__name__)

        # Check if Vosk is available
        if vosk is None:
            raise ImportError("Vosk library not installed. Run: pip install vosk")

        # Vosk works best at 16kHz
        self.sample_rate = self.config.get("sample_rate", 16000)
        self.model_path = self._get_model_path()
        self.model: Optional["vosk.Model"] = None
        self.recognizer: Optional["vosk.KaldiRecognizer"] = None
        self.options = TranscriptionOptions()
        self._last_partial = ""

        self._load_model()

    @classmethod
    def from_settings(cls, detector: EndpointDetector, settings) -> "VoskTranscriptionSource":
        config = {}
        if settings.vosk_model_path:
            config["model_path"] = str(settings.vosk_model_path)
        return cls(detector, config)

    def _get_model_path(self) -> Path:
        """Get the path to the Vosk model."""
        # Try configured path first
        if "model_path" in self.config:
            model_path = Path(self.config["model_path"])
            if model_path.exists():
                return model_path

        project_root = Path.cwd()
        default_paths = [
            project_root / "models" / "vosk" / "vosk-model-small-en",
            project_root / "models" / "vosk" / "vosk-model-en",
            Path.home() / ".cache" / "vosk" / "vosk-model-small-en-us-0.15",
        ]

        for path in default_paths:
            if path.exists() and path.is_dir():
                self.logger.info(f"Found Vosk model at: {path}")
                return path

        # Model not found
        raise FileNotFoundError(
            f"Vosk model not found. Download a model into models/vosk/\n"
            f"Searched paths: {[str(p) for p in default_paths]}"
        )

    def _load_model(self):
        """Load the Vosk model."""
        try:
            self.logger.info(f"Loading Vosk model from: {self.model_path}")

            # Set log level to reduce Vosk output
            vosk.SetLogLevel(-1)
            self.model = vosk.Model(str(self.model_path))

            self.logger.info("Vosk model loaded successfully")

        except Exception as e:
            self.logger.error(f"Failed to load Vosk model: {str(e)}")
            raise

    @property
    def running(self) -> bool:
        return self.recognizer is not None

    async def start(self, options: Optional[TranscriptionOptions] = None) -> None:
        """
        Start recognizing.

        Raises:
            CaptureError: the detector is blocked by a denied permission
        """
        self.options = options or self.options
        if not self.options.locale.lower().startswith("en"):
            self.logger.warning(f"Vosk model is English-only, locale {self.options.locale} ignored")

        self.detector.start()
        if self.recognizer is None:
            recognizer = vosk.KaldiRecognizer(self.model, self.sample_rate)
            recognizer.SetMaxAlternatives(1)  # Only return best result
            recognizer.SetWords(True)
            self.recognizer = recognizer
            self.logger.info("Vosk recognizer started")
        self._last_partial = ""

    def _decode(self, recognizer, audio_data: bytes) -> tuple[bool, str]:
        """
        Run the recognizer over one chunk (blocking operation).

        Returns:
            tuple: (is_final, text); text is empty when there is nothing new
        """
        if recognizer.AcceptWaveform(audio_data):
            result = json.loads(recognizer.Result())
            return True, (result.get("text") or "").strip()

        if not self.options.interim_results:
            return False, ""
        return False, (json.loads(recognizer.PartialResult()).get("partial") or "").strip()

    async def process_audio(self, audio_data: bytes) -> Optional[str]:
        """
        Feed PCM audio (16-bit mono, 16 kHz) to the recognizer.

        Returns:
            str: the hypothesis text forwarded to the detector, if any
        """
        recognizer = self.recognizer
        if recognizer is None:
            self.logger.debug("Audio received while Vosk source is stopped")
            return None

        # Decoding blocks, so it runs in the default executor
        loop = asyncio.get_running_loop()
        try:
            is_final, text = await loop.run_in_executor(None, self._decode, recognizer, audio_data)
        except Exception as e:
            self.logger.error(f"Vosk recognition failed: {str(e)}")
            self.recognizer = None
            error: CaptureError = self.detector.on_source_error(CaptureError.ENGINE_FAULT)
            raise error from e

        if recognizer is not self.recognizer:
            self.logger.debug("Vosk source stopped while decoding, result dropped")
            return None

        if is_final:
            self._last_partial = ""
            if text:
                self.detector.on_hypothesis(text, is_final=True)
                if not self.options.continuous:
                    # Single-utterance mode ends on the first final result
                    self.detector.stop_manually()
                    await self.stop()
            return text or None

        # Only forward partials that changed
        if text and text != self._last_partial:
            self._last_partial = text
            self.detector.on_hypothesis(text, is_final=False)
            return text
        return None

    async def stop(self) -> None:
        """Stop recognizing and tell the detector the source ended."""
        if self.recognizer is None:
            return
        self.recognizer = None
        self._last_partial = ""
        self.detector.on_source_ended()
        self.logger.info("Vosk recognizer stopped")

    def close(self) -> None:
        """Drop the recognizer without notifying the detector (session teardown)."""
        self.recognizer = None
        self._last_partial = ""
