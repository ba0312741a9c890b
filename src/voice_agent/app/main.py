"""
FastAPI application for the Voice Agent.

This module provides the application factory with the health and preset
routes and the conversation WebSocket endpoint.
"""

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI
from fastapi import WebSocket
from fastapi.middleware.cors import CORSMiddleware

from voice_agent import __version__
from voice_agent.conversation.presets import PresetBook
from voice_agent.core.settings import Settings
from voice_agent.core.settings import get_settings
from voice_agent.voice.elevenlabs_tts_service import ElevenLabsTTSService
from voice_agent.voice.session import build_voice_session

from .core.websockets import ConnectionManager
from .ws.conversation import conversation_websocket

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[Callable] = None,
    voice_catalog: Optional[ElevenLabsTTSService] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        settings: Settings to use (loaded from env/config when omitted)
        session_factory: Callable(settings, output) -> VoiceSession
        voice_catalog: Remote provider used to list voices

    Returns:
        FastAPI: configured application
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            f"Voice Agent {__version__} starting "
            f"(remote voice {'on' if settings.remote_tts_configured else 'off'})"
        )
        yield
        app.state.connection_manager.close_all()
        app.state.voice_catalog.close()
        logger.info("Voice Agent stopped")

    app = FastAPI(
        title="Voice Agent",
        description="Hands-free voice conversation with remote and local speech synthesis",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.connection_manager = ConnectionManager()
    app.state.session_factory = session_factory or build_voice_session
    app.state.voice_catalog = voice_catalog or ElevenLabsTTSService.from_settings(settings)

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "version": __version__,
            "sessions": len(app.state.connection_manager),
            "remote_tts": settings.remote_tts_configured,
            "remote_provider": app.state.voice_catalog.get_service_info(),
            "timestamp": datetime.now().isoformat(),
        }

    @app.get("/api/presets")
    async def list_presets():
        return PresetBook(settings.default_preset).describe()

    @app.get("/api/voices")
    async def list_voices():
        voices = await app.state.voice_catalog.list_voices()
        return {"voices": voices, "configured": app.state.voice_catalog.is_configured()}

    @app.websocket("/ws/conversation/{session_id}")
    async def websocket_conversation(websocket: WebSocket, session_id: str):
        await conversation_websocket(websocket, session_id, app)

    return app
