"""Core functionality for the Voice Agent service."""

from voice_agent.app.core.websockets import ClientChannel
from voice_agent.app.core.websockets import ConnectionManager
from voice_agent.app.core.websockets import ws_error
from voice_agent.app.core.websockets import ws_send_bytes_safe
from voice_agent.app.core.websockets import ws_send_json_safe

__all__ = [
    "ClientChannel",
    "ConnectionManager",
    "ws_error",
    "ws_send_bytes_safe",
    "ws_send_json_safe",
]
