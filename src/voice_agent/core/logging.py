"""
Logging configuration for the Voice Agent.

This module provides a centralized logging setup with file rotation
and proper formatting.
"""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Optional

from platformdirs import user_log_dir

from .constants import DEFAULTS

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: str = "INFO", log_dir: Optional[Path] = None, filename: str = "voice_agent.log"
) -> logging.Logger:
    """
    Configure logging with rotation and formatting.

    Args:
        level: Root log level name
        log_dir: Directory for the rotating log file (platform log dir by default)
        filename: Log file name

    Returns:
        Logger instance
    """
    log_dir = Path(log_dir) if log_dir else Path(user_log_dir("voice-agent", "voice-agent"))
    log_dir.mkdir(parents=True, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    # File handler with rotation (daily rotation, keep 7 days)
    file_handler = TimedRotatingFileHandler(
        str(log_dir / filename),
        when=DEFAULTS["log_rotation"],
        backupCount=DEFAULTS["log_backup_count"],
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[console_handler, file_handler],
        format=LOG_FORMAT,
        force=True,
    )

    # Keep access logs quiet unless debugging
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return logging.getLogger("voice_agent")
