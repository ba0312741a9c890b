"""Main application entry point for the package."""

import argparse
import sys

import uvicorn

from voice_agent.core.logging import setup_logging
from voice_agent.core.settings import get_settings


def main():
    """Run the Voice Agent server."""
    settings = get_settings()

    parser = argparse.ArgumentParser(description="Run the Voice Agent")
    parser.add_argument("--host", default=settings.host, help="Host to bind")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to run on")
    parser.add_argument("--log-level", default=settings.log_level, help="Log level")
    parser.add_argument("--log-dir", default=settings.log_dir, help="Log directory")
    args = parser.parse_args()

    logger = setup_logging(args.log_level, args.log_dir)
    logger.info(f"Starting Voice Agent on {args.host}:{args.port}")

    try:
        uvicorn.run(
            "voice_agent.app.main:create_app",
            factory=True,
            host=args.host,
            port=args.port,
            log_level=args.log_level.lower(),
        )
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
