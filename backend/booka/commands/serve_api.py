# backend/booka/commands/serve_api.py
"""
Run the Booka HTTP API under uvicorn.

Usage:
    booka-api [--host HOST] [--port PORT] [--reload]

``--reload`` is for local development only.
"""

import argparse
import logging
import sys
from typing import List, Optional

import uvicorn

from booka.core.config import settings

logger = logging.getLogger(__name__)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Serve the Booka booking API")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Restart on source changes")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    logger.info(f"Starting API server (environment={settings.environment}) on {args.host}:{args.port}")

    uvicorn.run(
        "booka.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        reload_delay=0.5,  # Small delay to batch rapid file changes
        log_level="info",
        timeout_graceful_shutdown=5,  # Force shutdown after 5s instead of hanging
    )
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
