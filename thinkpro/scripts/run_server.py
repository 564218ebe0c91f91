#!/usr/bin/env python3
"""
Backend server runner script.

This script starts the FastAPI server with the appropriate configuration.
"""

import os
import sys

import uvicorn

from thinkpro.common.logger import get_logger

logger = get_logger(__name__)


def main():
    """Run the backend server."""
    try:
        host = os.getenv("HOST", "0.0.0.0")
        port = int(os.getenv("PORT", 8000))
        reload_enabled = os.getenv("RELOAD", "false").lower() == "true"

        logger.info(f"Starting server on {host}:{port} (reload: {reload_enabled})")

        uvicorn.run(
            "thinkpro.main:app",
            host=host,
            port=port,
            reload=reload_enabled,
            log_level="info"
        )

    except Exception as e:
        logger.error(f"Error starting server: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
