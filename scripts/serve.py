#!/usr/bin/env python
"""Run the APCMS API under uvicorn.

Usage:
    python scripts/serve.py [--reload]
"""

import argparse

import uvicorn

from app.core.config import get_settings


def main() -> None:
    parser = argparse.ArgumentParser(description="Serve the APCMS API")
    parser.add_argument("--reload", action="store_true", help="reload on code changes")
    args = parser.parse_args()

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
        access_log=False,
    )


if __name__ == "__main__":
    main()
