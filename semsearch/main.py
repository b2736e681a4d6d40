"""
Application entry point.

This module serves as the main entry point for running the
semantic search API server using uvicorn.
"""

from uvicorn import run

from semsearch.core.config import settings


def main():
    run(
        "semsearch.api.app:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD,
    )


if __name__ == "__main__":
    main()
