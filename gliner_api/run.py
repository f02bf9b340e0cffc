#!/usr/bin/env python
"""Entry point for running the gliner-api application."""

import uvicorn

from gliner_api.app.config import settings


def main() -> None:
    """Run the application using uvicorn server."""
    uvicorn.run(
        "gliner_api.app.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.SERVER_RELOAD,
    )


if __name__ == "__main__":
    main()
