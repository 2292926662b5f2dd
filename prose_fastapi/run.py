#!/usr/bin/env python
"""Entry point for running the prose-fastapi application."""

import uvicorn

from prose_fastapi.app.config import get_settings


def main() -> None:
    """Run the application using uvicorn server.

    uvicorn exits with a non-zero status when the port cannot be bound or
    application startup fails.
    """
    settings = get_settings()
    uvicorn.run(
        "prose_fastapi.app.main:create_app",
        factory=True,
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
