"""Entrypoint: python -m event_mailer"""
from __future__ import annotations

import uvicorn

from event_mailer.config import settings
from event_mailer.logging_config import configure_logging


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    uvicorn.run(
        "event_mailer.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level=settings.LOG_LEVEL.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
