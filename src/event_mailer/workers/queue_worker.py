"""One-shot queue drain for crontab / external schedulers."""
from __future__ import annotations

import asyncio
import logging

from event_mailer import bootstrap
from event_mailer.application.dto.queue import DrainSummary
from event_mailer.application.exceptions import ConflictError
from event_mailer.config import settings
from event_mailer.infrastructure.db.session import AsyncSessionLocal, engine
from event_mailer.infrastructure.db.uow import SqlAlchemyUoW
from event_mailer.logging_config import configure_logging
from event_mailer.services.batch_processor import drain_today

logger = logging.getLogger(__name__)


async def run_once() -> DrainSummary | None:
    redis = bootstrap.build_redis(settings)
    client = bootstrap.build_http_client(settings)
    mailer = bootstrap.build_mailer(settings)
    composer = bootstrap.build_composer(settings, client)
    run_lock = bootstrap.build_run_lock(redis, settings)

    try:
        async with run_lock.hold(), AsyncSessionLocal() as session:
            async with SqlAlchemyUoW(session) as uow:
                return await drain_today(
                    uow,
                    mailer,
                    composer,
                    bootstrap.build_clock(settings),
                    bootstrap.limits_from_settings(settings),
                )
    except ConflictError:
        logger.info("Another drain is in progress, skipping this run")
        return None
    finally:
        await client.aclose()
        await redis.aclose()
        await engine.dispose()


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(run_once())


if __name__ == "__main__":
    main()
