"""Factories shared by the API lifespan and the cron worker."""
from __future__ import annotations

import httpx
import redis.asyncio as aioredis

from event_mailer.application.ports.clock import SystemClock
from event_mailer.config import Settings
from event_mailer.domain.value_objects.limits import QueueLimits
from event_mailer.infrastructure.certificates.http_renderer import HttpCertificateRenderer
from event_mailer.infrastructure.locks.redis_lock import RedisRunLock
from event_mailer.infrastructure.mail.composer import JinjaEmailComposer
from event_mailer.infrastructure.mail.smtp_transport import SmtpMailTransport

DRAIN_LOCK_NAME = "event-mailer:drain-email-queue"


def limits_from_settings(settings: Settings) -> QueueLimits:
    return QueueLimits(
        evaluation=settings.QUEUE_EVALUATION_DAILY_CAP,
        certificate=settings.QUEUE_CERTIFICATE_DAILY_CAP,
        total=settings.QUEUE_TOTAL_DAILY_CAP,
        max_attempts=settings.QUEUE_MAX_ATTEMPTS,
        send_delay_seconds=settings.QUEUE_SEND_DELAY_SECONDS,
        send_timeout_seconds=settings.QUEUE_SEND_TIMEOUT_SECONDS,
    )


def build_clock(settings: Settings) -> SystemClock:
    return SystemClock(settings.QUEUE_TIMEZONE)


def build_mailer(settings: Settings) -> SmtpMailTransport:
    return SmtpMailTransport(
        settings.SMTP_HOST,
        settings.SMTP_PORT,
        username=settings.SMTP_USERNAME,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
        start_tls=settings.SMTP_START_TLS,
        timeout=settings.SMTP_TIMEOUT,
    )


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.CERTIFICATE_TIMEOUT)


def build_composer(settings: Settings, client: httpx.AsyncClient) -> JinjaEmailComposer:
    return JinjaEmailComposer(
        HttpCertificateRenderer(client, settings.CERTIFICATE_SERVICE_URL),
        sender=settings.MAIL_FROM,
        site_url=settings.SITE_URL,
        organisation=settings.MAIL_ORGANISATION,
    )


def build_redis(settings: Settings) -> aioredis.Redis:
    return aioredis.from_url(settings.REDIS_URL, decode_responses=True)


def build_run_lock(redis: aioredis.Redis, settings: Settings) -> RedisRunLock:
    return RedisRunLock(redis, DRAIN_LOCK_NAME, settings.QUEUE_DRAIN_LOCK_TTL)
