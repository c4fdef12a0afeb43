"""Endpoints hit by the external scheduler; authenticated with the cron secret."""
from __future__ import annotations

from fastapi import APIRouter

from event_mailer.api.deps import (
    ClockDep,
    ComposerDep,
    CronAuth,
    LimitsDep,
    MailerDep,
    RunLockDep,
    UoWDep,
)
from event_mailer.api.v1.schemas.email_queue import DrainResponse, OutcomeResponse
from event_mailer.services.batch_processor import drain_today
from event_mailer.services.delivery_worker import process_next

router = APIRouter(prefix="/api/v1/cron", tags=["cron"], dependencies=[CronAuth])


@router.api_route("/process-email-queue", methods=["GET", "POST"], response_model=DrainResponse)
async def process_email_queue(
    uow: UoWDep,
    mailer: MailerDep,
    composer: ComposerDep,
    clock: ClockDep,
    limits: LimitsDep,
    run_lock: RunLockDep,
) -> DrainResponse:
    async with run_lock.hold():
        summary = await drain_today(uow, mailer, composer, clock, limits)
    return DrainResponse.model_validate(summary, from_attributes=True)


@router.post("/email-worker", response_model=OutcomeResponse)
async def email_worker(
    uow: UoWDep,
    mailer: MailerDep,
    composer: ComposerDep,
    clock: ClockDep,
    limits: LimitsDep,
) -> OutcomeResponse:
    outcome = await process_next(uow, mailer, composer, clock, limits)
    return OutcomeResponse.model_validate(outcome, from_attributes=True)
