from __future__ import annotations

from fastapi import APIRouter, Query

from event_mailer.api.deps import ClockDep, ComposerDep, CurrentAdmin, LimitsDep, MailerDep, UoWDep
from event_mailer.api.v1.schemas.email_queue import (
    AdmissionResponse,
    BulkSendResponse,
    CapacityResponse,
    EnqueueRequest,
    SendCertificatesRequest,
    SendEvaluationsRequest,
    StatsResponse,
)
from event_mailer.domain.value_objects.enums import EmailCategory
from event_mailer.services import admission_service, dispatch_service, stats_service

router = APIRouter(prefix="/api/v1/email-queue", tags=["email-queue"])


@router.post("/evaluations/send", response_model=BulkSendResponse)
async def send_evaluations(
    body: SendEvaluationsRequest,
    admin: CurrentAdmin,
    uow: UoWDep,
    mailer: MailerDep,
    composer: ComposerDep,
    clock: ClockDep,
    limits: LimitsDep,
) -> BulkSendResponse:
    requests = await dispatch_service.build_requests(
        EmailCategory.EVALUATION, body.attendee_ids, uow, event_id=body.event_id,
    )
    result = await dispatch_service.send_bulk(
        EmailCategory.EVALUATION, requests, uow, mailer, composer, clock, limits,
    )
    return BulkSendResponse.model_validate(result, from_attributes=True)


@router.post("/certificates/send", response_model=BulkSendResponse)
async def send_certificates(
    body: SendCertificatesRequest,
    admin: CurrentAdmin,
    uow: UoWDep,
    mailer: MailerDep,
    composer: ComposerDep,
    clock: ClockDep,
    limits: LimitsDep,
) -> BulkSendResponse:
    requests = await dispatch_service.build_requests(
        EmailCategory.CERTIFICATE,
        body.attendee_ids,
        uow,
        event_id=body.event_id,
        template_type=body.template_type,
    )
    result = await dispatch_service.send_bulk(
        EmailCategory.CERTIFICATE, requests, uow, mailer, composer, clock, limits,
    )
    return BulkSendResponse.model_validate(result, from_attributes=True)


@router.post("/{category}/enqueue", response_model=AdmissionResponse, status_code=202)
async def enqueue(
    category: EmailCategory,
    body: EnqueueRequest,
    admin: CurrentAdmin,
    uow: UoWDep,
    clock: ClockDep,
    limits: LimitsDep,
) -> AdmissionResponse:
    requests = await dispatch_service.build_requests(
        category, body.attendee_ids, uow, event_id=body.event_id, template_type=body.template_type,
    )
    result = await admission_service.admit(category, requests, uow, clock, limits, send_now=False)
    return AdmissionResponse.model_validate(result, from_attributes=True)


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    admin: CurrentAdmin,
    uow: UoWDep,
    clock: ClockDep,
    limits: LimitsDep,
) -> StatsResponse:
    stats = await stats_service.get_stats(uow, clock, limits)
    return StatsResponse.model_validate(stats, from_attributes=True)


@router.get("/capacity", response_model=CapacityResponse)
async def get_capacity(
    admin: CurrentAdmin,
    uow: UoWDep,
    clock: ClockDep,
    limits: LimitsDep,
    category: EmailCategory = Query(...),
    count: int = Query(1, ge=1),
) -> CapacityResponse:
    check = await admission_service.check_capacity(category, count, uow, clock, limits)
    return CapacityResponse.model_validate(check, from_attributes=True)
