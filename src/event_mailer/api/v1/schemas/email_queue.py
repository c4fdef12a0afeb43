from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from event_mailer.domain.value_objects.enums import CertificateTemplate, EmailCategory, OutcomeStatus


class SendEvaluationsRequest(BaseModel):
    event_id: int
    attendee_ids: list[int] = Field(min_length=1)


class SendCertificatesRequest(BaseModel):
    attendee_ids: list[int] = Field(min_length=1)
    template_type: CertificateTemplate = CertificateTemplate.PARTICIPATION
    event_id: int | None = None


class EnqueueRequest(BaseModel):
    attendee_ids: list[int] = Field(min_length=1)
    event_id: int | None = None
    template_type: CertificateTemplate | None = None


class AdmissionResponse(BaseModel):
    immediate_count: int
    queued_count: int
    scheduled_dates: list[date]


class CapacityResponse(BaseModel):
    can_send: bool
    available: int
    message: str


class DispatchEntryResponse(BaseModel):
    recipient_ref: int | None
    email: str
    error: str | None = None


class BulkSendResponse(BaseModel):
    successful: list[DispatchEntryResponse]
    failed: list[DispatchEntryResponse]
    admission: AdmissionResponse
    capacity: CapacityResponse


class DailyUsageResponse(BaseModel):
    used: int
    limit: int


class StatsResponse(BaseModel):
    pending: int
    processing: int
    failed: int
    pending_by_date: dict[date, int]
    today_limit: DailyUsageResponse
    today_by_category: dict[EmailCategory, DailyUsageResponse]


class DrainResponse(BaseModel):
    sent: int
    failed: int
    retried: int
    remaining: int
    errors: list[str]
    stopped_by: OutcomeStatus | None = None


class OutcomeResponse(BaseModel):
    status: OutcomeStatus
    item_id: int | None = None
    category: EmailCategory | None = None
    email: str | None = None
    attempt: int | None = None
    error: str | None = None
