from __future__ import annotations

from enum import StrEnum


class EmailCategory(StrEnum):
    EVALUATION = "evaluation"
    CERTIFICATE = "certificate"


class QueueStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    FAILED = "failed"


class OutcomeStatus(StrEnum):
    SENT = "sent"
    RETRY = "retry"
    FAILED = "failed"
    IDLE = "idle"
    RATE_LIMITED = "rate_limited"
    ERROR = "error"


class CertificateTemplate(StrEnum):
    PARTICIPATION = "participation"
    AWARDEE = "awardee"
    ATTENDANCE = "attendance"


class PrincipalKind(StrEnum):
    USER = "user"
    ADMIN = "admin"
