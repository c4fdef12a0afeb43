from __future__ import annotations

from dataclasses import dataclass

from event_mailer.domain.value_objects.enums import EmailCategory


@dataclass(frozen=True, slots=True)
class SentCounts:
    """Emails sent within one day window, per category and overall."""

    evaluation: int = 0
    certificate: int = 0
    total: int = 0

    def for_category(self, category: EmailCategory) -> int:
        if category == EmailCategory.EVALUATION:
            return self.evaluation
        return self.certificate

    @classmethod
    def from_mapping(cls, counts: dict[str, int]) -> SentCounts:
        evaluation = counts.get(EmailCategory.EVALUATION, 0)
        certificate = counts.get(EmailCategory.CERTIFICATE, 0)
        return cls(
            evaluation=evaluation,
            certificate=certificate,
            total=evaluation + certificate,
        )


@dataclass(frozen=True, slots=True)
class QueueLimits:
    """Daily caps imposed by the upstream mail provider plus retry policy.

    Both categories draw on one shared ``total`` budget: a category with room
    under its own cap can still be blocked once the total is used up.
    """

    evaluation: int = 40
    certificate: int = 80
    total: int = 100
    max_attempts: int = 3
    send_delay_seconds: float = 0.5
    send_timeout_seconds: float = 30.0

    def __post_init__(self) -> None:
        if min(self.evaluation, self.certificate, self.total) < 1:
            raise ValueError("Daily caps must be at least 1")
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def cap_for(self, category: EmailCategory) -> int:
        if category == EmailCategory.EVALUATION:
            return self.evaluation
        return self.certificate

    def available(self, category: EmailCategory, counts: SentCounts) -> int:
        category_left = self.cap_for(category) - counts.for_category(category)
        total_left = self.total - counts.total
        return max(0, min(category_left, total_left))

    def total_reached(self, counts: SentCounts) -> bool:
        return counts.total >= self.total
