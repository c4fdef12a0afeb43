from __future__ import annotations


class AppError(Exception):
    """Base application error."""

    def __init__(self, detail: str = "") -> None:
        self.detail = detail
        super().__init__(detail)


class NotFoundError(AppError):
    pass


class UnauthorizedError(AppError):
    pass


class ForbiddenError(AppError):
    pass


class ConflictError(AppError):
    pass


class ValidationError(AppError):
    pass


class AdmissionError(AppError):
    """Queued items could not be persisted; the whole batch is rejected."""


class DeliveryError(AppError):
    """An email could not be composed or handed to the mail provider."""
