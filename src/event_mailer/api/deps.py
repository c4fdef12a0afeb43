"""FastAPI dependency injection helpers."""
from __future__ import annotations

import hmac
from typing import Annotated, AsyncIterator

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from event_mailer.application.dto.principal import Principal
from event_mailer.application.exceptions import UnauthorizedError
from event_mailer.application.ports.auth import TokenVerifier
from event_mailer.application.ports.clock import Clock
from event_mailer.application.ports.lock import RunLock
from event_mailer.application.ports.mail import MailTransport, MessageComposer
from event_mailer.application.uow import UnitOfWork
from event_mailer.config import settings
from event_mailer.domain.value_objects.limits import QueueLimits
from event_mailer.infrastructure.auth.hs256_verifier import HS256Verifier
from event_mailer.infrastructure.db.session import AsyncSessionLocal
from event_mailer.infrastructure.db.uow import SqlAlchemyUoW

_bearer_scheme = HTTPBearer()
_cron_scheme = HTTPBearer(auto_error=False)


async def get_uow() -> AsyncIterator[UnitOfWork]:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        try:
            yield uow
        finally:
            await session.close()


UoWDep = Annotated[UnitOfWork, Depends(get_uow)]


def get_mailer(request: Request) -> MailTransport:
    return request.app.state.mailer


def get_composer(request: Request) -> MessageComposer:
    return request.app.state.composer


def get_clock(request: Request) -> Clock:
    return request.app.state.clock


def get_limits(request: Request) -> QueueLimits:
    return request.app.state.limits


def get_run_lock(request: Request) -> RunLock:
    return request.app.state.run_lock


MailerDep = Annotated[MailTransport, Depends(get_mailer)]
ComposerDep = Annotated[MessageComposer, Depends(get_composer)]
ClockDep = Annotated[Clock, Depends(get_clock)]
LimitsDep = Annotated[QueueLimits, Depends(get_limits)]
RunLockDep = Annotated[RunLock, Depends(get_run_lock)]


_verifier: TokenVerifier | None = None


def get_verifier() -> TokenVerifier:
    global _verifier  # noqa: PLW0603
    if _verifier is None:
        _verifier = HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM)
    return _verifier


async def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_verifier)],
) -> Principal:
    return await verifier.verify(credentials.credentials)


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]


async def get_current_admin(principal: CurrentPrincipal) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return principal


CurrentAdmin = Annotated[Principal, Depends(get_current_admin)]


def get_cron_secret() -> str:
    return settings.CRON_SECRET


async def verify_cron_secret(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_cron_scheme)],
    secret: Annotated[str, Depends(get_cron_secret)],
) -> None:
    if not secret:
        raise UnauthorizedError("Cron secret is not configured")
    if credentials is None or not hmac.compare_digest(credentials.credentials, secret):
        raise UnauthorizedError("Unauthorized")


CronAuth = Depends(verify_cron_secret)
