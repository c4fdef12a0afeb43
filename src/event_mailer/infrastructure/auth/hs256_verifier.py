from __future__ import annotations

import logging

import jwt

from event_mailer.application.dto.principal import Principal
from event_mailer.application.exceptions import UnauthorizedError
from event_mailer.domain.value_objects.enums import PrincipalKind

logger = logging.getLogger(__name__)


class HS256Verifier:
    """Verify operator tokens issued by the events dashboard (shared HS256 secret).

    Tokens carry ``sub`` and either ``kind: admin`` or ``admin`` in ``roles``;
    anything else maps to a plain user, which the admin routes reject.
    """

    def __init__(self, secret: str, algorithm: str = "HS256", *, leeway: float = 30.0) -> None:
        if not secret:
            raise ValueError("JWT_SECRET must be set to verify admin tokens")
        self._secret = secret
        self._algorithm = algorithm
        self._leeway = leeway

    async def verify(self, token: str) -> Principal:
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                leeway=self._leeway,
                options={"require": ["sub"]},
            )
            subject_id = int(claims["sub"])
        except (jwt.InvalidTokenError, ValueError) as exc:
            logger.info("Rejected token: %s", exc)
            raise UnauthorizedError("Invalid or expired token") from exc

        roles = [str(role) for role in claims.get("roles") or []]
        kind = PrincipalKind.ADMIN if claims.get("kind") == PrincipalKind.ADMIN else PrincipalKind.USER
        return Principal(kind=kind, subject_id=subject_id, roles=roles)
