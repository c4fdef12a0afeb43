from __future__ import annotations

from typing import Protocol

from event_mailer.application.dto.principal import Principal


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Principal:
        """Decode a bearer token; raise ``UnauthorizedError`` when it is not valid."""
        ...
