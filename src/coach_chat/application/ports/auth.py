from __future__ import annotations

from typing import Protocol

from coach_chat.application.dto.principal import Principal


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Principal:
        """Raise on an invalid or expired token."""
        ...
