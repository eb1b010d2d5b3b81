from __future__ import annotations

import jwt

from coach_chat.application.dto.principal import Principal
from coach_chat.domain.value_objects.enums import ParticipantRole


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret.

    ``sub`` is the platform user id; ``role`` is one of client/coach/admin
    and defaults to client.
    """

    def __init__(self, secret: str, algorithm: str = "HS256") -> None:
        self._secret = secret
        self._algorithm = algorithm

    async def verify(self, token: str) -> Principal:
        payload = jwt.decode(
            token,
            self._secret,
            algorithms=[self._algorithm],
            options={"require": ["sub"]},
        )
        role_raw = payload.get("role", ParticipantRole.CLIENT.value)
        try:
            role = ParticipantRole(role_raw)
        except ValueError:
            role = ParticipantRole.CLIENT
        return Principal(subject_id=str(payload["sub"]), role=role)
