from __future__ import annotations

import jwt
import pytest

from coach_chat.domain.value_objects.enums import ParticipantRole
from coach_chat.infrastructure.auth.hs256_verifier import HS256Verifier

SECRET = "unit-test-secret-0123456789abcdef"


def _token(claims: dict, secret: str = SECRET) -> str:
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.mark.asyncio
async def test_verify_reads_subject_and_role():
    principal = await HS256Verifier(SECRET).verify(_token({"sub": "coach-1", "role": "coach"}))
    assert principal.subject_id == "coach-1"
    assert principal.role == ParticipantRole.COACH


@pytest.mark.asyncio
async def test_unknown_or_missing_role_defaults_to_client():
    verifier = HS256Verifier(SECRET)
    assert (await verifier.verify(_token({"sub": "u1"}))).role == ParticipantRole.CLIENT
    assert (await verifier.verify(_token({"sub": "u1", "role": "root"}))).role == ParticipantRole.CLIENT


@pytest.mark.asyncio
async def test_missing_subject_is_rejected():
    with pytest.raises(jwt.MissingRequiredClaimError):
        await HS256Verifier(SECRET).verify(_token({"role": "coach"}))


@pytest.mark.asyncio
async def test_wrong_secret_is_rejected():
    token = _token({"sub": "u1"}, secret="another-secret-0123456789abcdef")
    with pytest.raises(jwt.InvalidSignatureError):
        await HS256Verifier(SECRET).verify(token)
