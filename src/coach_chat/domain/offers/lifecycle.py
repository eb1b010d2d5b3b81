"""Offer lifecycle: ``pending -> accepted | declined``, both terminal."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from coach_chat.domain.value_objects.enums import OfferStatus

TERMINAL_STATUSES = frozenset({OfferStatus.ACCEPTED, OfferStatus.DECLINED})

_TRANSITIONS: dict[OfferStatus, frozenset[OfferStatus]] = {
    OfferStatus.PENDING: TERMINAL_STATUSES,
}


def can_transition(current: OfferStatus, target: OfferStatus) -> bool:
    return target in _TRANSITIONS.get(current, frozenset())


def resolution_patch(decision: OfferStatus, responded_at: datetime) -> dict[str, Any]:
    """Metadata keys rewritten when an offer is resolved."""
    if decision not in TERMINAL_STATUSES:
        raise ValueError(f"{decision!r} is not a terminal offer status")
    return {"status": decision.value, "respondedAt": responded_at.isoformat()}
