"""JSON envelope shared by the fan-out channel and the presence channels.

Wire format: ``{"event": <event_type>, "data": {...}}``
"""
from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


def _default(o: object) -> Any:
    if isinstance(o, UUID):
        return str(o)
    if isinstance(o, datetime):
        return o.isoformat()
    if isinstance(o, Enum):
        return o.value
    raise TypeError(f"{type(o).__name__} is not JSON serializable")


def serialize_event(event_type: str, payload: dict[str, Any]) -> str:
    return json.dumps({"event": event_type, "data": payload}, default=_default)


def deserialize_event(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    """Raise ValueError on anything that is not an event envelope."""
    envelope = json.loads(raw)
    if not isinstance(envelope, dict) or not isinstance(envelope.get("data"), dict):
        raise ValueError("Not an event envelope")
    return str(envelope["event"]), envelope["data"]
