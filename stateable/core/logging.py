"""Structured logging helpers for transition execution."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


@dataclass(frozen=True)
class TransitionLogContext:
    """Normalized context fields expected in transition logs."""

    subject_type: str | None = None
    subject_id: Any = None
    transition: str | None = None
    from_state: str | None = None
    to_state: str | None = None


def build_log_event(event: str, context: TransitionLogContext, **fields: Any) -> dict[str, Any]:
    """Build a normalized structured log payload."""
    payload: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "event": event,
        "subject_type": context.subject_type,
        "subject_id": context.subject_id,
        "transition": context.transition,
        "from_state": context.from_state,
        "to_state": context.to_state,
    }
    payload.update(fields)
    return payload
