"""Transition history schema module."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TransitionHistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: str = Field(min_length=1)
    from_state: str = Field(min_length=1)
    to_state: str = Field(min_length=1)
    at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_record(cls, record: Any) -> "TransitionHistoryEntry":
        return cls(
            event=record.event,
            from_state=record.from_state,
            to_state=record.to_state,
            at=record.created_at,
            metadata=record.transition_metadata or {},
        )
