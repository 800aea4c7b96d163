"""Pydantic schema package for serialized transition history."""

from stateable.schemas.transitions import TransitionHistoryEntry

__all__ = ["TransitionHistoryEntry"]
