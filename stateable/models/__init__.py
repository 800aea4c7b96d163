"""SQLAlchemy models for transition history."""

from stateable.models.base import Base
from stateable.models.state_transition import (
    DEFAULT_TABLE_NAME,
    StateTransition,
    TransitionRecordMixin,
    history_model_for,
    history_models,
)

__all__ = [
    "Base",
    "DEFAULT_TABLE_NAME",
    "StateTransition",
    "TransitionRecordMixin",
    "history_model_for",
    "history_models",
]
