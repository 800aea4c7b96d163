"""Transition history record models.

The default table is ``state_transitions``. Models that call
``set_history_table_name`` get a dedicated mapped class, created once per
table name by :func:`history_model_for`. Rows are append-only.
"""

from __future__ import annotations

from datetime import datetime
from threading import Lock
from typing import Any

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from stateable.core.config import validate_table_name
from stateable.models.base import Base, utcnow

DEFAULT_TABLE_NAME = "state_transitions"


class TransitionRecordMixin:
    """Columns and indexes shared by every history table."""

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    subject_type: Mapped[str] = mapped_column(String(255), nullable=False)
    subject_id: Mapped[int] = mapped_column(Integer, nullable=False)
    event: Mapped[str] = mapped_column(String(100), nullable=False)
    from_state: Mapped[str] = mapped_column(String(100), nullable=False)
    to_state: Mapped[str] = mapped_column(String(100), nullable=False)
    transition_metadata: Mapped[dict[str, Any] | None] = mapped_column("metadata", JSON)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    @declared_attr.directive
    def __table_args__(cls) -> tuple[Index, ...]:
        table = cls.__tablename__
        return (
            Index(f"idx_{table}_subject", "subject_type", "subject_id"),
            Index(f"idx_{table}_event", "event"),
            Index(f"idx_{table}_from_state", "from_state"),
            Index(f"idx_{table}_to_state", "to_state"),
            Index(f"idx_{table}_created_at", "created_at"),
        )

    def description(self) -> str:
        return f"{self.subject_type}#{self.subject_id}: {self.from_state} -> {self.to_state} ({self.event})"

    def __str__(self) -> str:
        return self.description()

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.description()}>"


class StateTransition(TransitionRecordMixin, Base):
    __tablename__ = DEFAULT_TABLE_NAME


_models: dict[str, type[TransitionRecordMixin]] = {DEFAULT_TABLE_NAME: StateTransition}
_models_lock = Lock()


def _class_name_for(table_name: str) -> str:
    words = [part for part in table_name.split("_") if part]
    if words and words[-1].endswith("s"):
        words[-1] = words[-1][:-1]
    return "".join(word.capitalize() for word in words) or "StateTransition"


def history_model_for(table_name: str = DEFAULT_TABLE_NAME) -> type[TransitionRecordMixin]:
    """Return the mapped history class for ``table_name``, creating it once."""
    model = _models.get(table_name)
    if model is not None:
        return model

    with _models_lock:
        model = _models.get(table_name)
        if model is None:
            validate_table_name(table_name)
            model = type(
                _class_name_for(table_name),
                (TransitionRecordMixin, Base),
                {"__tablename__": table_name, "__module__": __name__},
            )
            _models[table_name] = model
        return model


def history_models() -> list[type[TransitionRecordMixin]]:
    return list(_models.values())
