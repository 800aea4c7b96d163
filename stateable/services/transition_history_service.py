"""Read-side queries over transition history tables."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from stateable.core.config import get_config
from stateable.models.base import utcnow
from stateable.models.state_transition import DEFAULT_TABLE_NAME, TransitionRecordMixin, history_model_for
from stateable.services.base_service import BaseService
from stateable.utils.validators import normalize_name


def _subject_type(subject: Any) -> str:
    if isinstance(subject, str):
        return subject
    if isinstance(subject, type):
        return subject.__name__
    return type(subject).__name__


class TransitionHistoryService(BaseService):
    """Queries one history table; every result list is newest first."""

    def __init__(self, db: Session | None = None, table_name: str = DEFAULT_TABLE_NAME) -> None:
        super().__init__(db=db)
        self.model = history_model_for(table_name)

    @classmethod
    def for_entity_type(cls, entity_type: type, db: Session | None = None) -> "TransitionHistoryService":
        """Service bound to the history table a stateable model writes to."""
        return cls(db=db, table_name=entity_type.state_machine().history_table_name)

    def search(
        self,
        subject_type: Any = None,
        subject_id: int | None = None,
        event: Any = None,
        from_state: Any = None,
        to_state: Any = None,
        since: datetime | None = None,
        until: datetime | None = None,
        limit: int | None = None,
    ) -> list[TransitionRecordMixin]:
        model = self.model
        stmt: Select = select(model)
        if subject_type is not None:
            stmt = stmt.where(model.subject_type == _subject_type(subject_type))
        if subject_id is not None:
            stmt = stmt.where(model.subject_id == subject_id)
        if event is not None:
            stmt = stmt.where(model.event == normalize_name(event, "event name"))
        if from_state is not None:
            stmt = stmt.where(model.from_state == normalize_name(from_state, "state name"))
        if to_state is not None:
            stmt = stmt.where(model.to_state == normalize_name(to_state, "state name"))
        if since is not None:
            stmt = stmt.where(model.created_at >= since)
        if until is not None:
            stmt = stmt.where(model.created_at <= until)

        stmt = stmt.order_by(model.created_at.desc(), model.id.desc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return list(self.db.scalars(stmt))

    def for_subject(self, entity: Any) -> list[TransitionRecordMixin]:
        return self.search(subject_type=entity, subject_id=entity._subject_id())

    def for_model(self, model_class: type | str) -> list[TransitionRecordMixin]:
        return self.search(subject_type=model_class)

    def by_event(self, event: Any) -> list[TransitionRecordMixin]:
        return self.search(event=event)

    def from_state(self, state: Any) -> list[TransitionRecordMixin]:
        return self.search(from_state=state)

    def to_state(self, state: Any) -> list[TransitionRecordMixin]:
        return self.search(to_state=state)

    def recent(self, duration: timedelta | None = None) -> list[TransitionRecordMixin]:
        window = duration or timedelta(days=get_config().STATEABLE_RECENT_DAYS)
        return self.search(since=utcnow() - window)

    def between(self, start: datetime, end: datetime) -> list[TransitionRecordMixin]:
        return self.search(since=start, until=end)
