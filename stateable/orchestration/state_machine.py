"""Declarative state machine support for SQLAlchemy models.

A model opts in by mixing in :class:`StateableMixin` and declaring a
``define_states`` classmethod::

    class Article(StateableMixin, Base):
        __tablename__ = "articles"

        id: Mapped[int] = mapped_column(Integer, primary_key=True)
        title: Mapped[str | None] = mapped_column(String(200))

        @classmethod
        def define_states(cls, sm):
            sm.declare_state("draft", initial=True)
            sm.declare_state("review")
            sm.declare_transition("submit", source="draft", to="review",
                                  body=lambda sm: sm.guard(lambda article: bool(article.title)))

The definition is compiled once, when the class is created, and the
model gains ``is_<state>()``, ``<event>(**metadata)`` and
``can_<event>()`` for every state and event whose name is a valid Python
identifier.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from functools import partial
from threading import Lock
from typing import Any

from sqlalchemy import String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, object_mapper, object_session

from stateable.core.exceptions import (
    ConfigurationError,
    InvalidStateError,
    InvalidTransitionError,
    NotEnabledError,
    NotPersistedError,
)
from stateable.models.state_transition import TransitionRecordMixin, history_model_for
from stateable.orchestration.configurator import build_graph
from stateable.orchestration.graph import ConfigurationGraph
from stateable.orchestration.guard import default_evaluator
from stateable.orchestration.transition import Transition
from stateable.schemas.transitions import TransitionHistoryEntry
from stateable.utils.validators import ValidationErrors, normalize_name

logger = logging.getLogger(__name__)

_compile_lock = Lock()

GENERATED_MARKER = "__stateable_generated__"


def _generated(func, name: str):
    func.__name__ = name
    func.__qualname__ = name
    setattr(func, GENERATED_MARKER, True)
    return func


def _state_predicate(state: str):
    def predicate(self) -> bool:
        return self.state == state

    return _generated(predicate, f"is_{state}")


def _event_trigger(event: str):
    def trigger(self, metadata: dict[str, Any] | None = None, /, **kwargs: Any) -> bool:
        return self.transition_to(event, metadata, **kwargs)

    return _generated(trigger, event)


def _event_check(event: str):
    def check(self) -> bool:
        return self.can_transition_to(event)

    return _generated(check, f"can_{event}")


def _dynamic_methods(cls: type, graph: ConfigurationGraph) -> dict[str, Any]:
    methods: dict[str, Any] = {}
    for state in graph.states:
        if state.isidentifier():
            methods[f"is_{state}"] = _state_predicate(state)
    for event in graph.events:
        if event.isidentifier():
            methods[event] = _event_trigger(event)
            methods[f"can_{event}"] = _event_check(event)

    for name in methods:
        existing = getattr(cls, name, None)
        if existing is not None and not getattr(existing, GENERATED_MARKER, False):
            raise ConfigurationError(
                f"{cls.__name__}.{name} already exists; rename the state or event that generates it"
            )
    return methods


class StateableMixin:
    """Adds a ``state`` column and transition execution to a declarative model."""

    state: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)

    _stateable_graph = None
    _stateable_history_model = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "define_states" in cls.__dict__:
            cls._compile_state_machine()

    @classmethod
    def _compile_state_machine(cls) -> ConfigurationGraph:
        with _compile_lock:
            if "_stateable_graph" in cls.__dict__ and cls.__dict__["_stateable_graph"] is not None:
                return cls.__dict__["_stateable_graph"]

            graph = build_graph(cls.define_states, model_name=cls.__name__)
            methods = _dynamic_methods(cls, graph)
            history_model = history_model_for(graph.history_table_name)

            cls._stateable_graph = graph
            cls._stateable_history_model = history_model
            for name, method in methods.items():
                setattr(cls, name, method)

        logger.debug(
            "stateable.definition.compiled",
            extra={
                "event": "stateable.definition.compiled",
                "context": {
                    "model_class": cls.__name__,
                    "states": list(graph.states),
                    "events": list(graph.events),
                    "history_table": graph.history_table_name,
                },
            },
        )
        return graph

    @classmethod
    def stateable_enabled(cls) -> bool:
        return cls._stateable_graph is not None

    @classmethod
    def state_machine(cls) -> ConfigurationGraph:
        graph = cls._stateable_graph
        if graph is None:
            raise NotEnabledError()
        return graph

    @classmethod
    def history_model(cls) -> type[TransitionRecordMixin]:
        cls.state_machine()
        return cls._stateable_history_model

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._assign_initial_state()

    def _assign_initial_state(self) -> None:
        graph = type(self)._stateable_graph
        if self.state is None and graph is not None and graph.initial_state is not None:
            self.state = graph.initial_state

    @property
    def errors(self) -> ValidationErrors:
        errors = self.__dict__.get("_stateable_errors")
        if errors is None:
            errors = ValidationErrors()
            self.__dict__["_stateable_errors"] = errors
        return errors

    def stateable_session(self) -> Session:
        session = object_session(self)
        if session is None:
            raise NotPersistedError(f"{type(self).__name__} instance is not attached to a session")
        return session

    def _joins_caller_transaction(self) -> bool:
        session = object_session(self)
        if session is None:
            return False
        if session.in_transaction():
            return True
        pending = (*session.new, *session.dirty, *session.deleted)
        return any(obj is not self for obj in pending)

    @contextmanager
    def stateable_transaction(self, join: bool | None = None) -> Generator[Session, None, None]:
        """Unit of work for one transition.

        With ``join`` the block runs in a SAVEPOINT: it is released on
        success and rolled back on error, and the outer transaction is left
        to the caller. Otherwise the session is committed, or rolled back
        and the error re-raised. ``None`` joins whenever the session already
        has a transaction or pending objects.
        """
        session = self.stateable_session()
        if join is None:
            join = self._joins_caller_transaction()

        if join:
            with session.begin_nested():
                yield session
            return

        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise

    def save(self, session: Session | None = None) -> bool:
        graph = self.state_machine()
        self._assign_initial_state()
        if not graph.has_state(self.state):
            raise InvalidStateError(self.state, model_class=type(self))

        target = session or self.stateable_session()
        target.add(self)
        target.flush()
        return True

    def _subject_id(self) -> Any:
        return object_mapper(self).primary_key_from_instance(self)[0]

    def record_transition(
        self,
        event: str,
        from_state: str,
        to_state: str,
        metadata: dict[str, Any] | None = None,
    ) -> TransitionRecordMixin:
        model = self.history_model()
        record = model(
            subject_type=type(self).__name__,
            subject_id=self._subject_id(),
            event=event,
            from_state=from_state,
            to_state=to_state,
            transition_metadata=dict(metadata or {}),
        )
        session = self.stateable_session()
        session.add(record)
        session.flush()
        return record

    def transition_to(
        self, event: Any, metadata: dict[str, Any] | None = None, /, **kwargs: Any
    ) -> bool:
        """Fire ``event``; raises on any failure, returns True once its unit of work completes.

        When the caller already has work in flight on the session, the
        transition joins it through a SAVEPOINT and the caller commits.
        """
        graph = self.state_machine()
        join = self._joins_caller_transaction()
        current = self.state

        try:
            event_name = normalize_name(event, "event name")
        except (TypeError, ValueError):
            raise InvalidTransitionError(repr(event), current, None, model_class=type(self)) from None

        definition = graph.transition_for(event_name)
        if definition is None:
            raise InvalidTransitionError(event_name, current, None, model_class=type(self))
        if not definition.allows(current):
            raise InvalidTransitionError(
                event_name, current, definition.destination, model_class=type(self)
            )

        payload = {**(metadata or {}), **kwargs}
        unit_of_work = partial(self.stateable_transaction, join=join)
        return Transition(self, definition, payload, unit_of_work=unit_of_work).execute()

    def can_transition_to(self, event: Any) -> bool:
        graph = type(self)._stateable_graph
        if graph is None:
            return False
        try:
            definition = graph.transition_for(normalize_name(event, "event name"))
            if definition is None or not definition.allows(self.state):
                return False
            return all(default_evaluator.evaluate(self, guard) for guard in definition.guards)
        except Exception:
            logger.debug(
                "stateable.guard.errored",
                exc_info=True,
                extra={"event": "stateable.guard.errored", "context": {"transition": str(event)}},
            )
            return False

    @property
    def state_transitions(self) -> list[TransitionRecordMixin]:
        """History records for this instance, newest first."""
        model = self.history_model()
        subject_id = self._subject_id()
        session = object_session(self)
        if session is None or subject_id is None:
            return []

        stmt = (
            select(model)
            .where(model.subject_type == type(self).__name__, model.subject_id == subject_id)
            .order_by(model.created_at.desc(), model.id.desc())
        )
        return list(session.scalars(stmt))

    def transition_history(self) -> list[TransitionHistoryEntry]:
        self.state_machine()
        return [TransitionHistoryEntry.from_record(record) for record in self.state_transitions]

    def to_dict(self, include_transition_history: bool = False) -> dict[str, Any]:
        mapper = object_mapper(self)
        result = {attr.key: getattr(self, attr.key) for attr in mapper.column_attrs}
        if include_transition_history and self.stateable_enabled():
            result["transition_history"] = [
                entry.model_dump(mode="json") for entry in self.transition_history()
            ]
        return result
