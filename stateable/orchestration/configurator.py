"""Compile-time builder turning a state machine definition into a graph.

A model declares its machine in a ``define_states`` classmethod which
receives a :class:`Configurator`::

    @classmethod
    def define_states(cls, sm):
        sm.declare_state("draft", initial=True)
        sm.declare_state("published")
        sm.declare_transition("publish", source="draft", to="published", body=cls._publishing)

    @staticmethod
    def _publishing(sm):
        sm.guard(lambda article: bool(article.title))
        sm.guard("has_reviewer")
        sm.guard(predicate="is_ready")
        sm.validate(lambda article: article.errors.add("body", "is required") if not article.body else None)
        sm.before("stamp_published_at")
        sm.after(lambda article: article.notify_followers())
        sm.around(lambda article, proceed: proceed())

Structural problems raise :class:`ConfigurationError` while the model
class is being defined, never while a transition runs.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from stateable.core.config import get_config, validate_table_name
from stateable.core.exceptions import ConfigurationError
from stateable.orchestration.graph import (
    AroundDescriptor,
    CallbackDescriptor,
    CallbackKind,
    ConfigurationGraph,
    GuardDescriptor,
    GuardKind,
    TransitionDefinition,
)
from stateable.utils.validators import normalize_name


@dataclass
class _TransitionDraft:
    event: str
    sources: tuple[str, ...]
    destination: str
    guards: list[GuardDescriptor] = field(default_factory=list)
    validations: list[Callable[[Any], Any]] = field(default_factory=list)
    before: list[CallbackDescriptor] = field(default_factory=list)
    after: list[CallbackDescriptor] = field(default_factory=list)
    around: list[AroundDescriptor] = field(default_factory=list)

    def freeze(self) -> TransitionDefinition:
        return TransitionDefinition(
            event=self.event,
            sources=frozenset(self.sources),
            destination=self.destination,
            guards=tuple(self.guards),
            validations=tuple(self.validations),
            before=tuple(self.before),
            after=tuple(self.after),
            around=tuple(self.around),
        )


def _name(value: Any, kind: str) -> str:
    try:
        return normalize_name(value, kind)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(str(exc)) from exc


class Configurator:
    """Collects states and transitions, then freezes them into a graph."""

    def __init__(self, model_name: str = "model") -> None:
        self.model_name = model_name
        self._states: list[str] = []
        self._initial_state: str | None = None
        self._transitions: dict[str, _TransitionDraft] = {}
        self._history_table_name: str | None = None
        self._current: _TransitionDraft | None = None
        self._graph: ConfigurationGraph | None = None

    @property
    def states(self) -> tuple[str, ...]:
        return tuple(self._states)

    @property
    def initial_state(self) -> str | None:
        return self._initial_state

    def declare_state(self, name: Any, initial: bool = False) -> None:
        self._ensure_open()
        state = _name(name, "state name")
        if state in self._states:
            raise ConfigurationError(f"State {state!r} already defined in {self.model_name}")
        if initial and self._initial_state is not None:
            raise ConfigurationError(
                f"Initial state already defined as {self._initial_state!r} in {self.model_name}"
            )

        self._states.append(state)
        if initial:
            self._initial_state = state

    def declare_transition(
        self,
        event: Any,
        source: Any,
        to: Any,
        body: Callable[[Configurator], Any] | None = None,
    ) -> None:
        self._ensure_open()
        if self._current is not None:
            raise ConfigurationError("Transitions cannot be declared inside another transition")

        event_name = _name(event, "event name")
        if event_name in self._transitions:
            raise ConfigurationError(f"Transition {event_name!r} already defined in {self.model_name}")

        raw_sources = [source] if isinstance(source, str) or not isinstance(source, Iterable) else list(source)
        if not raw_sources:
            raise ConfigurationError(f"Transition {event_name!r} needs at least one source state")
        sources = tuple(dict.fromkeys(_name(item, "source state") for item in raw_sources))
        destination = _name(to, "destination state")

        for state in (*sources, destination):
            if state not in self._states:
                raise ConfigurationError(
                    f"Unknown state {state!r} in transition {event_name!r}. "
                    f"Declare it with declare_state({state!r}) first."
                )

        draft = _TransitionDraft(event=event_name, sources=sources, destination=destination)
        if body is not None:
            if not callable(body):
                raise ConfigurationError(f"Body of transition {event_name!r} must be callable")
            self._current = draft
            try:
                body(self)
            finally:
                self._current = None

        self._transitions[event_name] = draft

    def guard(self, check: Callable[[Any], Any] | str | None = None, *, predicate: str | None = None) -> None:
        draft = self._active("guard")
        if check is not None and predicate is not None:
            raise ConfigurationError("guard takes either a check or a predicate, not both")
        if callable(check):
            draft.guards.append(GuardDescriptor(GuardKind.BLOCK, block=check))
        elif check is not None:
            draft.guards.append(GuardDescriptor(GuardKind.METHOD, name=_name(check, "guard method")))
        elif predicate is not None:
            draft.guards.append(GuardDescriptor(GuardKind.PREDICATE, name=_name(predicate, "guard predicate")))
        else:
            raise ConfigurationError("guard requires a callable, a method name, or predicate=")

    def validate(self, block: Callable[[Any], Any] | None = None) -> None:
        draft = self._active("validate")
        if not callable(block):
            raise ConfigurationError("validate requires a callable")
        draft.validations.append(block)

    def before(self, callback: Callable[[Any], Any] | str | None = None) -> None:
        self._active("before").before.append(self._callback("before", callback))

    def after(self, callback: Callable[[Any], Any] | str | None = None) -> None:
        self._active("after").after.append(self._callback("after", callback))

    def around(self, block: Callable[[Any, Callable[[], None]], Any] | None = None) -> None:
        draft = self._active("around")
        if not callable(block):
            raise ConfigurationError("around requires a callable taking (entity, proceed)")
        draft.around.append(AroundDescriptor(block))

    def set_history_table_name(self, name: Any) -> None:
        self._ensure_open()
        self._history_table_name = validate_table_name(_name(name, "history table name"))

    def finalize(self) -> ConfigurationGraph:
        if self._current is not None:
            raise ConfigurationError("finalize cannot be called inside a transition body")
        if self._graph is None:
            self._graph = ConfigurationGraph(
                states=tuple(self._states),
                initial_state=self._initial_state,
                transitions={event: draft.freeze() for event, draft in self._transitions.items()},
                history_table_name=self._history_table_name or get_config().STATEABLE_HISTORY_TABLE,
            )
        return self._graph

    def _ensure_open(self) -> None:
        if self._graph is not None:
            raise ConfigurationError(f"State machine for {self.model_name} is already finalized")

    def _active(self, call: str) -> _TransitionDraft:
        if self._current is None:
            raise ConfigurationError(f"{call} can only be called inside a transition body")
        return self._current

    @staticmethod
    def _callback(call: str, callback: Callable[[Any], Any] | str | None) -> CallbackDescriptor:
        if callable(callback):
            return CallbackDescriptor(CallbackKind.BLOCK, block=callback)
        if callback is not None:
            return CallbackDescriptor(CallbackKind.METHOD, name=_name(callback, f"{call} method"))
        raise ConfigurationError(f"{call} requires a callable or a method name")


def build_graph(
    define: Callable[[Configurator], Any], model_name: str = "model"
) -> ConfigurationGraph:
    """Run a definition function against a fresh configurator and freeze it."""
    configurator = Configurator(model_name)
    define(configurator)
    return configurator.finalize()
