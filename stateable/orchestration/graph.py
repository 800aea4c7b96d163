"""Immutable configuration graph produced by the configurator."""

from __future__ import annotations

import enum
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

Block = Callable[[Any], Any]
AroundBlock = Callable[[Any, Callable[[], None]], Any]


class GuardKind(str, enum.Enum):
    BLOCK = "block"
    METHOD = "method"
    PREDICATE = "predicate"


class CallbackKind(str, enum.Enum):
    BLOCK = "block"
    METHOD = "method"


@dataclass(frozen=True)
class GuardDescriptor:
    """One guard: a block, a method name, or a derived-status predicate name."""

    kind: GuardKind
    block: Block | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        if self.kind is GuardKind.BLOCK:
            if self.block is None or self.name is not None:
                raise ValueError("block guards take a callable and no name")
        elif self.name is None or self.block is not None:
            raise ValueError(f"{self.kind.value} guards take a name and no callable")


@dataclass(frozen=True)
class CallbackDescriptor:
    """One before/after callback: a block or a method name."""

    kind: CallbackKind
    block: Block | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        if self.kind is CallbackKind.BLOCK:
            if self.block is None or self.name is not None:
                raise ValueError("block callbacks take a callable and no name")
        elif self.name is None or self.block is not None:
            raise ValueError("method callbacks take a name and no callable")


@dataclass(frozen=True)
class AroundDescriptor:
    """Callback wrapping the mutation step; called as ``block(entity, proceed)``."""

    block: AroundBlock


@dataclass(frozen=True)
class TransitionDefinition:
    event: str
    sources: frozenset[str]
    destination: str
    guards: tuple[GuardDescriptor, ...] = ()
    validations: tuple[Block, ...] = ()
    before: tuple[CallbackDescriptor, ...] = ()
    after: tuple[CallbackDescriptor, ...] = ()
    around: tuple[AroundDescriptor, ...] = ()

    def allows(self, state: str | None) -> bool:
        return state is not None and state in self.sources


@dataclass(frozen=True)
class ConfigurationGraph:
    """Declared states, the initial state and the transitions of one entity type."""

    states: tuple[str, ...]
    initial_state: str | None
    transitions: Mapping[str, TransitionDefinition] = field(
        default_factory=lambda: MappingProxyType({})
    )
    history_table_name: str = "state_transitions"

    def __post_init__(self) -> None:
        if not isinstance(self.transitions, MappingProxyType):
            object.__setattr__(self, "transitions", MappingProxyType(dict(self.transitions)))

    @property
    def events(self) -> tuple[str, ...]:
        return tuple(self.transitions)

    def has_state(self, name: str | None) -> bool:
        return name in self.states

    def transition_for(self, event: str) -> TransitionDefinition | None:
        return self.transitions.get(event)

    def events_from(self, state: str | None) -> list[str]:
        return [event for event, definition in self.transitions.items() if definition.allows(state)]
