"""Declarative state machines for SQLAlchemy models."""

from stateable.core.exceptions import (
    CheckFailedError,
    ConfigurationError,
    GuardFailedError,
    InvalidStateError,
    InvalidTransitionError,
    MissingCallbackMethodError,
    MissingGuardMethodError,
    NotEnabledError,
    NotPersistedError,
    StateableError,
    ValidationFailedError,
)
from stateable.models import Base, StateTransition, history_model_for
from stateable.orchestration.configurator import Configurator, build_graph
from stateable.orchestration.graph import ConfigurationGraph, TransitionDefinition
from stateable.orchestration.guard import GuardEvaluator
from stateable.orchestration.state_machine import StateableMixin
from stateable.orchestration.transition import Transition
from stateable.services.transition_history_service import TransitionHistoryService

__all__ = [
    "Base",
    "CheckFailedError",
    "ConfigurationError",
    "ConfigurationGraph",
    "Configurator",
    "GuardEvaluator",
    "GuardFailedError",
    "InvalidStateError",
    "InvalidTransitionError",
    "MissingCallbackMethodError",
    "MissingGuardMethodError",
    "NotEnabledError",
    "NotPersistedError",
    "StateTransition",
    "StateableError",
    "StateableMixin",
    "Transition",
    "TransitionDefinition",
    "TransitionHistoryService",
    "ValidationFailedError",
    "build_graph",
    "history_model_for",
]
