"""Guard evaluation for transitions.

Guards are read-only preconditions. The evaluator does not enforce that
they leave the entity untouched; that is the model author's contract.
"""

from __future__ import annotations

from typing import Any

from stateable.core.exceptions import MissingGuardMethodError, StateableError
from stateable.orchestration.graph import GuardDescriptor, GuardKind

MISSING = object()


def _defines(entity: Any, name: str) -> bool:
    if name in getattr(entity, "__dict__", {}):
        return True
    return any(name in vars(klass) for klass in type(entity).__mro__)


def resolve_named(entity: Any, name: str) -> Any:
    """Look up ``name`` on ``entity``; return ``MISSING`` only when nothing defines it.

    An ``AttributeError`` raised from inside a defined property propagates.
    """
    try:
        return getattr(entity, name)
    except AttributeError:
        if _defines(entity, name):
            raise
        return MISSING


def invoke_named(value: Any) -> Any:
    """Call a resolved method, or pass through a plain attribute/property value."""
    return value() if callable(value) else value


class GuardEvaluator:
    """Evaluates and describes guard descriptors against an entity."""

    def evaluate(self, entity: Any, descriptor: GuardDescriptor) -> bool:
        if descriptor.kind is GuardKind.BLOCK:
            return bool(descriptor.block(entity))
        if descriptor.kind is GuardKind.METHOD:
            return bool(invoke_named(self._lookup(entity, descriptor, self._method_hint)))
        if descriptor.kind is GuardKind.PREDICATE:
            return bool(invoke_named(self._lookup(entity, descriptor, self._predicate_hint)))
        raise StateableError(f"Unknown check type: {descriptor.kind!r}")

    def describe(self, descriptor: GuardDescriptor) -> str:
        if descriptor.kind is GuardKind.BLOCK:
            return "block check"
        return f"{descriptor.kind.value} check: {descriptor.name}"

    @staticmethod
    def _lookup(entity: Any, descriptor: GuardDescriptor, hint) -> Any:
        value = resolve_named(entity, descriptor.name)
        if value is MISSING:
            raise MissingGuardMethodError(descriptor.name, type(entity), hint(descriptor.name))
        return value

    @staticmethod
    def _method_hint(name: str) -> str:
        return f"Define it in your model: def {name}(self): ..."

    @staticmethod
    def _predicate_hint(name: str) -> str:
        return (
            "Make sure derived statuses are enabled on the model and the predicate is defined: "
            f"def {name}(self): ..."
        )


default_evaluator = GuardEvaluator()
