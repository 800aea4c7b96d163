"""Transition executor.

Runs one transition attempt for one entity:

1. guards, in declaration order, stopping at the first failure
2. validations, against a freshly cleared error collection
3. inside one unit of work: around callbacks wrapping before callbacks,
   the state change, ``save()``, the history record and after callbacks

Guards and validations only read, so they run before the unit of work is
opened. Any exception raised inside the unit of work rolls it back and
propagates unchanged.

The entity must provide ``state``, ``errors``, ``save()``,
``record_transition(event, from_state, to_state, metadata)`` and a
``stateable_transaction()`` context manager, unless another unit of work
factory is passed in. Two attempts against the same
row from different sessions are only serialized by the database (and by a
``version_id_col`` when the model maps one).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from functools import partial
from typing import Any, ContextManager

from stateable.core.exceptions import (
    CheckFailedError,
    MissingCallbackMethodError,
    ValidationFailedError,
)
from stateable.core.logging import TransitionLogContext, build_log_event
from stateable.orchestration.graph import (
    AroundDescriptor,
    CallbackDescriptor,
    CallbackKind,
    TransitionDefinition,
)
from stateable.orchestration.guard import MISSING, GuardEvaluator, default_evaluator, resolve_named

logger = logging.getLogger(__name__)


class Transition:
    """One attempt to fire ``definition`` against ``entity``."""

    def __init__(
        self,
        entity: Any,
        definition: TransitionDefinition,
        metadata: dict[str, Any] | None = None,
        evaluator: GuardEvaluator | None = None,
        unit_of_work: Callable[[], ContextManager[Any]] | None = None,
    ) -> None:
        self.entity = entity
        self.definition = definition
        self.metadata = dict(metadata or {})
        self.evaluator = evaluator or default_evaluator
        self.unit_of_work = unit_of_work or entity.stateable_transaction
        self.from_state = entity.state
        self.to_state = definition.destination
        self.log_context = TransitionLogContext(
            subject_type=type(entity).__name__,
            subject_id=getattr(entity, "id", None),
            transition=definition.event,
            from_state=self.from_state,
            to_state=self.to_state,
        )

    @property
    def event(self) -> str:
        return self.definition.event

    def execute(self) -> bool:
        self._log("stateable.transition.started", logging.DEBUG)
        try:
            self._evaluate_guards()
            self._run_validations()
        except (CheckFailedError, ValidationFailedError) as exc:
            self._log("stateable.transition.rejected", logging.INFO, reason=str(exc))
            raise

        try:
            with self.unit_of_work():
                self._build_chain()()
        except Exception:
            self._log("stateable.transition.failed", logging.WARNING, exc_info=True)
            raise

        self._log("stateable.transition.completed", logging.INFO)
        return True

    def _evaluate_guards(self) -> None:
        for descriptor in self.definition.guards:
            if not self.evaluator.evaluate(self.entity, descriptor):
                raise CheckFailedError(
                    self.event,
                    check_description=self.evaluator.describe(descriptor),
                    check_type=descriptor.kind.value,
                    current_state=self.from_state,
                    model_class=type(self.entity),
                )

    def _run_validations(self) -> None:
        if not self.definition.validations:
            return

        errors = self.entity.errors
        errors.clear()
        for validation in self.definition.validations:
            validation(self.entity)

        if errors:
            raise ValidationFailedError(
                self.event,
                errors=errors.messages(),
                full_messages=errors.full_messages(),
                current_state=self.from_state,
                target_state=self.to_state,
                model_class=type(self.entity),
            )

    def _build_chain(self) -> Callable[[], None]:
        # The first declared around callback ends up outermost.
        step: Callable[[], None] = self._perform
        for descriptor in reversed(self.definition.around):
            step = partial(self._call_around, descriptor, step)
        return step

    def _call_around(self, descriptor: AroundDescriptor, proceed: Callable[[], None]) -> None:
        descriptor.block(self.entity, proceed)

    def _perform(self) -> None:
        self._run_callbacks(self.definition.before)
        self.entity.state = self.to_state
        self.entity.save()
        self.entity.record_transition(
            event=self.event,
            from_state=self.from_state,
            to_state=self.to_state,
            metadata=self.metadata,
        )
        self._run_callbacks(self.definition.after)

    def _run_callbacks(self, callbacks: tuple[CallbackDescriptor, ...]) -> None:
        for descriptor in callbacks:
            if descriptor.kind is CallbackKind.BLOCK:
                descriptor.block(self.entity)
                continue
            target = resolve_named(self.entity, descriptor.name)
            if target is MISSING:
                raise MissingCallbackMethodError(
                    descriptor.name,
                    type(self.entity),
                    f"Define it in your model: def {descriptor.name}(self): ...",
                )
            if not callable(target):
                raise MissingCallbackMethodError(
                    descriptor.name,
                    type(self.entity),
                    f"Callbacks must be methods; replace the attribute with def {descriptor.name}(self): ...",
                    not_callable=True,
                )
            target()

    def _log(self, event: str, level: int, exc_info: bool = False, **fields: Any) -> None:
        logger.log(
            level,
            event,
            exc_info=exc_info,
            extra={"event": event, "context": build_log_event(event, self.log_context, **fields)},
        )
