"""Custom exceptions for the stateable engine.

Every error carries Sentry-style payloads so callers can forward them
unchanged to an error tracker:

- ``tags``: filterable, string-valued metadata (error category, module, ...)
- ``context``: high-level structured metadata (model class, states)
- ``extra``: detailed debug data with every error-specific parameter
"""

from __future__ import annotations

from typing import Any


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


class StateableError(Exception):
    """Base exception for the stateable engine."""

    def __init__(self, message: str | None = None) -> None:
        if not hasattr(self, "tags"):
            self.tags: dict[str, str] = {}
        if not hasattr(self, "context"):
            self.context: dict[str, Any] = {}
        if not hasattr(self, "extra"):
            self.extra: dict[str, Any] = {}
        super().__init__(message)

    def _build_tags(self, error_category: str, **custom_tags: Any) -> dict[str, str]:
        tags = {"error_category": error_category, "module": "stateable"}
        tags.update({key: str(value) for key, value in _compact(custom_tags).items()})
        return tags

    @staticmethod
    def _build_context(model_class: type | None = None, **custom_context: Any) -> dict[str, Any]:
        context: dict[str, Any] = {}
        if model_class is not None:
            context["model_class"] = model_class.__name__
        context.update(_compact(custom_context))
        return context


class ConfigurationError(StateableError, ValueError):
    """Raised when a state machine definition or runtime configuration is invalid."""

    pass


class NotEnabledError(StateableError):
    """Raised when state machine methods are used on a type without a definition."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message or "Stateable is not enabled. Define `define_states(cls, sm)` on your model."
        )


class NotPersistedError(StateableError):
    """Raised when an entity is not attached to a database session."""

    pass


class InvalidStateError(StateableError):
    """Raised when an entity is saved with a state that was never declared."""

    def __init__(self, state: Any, model_class: type | None = None) -> None:
        self.state = state
        self.model_class = model_class
        self.tags = self._build_tags("invalid_state", state=state)
        self.context = self._build_context(model_class=model_class)
        self.extra = _compact({"state": state})
        super().__init__(f"Invalid state: {state!r}")


class InvalidTransitionError(StateableError):
    """Raised when an event is unknown or not allowed from the current state."""

    def __init__(
        self,
        event: str,
        from_state: str | None,
        to_state: str | None,
        model_class: type | None = None,
    ) -> None:
        self.event = event
        self.from_state = from_state
        self.to_state = to_state
        self.model_class = model_class
        self.tags = self._build_tags(
            "transition", event=event, from_state=from_state, to_state=to_state
        )
        self.context = self._build_context(model_class=model_class)
        self.extra = _compact({"event": event, "from_state": from_state, "to_state": to_state})
        super().__init__(
            f"Cannot transition from {from_state!r} to {to_state!r} via {event!r}"
        )


class CheckFailedError(StateableError):
    """Raised when a transition guard returns a falsy value."""

    def __init__(
        self,
        event: str,
        check_description: str | None = None,
        check_type: str | None = None,
        current_state: str | None = None,
        model_class: type | None = None,
    ) -> None:
        self.event = event
        self.check_description = check_description
        self.check_type = check_type
        self.current_state = current_state
        self.model_class = model_class
        self.tags = self._build_tags("check_failed", event=event, check_type=check_type)
        self.context = self._build_context(model_class=model_class, current_state=current_state)
        self.extra = _compact(
            {
                "event": event,
                "check_description": check_description,
                "check_type": check_type,
                "current_state": current_state,
            }
        )
        message = f"Check failed for transition {event!r}"
        if check_description:
            message += f": {check_description}"
        super().__init__(message)


GuardFailedError = CheckFailedError


class ValidationFailedError(StateableError):
    """Raised when transition validations accumulate field-level errors."""

    def __init__(
        self,
        event: str,
        errors: dict[str, list[str]],
        full_messages: list[str],
        current_state: str | None = None,
        target_state: str | None = None,
        model_class: type | None = None,
    ) -> None:
        self.event = event
        self.errors = errors
        self.full_messages = full_messages
        self.current_state = current_state
        self.target_state = target_state
        self.model_class = model_class
        self.tags = self._build_tags("validation", event=event)
        self.context = self._build_context(
            model_class=model_class, current_state=current_state, target_state=target_state
        )
        self.extra = {"event": event, "error_fields": sorted(errors), "errors": errors}
        super().__init__(
            f"Validation failed for transition {event!r}: {', '.join(full_messages)}"
        )


class MissingMethodError(StateableError, AttributeError):
    """Raised when a named guard or callback method is not defined on the entity, or is not callable."""

    kind = "method"

    def __init__(self, name: str, model_class: type, hint: str, not_callable: bool = False) -> None:
        self.method_name = name
        self.model_class = model_class
        self.not_callable = not_callable
        self.tags = self._build_tags(
            "not_callable" if not_callable else "missing_method", method=name, kind=self.kind
        )
        self.context = self._build_context(model_class=model_class)
        self.extra = {"method": name, "not_callable": not_callable}
        problem = "is not callable on" if not_callable else "not found in"
        super().__init__(f"{self.kind.capitalize()} '{name}' {problem} {model_class.__name__}. {hint}")


class MissingGuardMethodError(MissingMethodError):
    """Raised when a method or predicate guard names an undefined method."""

    kind = "check"


class MissingCallbackMethodError(MissingMethodError):
    """Raised when a before/after callback names an undefined method."""

    kind = "callback"
