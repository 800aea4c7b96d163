from __future__ import annotations

import dataclasses
import enum

import pytest

from stateable.core.exceptions import ConfigurationError
from stateable.orchestration.configurator import Configurator, build_graph
from stateable.orchestration.graph import CallbackKind, GuardKind


class Phase(str, enum.Enum):
    DRAFT = "draft"
    LIVE = "live"


def _basic(sm: Configurator) -> None:
    sm.declare_state("draft", initial=True)
    sm.declare_state("review")
    sm.declare_state("published")
    sm.declare_transition("submit", source="draft", to="review")
    sm.declare_transition("approve", source="review", to="published")
    sm.declare_transition("reject", source=["review", "published"], to="draft")


def test_build_graph_preserves_declaration_order():
    graph = build_graph(_basic)

    assert graph.states == ("draft", "review", "published")
    assert graph.initial_state == "draft"
    assert graph.events == ("submit", "approve", "reject")
    assert graph.transition_for("reject").sources == frozenset({"review", "published"})
    assert graph.events_from("review") == ["approve", "reject"]
    assert graph.events_from("unknown") == []


def test_duplicate_state_is_rejected():
    sm = Configurator("Article")
    sm.declare_state("draft")
    with pytest.raises(ConfigurationError, match="already defined"):
        sm.declare_state("draft")


def test_second_initial_state_is_rejected():
    sm = Configurator()
    sm.declare_state("draft", initial=True)
    with pytest.raises(ConfigurationError, match="Initial state already defined"):
        sm.declare_state("live", initial=True)


def test_duplicate_event_is_rejected():
    sm = Configurator()
    sm.declare_state("a")
    sm.declare_state("b")
    sm.declare_transition("go", source="a", to="b")
    with pytest.raises(ConfigurationError, match="already defined"):
        sm.declare_transition("go", source="b", to="a")


def test_forward_state_references_are_rejected():
    sm = Configurator()
    sm.declare_state("a")
    with pytest.raises(ConfigurationError, match="Unknown state 'b'"):
        sm.declare_transition("go", source="a", to="b")
    with pytest.raises(ConfigurationError, match="Unknown state 'c'"):
        sm.declare_transition("back", source=["a", "c"], to="a")


def test_empty_sources_are_rejected():
    sm = Configurator()
    sm.declare_state("a")
    with pytest.raises(ConfigurationError, match="at least one source"):
        sm.declare_transition("go", source=[], to="a")


def test_blank_or_non_string_names_are_rejected():
    sm = Configurator()
    with pytest.raises(ConfigurationError):
        sm.declare_state("  ")
    with pytest.raises(ConfigurationError):
        sm.declare_state(42)


def test_enum_members_are_normalized_to_values():
    def define(sm: Configurator) -> None:
        sm.declare_state(Phase.DRAFT, initial=True)
        sm.declare_state(Phase.LIVE)
        sm.declare_transition("launch", source=Phase.DRAFT, to=Phase.LIVE)

    graph = build_graph(define)

    assert graph.states == ("draft", "live")
    assert graph.transition_for("launch").destination == "live"


@pytest.mark.parametrize(
    "call",
    [
        lambda sm: sm.guard(lambda entity: True),
        lambda sm: sm.validate(lambda entity: None),
        lambda sm: sm.before("prepare"),
        lambda sm: sm.after("notify"),
        lambda sm: sm.around(lambda entity, proceed: proceed()),
    ],
)
def test_builder_calls_outside_a_transition_body_are_rejected(call):
    sm = Configurator()
    with pytest.raises(ConfigurationError, match="inside a transition body"):
        call(sm)


@pytest.mark.parametrize(
    "call",
    [
        lambda sm: sm.guard(),
        lambda sm: sm.validate(),
        lambda sm: sm.before(),
        lambda sm: sm.after(),
        lambda sm: sm.around(),
        lambda sm: sm.validate("not_a_block"),
    ],
)
def test_builder_calls_without_arguments_are_rejected(call):
    sm = Configurator()
    sm.declare_state("a")
    with pytest.raises(ConfigurationError):
        sm.declare_transition("go", source="a", to="a", body=call)


def test_transition_body_records_descriptors_in_order():
    def body(sm: Configurator) -> None:
        sm.guard(lambda entity: True)
        sm.guard("ready")
        sm.guard(predicate="is_publishable")
        sm.validate(lambda entity: None)
        sm.before("prepare")
        sm.before(lambda entity: None)
        sm.after("notify")
        sm.around(lambda entity, proceed: proceed())

    sm = Configurator()
    sm.declare_state("a")
    sm.declare_transition("go", source="a", to="a", body=body)
    definition = sm.finalize().transition_for("go")

    assert [guard.kind for guard in definition.guards] == [GuardKind.BLOCK, GuardKind.METHOD, GuardKind.PREDICATE]
    assert [guard.name for guard in definition.guards] == [None, "ready", "is_publishable"]
    assert len(definition.validations) == 1
    assert [callback.kind for callback in definition.before] == [CallbackKind.METHOD, CallbackKind.BLOCK]
    assert definition.after[0].name == "notify"
    assert len(definition.around) == 1


def test_builder_context_is_closed_after_the_body_runs():
    sm = Configurator()
    sm.declare_state("a")
    sm.declare_transition("go", source="a", to="a", body=lambda t: t.guard("ready"))

    with pytest.raises(ConfigurationError):
        sm.guard("ready")


def test_finalize_is_idempotent_and_freezes_the_graph():
    sm = Configurator()
    _basic(sm)

    graph = sm.finalize()

    assert sm.finalize() is graph
    with pytest.raises(dataclasses.FrozenInstanceError):
        graph.initial_state = "review"
    with pytest.raises(TypeError):
        graph.transitions["submit"] = None
    with pytest.raises(ConfigurationError, match="already finalized"):
        sm.declare_state("archived")


def test_history_table_defaults_to_config_and_can_be_overridden():
    assert build_graph(_basic).history_table_name == "state_transitions"

    def custom(sm: Configurator) -> None:
        _basic(sm)
        sm.set_history_table_name("article_transitions")

    assert build_graph(custom).history_table_name == "article_transitions"


def test_invalid_history_table_name_is_rejected():
    sm = Configurator()
    with pytest.raises(ConfigurationError):
        sm.set_history_table_name("drop table;")
