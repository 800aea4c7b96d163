from __future__ import annotations

import pytest
from sqlalchemy import Integer
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from stateable import ConfigurationError, NotEnabledError, StateableMixin


class LocalBase(DeclarativeBase):
    pass


def test_forward_reference_fails_when_the_class_is_defined():
    with pytest.raises(ConfigurationError, match="Declare it with declare_state\\('live'\\) first"):

        class Broken(StateableMixin, LocalBase):
            __tablename__ = "broken_forward"

            id: Mapped[int] = mapped_column(Integer, primary_key=True)

            @classmethod
            def define_states(cls, sm) -> None:
                sm.declare_state("draft", initial=True)
                sm.declare_transition("launch", source="draft", to="live")


def test_generated_names_may_not_shadow_model_attributes():
    with pytest.raises(ConfigurationError, match="Shadowing.close already exists"):

        class Shadowing(StateableMixin, LocalBase):
            __tablename__ = "shadowing"

            id: Mapped[int] = mapped_column(Integer, primary_key=True)

            def close(self) -> None:
                pass

            @classmethod
            def define_states(cls, sm) -> None:
                sm.declare_state("open", initial=True)
                sm.declare_state("closed")
                sm.declare_transition("close", source="open", to="closed")


def test_subclasses_inherit_the_compiled_machine():
    class Vehicle(StateableMixin, LocalBase):
        __tablename__ = "vehicles"

        id: Mapped[int] = mapped_column(Integer, primary_key=True)

        @classmethod
        def define_states(cls, sm) -> None:
            sm.declare_state("parked", initial=True)
            sm.declare_state("moving")
            sm.declare_transition("drive", source="parked", to="moving")

    class Truck(Vehicle):
        pass

    assert Truck.state_machine() is Vehicle.state_machine()
    assert Truck().state == "parked"
    assert Truck.drive is Vehicle.drive


def test_generated_methods_only_exist_for_identifier_names():
    class Ticket(StateableMixin, LocalBase):
        __tablename__ = "tickets"

        id: Mapped[int] = mapped_column(Integer, primary_key=True)

        @classmethod
        def define_states(cls, sm) -> None:
            sm.declare_state("to do", initial=True)
            sm.declare_state("done")
            sm.declare_transition("finish", source="to do", to="done")

    assert Ticket.state_machine().states == ("to do", "done")
    assert hasattr(Ticket, "is_done")
    assert not hasattr(Ticket, "is_to do")
    assert Ticket().is_done() is False


def test_models_without_a_definition_are_not_enabled(session, note_model):
    note = note_model()
    session.add(note)
    session.commit()

    assert note_model.stateable_enabled() is False
    assert note.state is None
    assert note.can_transition_to("anything") is False
    with pytest.raises(NotEnabledError, match="define_states"):
        note.transition_to("anything")
    with pytest.raises(NotEnabledError):
        note_model.state_machine()
    assert note.to_dict(include_transition_history=True) == {"id": note.id, "state": None}
