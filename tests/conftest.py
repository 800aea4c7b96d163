from __future__ import annotations

import pytest
from sqlalchemy import Integer, String, create_engine
from sqlalchemy.orm import Mapped, mapped_column, sessionmaker

from stateable import Base, StateableMixin


class Article(StateableMixin, Base):
    __tablename__ = "articles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str | None] = mapped_column(String(200))

    @classmethod
    def define_states(cls, sm) -> None:
        sm.declare_state("draft", initial=True)
        sm.declare_state("review")
        sm.declare_state("published")
        sm.declare_transition(
            "submit",
            source="draft",
            to="review",
            body=lambda t: t.guard(lambda article: bool(article.title)),
        )
        sm.declare_transition("approve", source="review", to="published")


class Order(StateableMixin, Base):
    __tablename__ = "orders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    customer: Mapped[str] = mapped_column(String(100), nullable=False)
    item_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    hold_payment = False
    fail_notifications = False

    @classmethod
    def define_states(cls, sm) -> None:
        sm.set_history_table_name("order_transitions")
        sm.declare_state("pending", initial=True)
        sm.declare_state("confirmed")
        sm.declare_state("paid")
        sm.declare_state("cancelled")
        sm.declare_transition("confirm", source="pending", to="confirmed", body=cls._confirming)
        sm.declare_transition("pay", source="confirmed", to="paid", body=cls._paying)
        sm.declare_transition("cancel", source=["pending", "confirmed"], to="cancelled")

    @classmethod
    def _confirming(cls, t) -> None:
        t.guard("has_items")
        t.guard(predicate="is_payable")
        t.validate(cls._total_must_be_positive)
        t.around(cls._wrap("outer"))
        t.around(cls._wrap("inner"))
        t.before("record_before")
        t.after("notify")

    @staticmethod
    def _paying(t) -> None:
        t.around(lambda order, proceed: None if order.hold_payment else proceed())

    @staticmethod
    def _total_must_be_positive(order: "Order") -> None:
        if order.total <= 0:
            order.errors.add("total", "must be positive")

    @staticmethod
    def _wrap(label: str):
        def around(order: "Order", proceed) -> None:
            order.calls.append(f"{label}:before")
            proceed()
            order.calls.append(f"{label}:after")

        return around

    @property
    def calls(self) -> list[str]:
        return self.__dict__.setdefault("_calls", [])

    def has_items(self) -> bool:
        return self.item_count > 0

    def is_payable(self) -> bool:
        return self.customer != "blocked"

    def record_before(self) -> None:
        self.calls.append("before")

    def notify(self) -> None:
        if self.fail_notifications:
            raise RuntimeError("mail server unavailable")
        self.calls.append("after")


class Note(StateableMixin, Base):
    __tablename__ = "notes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)


@pytest.fixture
def session_factory():
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def session(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def article(session):
    item = Article(title=None)
    session.add(item)
    session.commit()
    return item


@pytest.fixture
def order(session):
    item = Order(customer="acme", item_count=2, total=50)
    session.add(item)
    session.commit()
    return item


@pytest.fixture
def article_model():
    return Article


@pytest.fixture
def order_model():
    return Order


@pytest.fixture
def note_model():
    return Note
