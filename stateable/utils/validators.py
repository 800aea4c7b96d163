"""Name normalization and the field-level error collection used by entities."""

from __future__ import annotations

import enum
from collections.abc import Iterator
from typing import Any

BASE_FIELD = "base"


def normalize_name(value: Any, kind: str = "name") -> str:
    """Return the canonical string form of a state or event name.

    ``str``-valued enum members are reduced to their value so models can
    declare states with the same enums they use elsewhere.
    """
    if isinstance(value, enum.Enum):
        value = value.value
    if not isinstance(value, str):
        raise TypeError(f"{kind} must be a string, got {type(value).__name__}")
    cleaned = value.strip()
    if not cleaned:
        raise ValueError(f"{kind} must not be blank")
    return cleaned


def humanize(field: str) -> str:
    return field.replace("_", " ").strip().capitalize()


class ValidationErrors:
    """Mapping of field name to accumulated messages."""

    def __init__(self) -> None:
        self._messages: dict[str, list[str]] = {}

    def add(self, field: str, message: str) -> None:
        self._messages.setdefault(field, []).append(message)

    def clear(self) -> None:
        self._messages.clear()

    def messages(self) -> dict[str, list[str]]:
        return {field: list(items) for field, items in self._messages.items()}

    def full_messages(self) -> list[str]:
        rendered: list[str] = []
        for field, items in self._messages.items():
            for message in items:
                rendered.append(message if field == BASE_FIELD else f"{humanize(field)} {message}")
        return rendered

    def __getitem__(self, field: str) -> list[str]:
        return list(self._messages.get(field, []))

    def __contains__(self, field: object) -> bool:
        return field in self._messages

    def __iter__(self) -> Iterator[str]:
        return iter(self._messages)

    def __len__(self) -> int:
        return sum(len(items) for items in self._messages.values())

    def __bool__(self) -> bool:
        return any(self._messages.values())

    def __repr__(self) -> str:
        return f"ValidationErrors({self._messages!r})"
