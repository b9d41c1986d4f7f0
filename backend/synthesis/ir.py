"""Intermediate representation for synthesized mapping templates.

A template is a tree of JSON-shaped containers whose leaves are either
fixed literals or references into the source message. Conditionals gate
members or items on the presence of a source path. The tree carries no
syntax; ``synthesis.liquid`` turns it into template text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union


@dataclass(frozen=True)
class Literal:
    """A fixed JSON scalar."""

    value: str | int | float | bool | None


@dataclass(frozen=True)
class FieldRef:
    """A value read from the source message.

    Attributes:
        path: Source path, e.g. ``patient.name[0].family``
        filters: Filters applied in order, e.g. ``("downcase",)``
        raw: Emit the value unquoted (numbers and booleans)
    """

    path: str
    filters: tuple[str, ...] = ()
    raw: bool = False


@dataclass(frozen=True)
class ValueLookup:
    """Translate a source value through a lookup table.

    The source value is lowercased before matching; unmatched input
    yields ``default``. With an empty table the lowercased value is
    emitted as-is.
    """

    path: str
    cases: tuple[tuple[str, str], ...]
    default: str
    variable: str = "lookup_value"


@dataclass(frozen=True)
class EstimatedBirthDate:
    """January 1st of ``reference_year`` minus the age at ``age_path``."""

    age_path: str
    reference_year: int


Value = Union[Literal, FieldRef, ValueLookup, EstimatedBirthDate, "ObjectNode", "ArrayNode"]


@dataclass(frozen=True)
class Member:
    key: str
    value: Value


@dataclass(frozen=True)
class Conditional:
    """Entries emitted only when ``path`` is present in the source message.

    Inside an ObjectNode the body holds Members; inside an ArrayNode it
    holds values.
    """

    path: str
    body: tuple = ()


@dataclass(frozen=True)
class ObjectNode:
    members: tuple[Member | Conditional, ...] = field(default_factory=tuple)

    def get(self, key: str) -> Value | None:
        """Get the value of a top-level member, looking inside conditionals."""
        for entry in self.members:
            if isinstance(entry, Member) and entry.key == key:
                return entry.value
            if isinstance(entry, Conditional):
                for inner in entry.body:
                    if isinstance(inner, Member) and inner.key == key:
                        return inner.value
        return None

    def keys(self) -> list[str]:
        result: list[str] = []
        for entry in self.members:
            if isinstance(entry, Member):
                result.append(entry.key)
            elif isinstance(entry, Conditional):
                result.extend(inner.key for inner in entry.body if isinstance(inner, Member))
        return result


@dataclass(frozen=True)
class ArrayNode:
    """Repeated block of entries."""

    items: tuple = ()

    def __len__(self) -> int:
        return len(self.items)


def conditional_member(path: str, key: str, value: Value) -> Conditional:
    return Conditional(path=path, body=(Member(key, value),))


def field_member(key: str, path: str, *filters: str) -> Conditional:
    """A string member copied from ``path`` when present."""
    return conditional_member(path, key, FieldRef(path, tuple(filters)))
