"""Serialize template IR trees to Liquid template text.

The output is JSON-shaped Liquid for the FHIR converter: source values
are read from ``msg`` and optional entries sit in ``{% if ... != nil %}``
blocks. The comma after an entry is itself guarded when only optional
entries follow it, so the rendered document is valid JSON whichever
source fields are present.
"""

from __future__ import annotations

import json
import re

from .ir import (
    ArrayNode,
    Conditional,
    EstimatedBirthDate,
    FieldRef,
    Literal,
    Member,
    ObjectNode,
    ValueLookup,
)

MESSAGE_ROOT = "msg"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_SEGMENT = re.compile(r"^([^\[\]]*)((?:\[\d+\])*)$")


def liquid_path(path: str) -> str:
    """Convert a source path to a Liquid variable reference.

    ``patient.name[0].family`` becomes ``msg.patient.name[0].family``;
    keys that are not plain identifiers use bracket notation, e.g.
    ``msg["first-name"]``.
    """
    parts = [MESSAGE_ROOT]
    for segment in path.split("."):
        match = _SEGMENT.match(segment)
        if match is None:
            parts.append(f"[{json.dumps(segment)}]")
            continue
        key, indices = match.groups()
        if key:
            parts.append(f".{key}" if _IDENTIFIER.match(key) else f"[{json.dumps(key)}]")
        parts.append(indices)
    return "".join(parts)


def _liquid_string(text: str) -> str:
    if "'" in text:
        return json.dumps(text)
    return f"'{text}'"


def _output(path: str, filters: tuple[str, ...]) -> str:
    expression = " | ".join((liquid_path(path), *filters))
    return f"{{{{ {expression} }}}}"


class LiquidRenderer:
    """Render IR nodes as indented Liquid text."""

    def __init__(self, indent: int = 4) -> None:
        self.indent = indent

    def render(self, node: ObjectNode | ArrayNode) -> str:
        return "\n".join(self._value_lines(node, 0))

    def _pad(self, level: int) -> str:
        return " " * (self.indent * level)

    def _value_lines(self, value: object, level: int) -> list[str]:
        """Lines for a value; the first line carries no indentation."""
        if isinstance(value, Literal):
            return [json.dumps(value.value)]
        if isinstance(value, FieldRef):
            text = _output(value.path, value.filters)
            return [text if value.raw else f'"{text}"']
        if isinstance(value, EstimatedBirthDate):
            year = f"{{{{ {value.reference_year} | minus: {liquid_path(value.age_path)} }}}}"
            return [f'"{year}-01-01"']
        if isinstance(value, ValueLookup):
            return self._lookup_lines(value, level)
        if isinstance(value, ObjectNode):
            return self._container_lines(value.members, "{", "}", level)
        if isinstance(value, ArrayNode):
            return self._container_lines(value.items, "[", "]", level)
        raise TypeError(f"Cannot render {type(value).__name__}")

    def _lookup_lines(self, lookup: ValueLookup, level: int) -> list[str]:
        inner = self._pad(level + 1)
        assign = (
            f"{{% assign {lookup.variable} = {liquid_path(lookup.path)} | downcase -%}}"
        )
        if not lookup.cases:
            return [assign, f'{inner}"{{{{ {lookup.variable} }}}}"']
        lines = [assign, f"{inner}{{% case {lookup.variable} -%}}"]
        for source, target in lookup.cases:
            lines.append(
                f"{inner}{self._pad(1)}{{% when {_liquid_string(source)} -%}}{json.dumps(target)}"
            )
        lines.append(f"{inner}{self._pad(1)}{{% else -%}}{json.dumps(lookup.default)}")
        lines.append(f"{inner}{{% endcase -%}}")
        return lines

    def _container_lines(
        self, entries: tuple, opening: str, closing: str, level: int
    ) -> list[str]:
        if not entries:
            return [opening + closing]
        lines = [opening]
        for index, entry in enumerate(entries):
            separator = _separator(entries[index + 1 :])
            lines.extend(self._entry_lines(entry, level + 1, separator))
        lines.append(self._pad(level) + closing)
        return lines

    def _entry_lines(self, entry: object, level: int, separator: str) -> list[str]:
        pad = self._pad(level)
        if isinstance(entry, Conditional):
            lines = [f"{pad}{{% if {_is_present(entry.path)} -%}}"]
            for index, inner in enumerate(entry.body):
                is_last = index == len(entry.body) - 1
                lines.extend(self._entry_lines(inner, level, separator if is_last else ","))
            lines.append(f"{pad}{{% endif -%}}")
            return lines

        if isinstance(entry, Member):
            value_lines = self._value_lines(entry.value, level)
            value_lines[0] = f"{pad}{json.dumps(entry.key)}: {value_lines[0]}"
        else:
            value_lines = self._value_lines(entry, level)
            value_lines[0] = pad + value_lines[0]
        value_lines[-1] += separator
        return value_lines


def _is_present(path: str) -> str:
    # A nil check keeps present false, 0 and "" values
    return f"{liquid_path(path)} != nil"


def _separator(following: tuple) -> str:
    """Comma emitted after an entry, given the entries that follow it.

    The comma is unconditional when any later entry always renders, and
    guarded on the later presence checks when every later entry is
    conditional.
    """
    if not following:
        return ""
    paths: list[str] = []
    for entry in following:
        if not isinstance(entry, Conditional):
            return ","
        if entry.path not in paths:
            paths.append(entry.path)
    condition = " or ".join(_is_present(path) for path in paths)
    return f"{{% if {condition} %}},{{% endif %}}"


def render_liquid(node: ObjectNode | ArrayNode, indent: int = 4) -> str:
    """Render a template tree to Liquid text."""
    return LiquidRenderer(indent).render(node)
