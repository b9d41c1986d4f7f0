"""Passthrough templates for input that is already shaped like FHIR.

Such documents need no semantic detection: every canonical field present
in the sample is copied from the same path, element by element.
"""

from __future__ import annotations

from typing import Any

from .ir import (
    ArrayNode,
    Conditional,
    FieldRef,
    Literal,
    Member,
    ObjectNode,
    field_member,
)

CANONICAL_LIST_FIELDS = ("name", "identifier", "telecom", "address", "contact")

HUMAN_NAME_FIELDS = ("use", "text", "family")
HUMAN_NAME_LIST_FIELDS = ("given", "prefix", "suffix")
IDENTIFIER_FIELDS = ("use", "system", "value")
CONTACT_POINT_FIELDS = ("system", "value", "use")
ADDRESS_FIELDS = ("use", "type", "text")
ADDRESS_TRAILING_FIELDS = ("city", "district", "state", "postalCode", "country")


def is_canonical(document: Any) -> bool:
    """Check whether a document already follows FHIR Patient conventions.

    True when it declares a ``resourceType`` or holds a non-empty list of
    objects under any of name, identifier, telecom, address or contact.
    """
    if not isinstance(document, dict):
        return False
    resource_type = document.get("resourceType")
    if isinstance(resource_type, str) and resource_type:
        return True
    return any(
        isinstance(document.get(key), list)
        and document[key]
        and isinstance(document[key][0], dict)
        for key in CANONICAL_LIST_FIELDS
    )


def _present(element: dict[str, Any], key: str) -> bool:
    value = element.get(key)
    return value is not None and value != "" and value != []


def _scalar_members(element: dict[str, Any], base: str, keys: tuple[str, ...]) -> list:
    return [field_member(key, f"{base}.{key}") for key in keys if _present(element, key)]


def _string_list_member(element: dict[str, Any], base: str, key: str) -> Conditional | None:
    values = element.get(key)
    if not isinstance(values, list) or not values:
        return None
    items = tuple(FieldRef(f"{base}.{key}[{index}]") for index in range(len(values)))
    return Conditional(path=f"{base}.{key}", body=(Member(key, ArrayNode(items)),))


def _human_name(element: dict[str, Any], base: str) -> ObjectNode:
    members = _scalar_members(element, base, HUMAN_NAME_FIELDS)
    for key in HUMAN_NAME_LIST_FIELDS:
        member = _string_list_member(element, base, key)
        if member is not None:
            members.append(member)
    return ObjectNode(tuple(members))


def _contact_point(element: dict[str, Any], base: str) -> ObjectNode:
    return ObjectNode(tuple(_scalar_members(element, base, CONTACT_POINT_FIELDS)))


def _identifier(element: dict[str, Any], base: str) -> ObjectNode:
    return ObjectNode(tuple(_scalar_members(element, base, IDENTIFIER_FIELDS)))


def _address(element: dict[str, Any], base: str) -> ObjectNode:
    members = _scalar_members(element, base, ADDRESS_FIELDS)
    line = _string_list_member(element, base, "line")
    if line is not None:
        members.append(line)
    members.extend(_scalar_members(element, base, ADDRESS_TRAILING_FIELDS))
    return ObjectNode(tuple(members))


def _contact(element: dict[str, Any], base: str) -> ObjectNode:
    members: list = []
    name = element.get("name")
    if isinstance(name, dict):
        members.append(
            Conditional(path=f"{base}.name", body=(Member("name", _human_name(name, f"{base}.name")),))
        )
    telecom = _object_list(element, f"{base}.telecom", "telecom", _contact_point)
    if telecom is not None:
        members.append(telecom)
    return ObjectNode(tuple(members))


def _object_list(document: dict[str, Any], path: str, key: str, build) -> Member | None:
    elements = document.get(key)
    if not isinstance(elements, list) or not elements:
        return None
    items = tuple(
        build(element, f"{path}[{index}]")
        for index, element in enumerate(elements)
        if isinstance(element, dict)
    )
    if not items:
        return None
    return Member(key, ArrayNode(items))


def build_passthrough_template(document: dict[str, Any], resource_type: str = "Patient") -> ObjectNode:
    """Build a template that copies every canonical field present in ``document``."""
    declared = document.get("resourceType")
    members: list = [
        Member("resourceType", Literal(declared if isinstance(declared, str) and declared else resource_type)),
        Member("id", FieldRef("id", ("default: generate_uuid",))),
    ]

    builders = (
        ("identifier", _identifier),
        ("name", _human_name),
        ("telecom", _contact_point),
    )
    for key, build in builders:
        member = _object_list(document, key, key, build)
        if member is not None:
            members.append(member)

    for key in ("gender", "birthDate"):
        if _present(document, key):
            members.append(field_member(key, key))

    for key, build in (("address", _address), ("contact", _contact)):
        member = _object_list(document, key, key, build)
        if member is not None:
            members.append(member)

    return ObjectNode(tuple(members))
