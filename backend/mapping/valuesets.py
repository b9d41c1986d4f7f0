"""Canonical code tables for coded FHIR Patient fields.

The resolver supplies, per value set, the valid codes, a default code,
display strings and a normalization from free-form input to a canonical
code. Template synthesis and field detection receive a resolver through
their constructors; nothing here is global mutable state.

Reference:
- http://hl7.org/fhir/valueset-administrative-gender.html
- http://hl7.org/fhir/valueset-name-use.html
- http://hl7.org/fhir/valueset-contact-point-system.html
- http://hl7.org/fhir/valueset-contact-point-use.html
- http://hl7.org/fhir/valueset-address-use.html
- http://hl7.org/fhir/valueset-address-type.html
- http://hl7.org/fhir/valueset-marital-status.html
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Protocol

ADMINISTRATIVE_GENDER = "administrative-gender"
NAME_USE = "name-use"
CONTACT_POINT_SYSTEM = "contact-point-system"
CONTACT_POINT_USE = "contact-point-use"
ADDRESS_USE = "address-use"
ADDRESS_TYPE = "address-type"
MARITAL_STATUS = "marital-status"


class CodeResolver(Protocol):
    """Code lookup capability consumed by detection and synthesis."""

    def valid_codes(self, category: str) -> list[str]: ...

    def default_code(self, category: str) -> str: ...

    def display(self, category: str, code: str) -> str: ...

    def normalize(self, category: str, value: object) -> str: ...

    def synonyms(self, category: str) -> Mapping[str, str]: ...


@dataclass(frozen=True)
class ValueSet:
    """One code table with its free-text synonyms."""

    name: str
    concepts: tuple[tuple[str, str], ...]  # (code, display)
    default: str
    fallback: str
    synonyms: Mapping[str, str] = field(default_factory=dict)

    @property
    def codes(self) -> list[str]:
        return [code for code, _ in self.concepts]


VALUE_SETS: dict[str, ValueSet] = {
    ADMINISTRATIVE_GENDER: ValueSet(
        name=ADMINISTRATIVE_GENDER,
        concepts=(
            ("male", "Male"),
            ("female", "Female"),
            ("other", "Other"),
            ("unknown", "Unknown"),
        ),
        default="unknown",
        fallback="unknown",
        synonyms={
            "m": "male",
            "male": "male",
            "man": "male",
            "f": "female",
            "female": "female",
            "woman": "female",
            "o": "other",
            "other": "other",
            "u": "unknown",
            "unknown": "unknown",
            "n/a": "unknown",
            "na": "unknown",
            "null": "unknown",
        },
    ),
    NAME_USE: ValueSet(
        name=NAME_USE,
        concepts=(
            ("usual", "Usual"),
            ("official", "Official"),
            ("temp", "Temp"),
            ("nickname", "Nickname"),
            ("anonymous", "Anonymous"),
            ("old", "Old"),
            ("maiden", "Name changed for Marriage"),
        ),
        default="official",
        fallback="official",
        synonyms={
            "legal": "official",
            "primary": "official",
            "main": "official",
            "nick": "nickname",
            "preferred": "usual",
            "common": "usual",
            "birth": "maiden",
            "temporary": "temp",
        },
    ),
    CONTACT_POINT_SYSTEM: ValueSet(
        name=CONTACT_POINT_SYSTEM,
        concepts=(
            ("phone", "Phone"),
            ("fax", "Fax"),
            ("email", "Email"),
            ("pager", "Pager"),
            ("url", "URL"),
            ("sms", "SMS"),
            ("other", "Other"),
        ),
        default="phone",
        fallback="other",
        synonyms={
            "telephone": "phone",
            "tel": "phone",
            "mobile": "phone",
            "cell": "phone",
            "landline": "phone",
            "e-mail": "email",
            "mail": "email",
            "website": "url",
            "web": "url",
            "homepage": "url",
            "facsimile": "fax",
            "text": "sms",
            "beeper": "pager",
        },
    ),
    CONTACT_POINT_USE: ValueSet(
        name=CONTACT_POINT_USE,
        concepts=(
            ("home", "Home"),
            ("work", "Work"),
            ("temp", "Temp"),
            ("old", "Old"),
            ("mobile", "Mobile"),
        ),
        default="home",
        fallback="home",
        synonyms={
            "personal": "home",
            "primary": "home",
            "residence": "home",
            "residential": "home",
            "business": "work",
            "office": "work",
            "workplace": "work",
            "job": "work",
            "emergency": "temp",
            "temporary": "temp",
            "cell": "mobile",
            "cellular": "mobile",
        },
    ),
    ADDRESS_USE: ValueSet(
        name=ADDRESS_USE,
        concepts=(
            ("home", "Home"),
            ("work", "Work"),
            ("temp", "Temporary"),
            ("old", "Old / Incorrect"),
            ("billing", "Billing"),
        ),
        default="home",
        fallback="home",
        synonyms={
            "personal": "home",
            "residence": "home",
            "residential": "home",
            "primary": "home",
            "business": "work",
            "office": "work",
            "workplace": "work",
            "job": "work",
            "temporary": "temp",
            "current": "temp",
            "invoice": "billing",
            "payment": "billing",
            "previous": "old",
            "former": "old",
        },
    ),
    ADDRESS_TYPE: ValueSet(
        name=ADDRESS_TYPE,
        concepts=(
            ("postal", "Postal"),
            ("physical", "Physical"),
            ("both", "Postal & Physical"),
        ),
        default="both",
        fallback="both",
        synonyms={
            "mailing": "postal",
            "mail": "postal",
            "shipping": "postal",
            "delivery": "postal",
            "street": "physical",
            "residence": "physical",
            "location": "physical",
            "building": "physical",
            "all": "both",
        },
    ),
    MARITAL_STATUS: ValueSet(
        name=MARITAL_STATUS,
        concepts=(
            ("A", "Annulled"),
            ("D", "Divorced"),
            ("I", "Interlocutory"),
            ("L", "Legally Separated"),
            ("M", "Married"),
            ("C", "Common Law"),
            ("P", "Polygamous"),
            ("T", "Domestic partner"),
            ("U", "unmarried"),
            ("S", "Never Married"),
            ("W", "Widowed"),
            ("UNK", "unknown"),
        ),
        default="UNK",
        fallback="UNK",
        synonyms={
            "annulled": "A",
            "divorced": "D",
            "separated": "L",
            "married": "M",
            "common law": "C",
            "domestic partner": "T",
            "partner": "T",
            "unmarried": "U",
            "single": "S",
            "never married": "S",
            "widowed": "W",
            "widow": "W",
            "widower": "W",
            "unknown": "UNK",
        },
    ),
}


class StaticCodeResolver:
    """Code resolver over in-memory value set tables.

    Attributes:
        value_sets: Read-only mapping of value set name to ValueSet
    """

    def __init__(self, value_sets: Mapping[str, ValueSet] | None = None) -> None:
        self.value_sets = MappingProxyType(dict(value_sets or VALUE_SETS))

    def _value_set(self, category: str) -> ValueSet:
        try:
            return self.value_sets[category]
        except KeyError:
            raise KeyError(f"Unknown value set: {category}") from None

    def valid_codes(self, category: str) -> list[str]:
        return self._value_set(category).codes

    def default_code(self, category: str) -> str:
        return self._value_set(category).default

    def display(self, category: str, code: str) -> str:
        """Get the display string for a code, or the code itself if unknown."""
        for concept_code, display in self._value_set(category).concepts:
            if concept_code == code:
                return display
        return code

    def is_valid(self, category: str, code: str) -> bool:
        return code in self._value_set(category).codes

    def normalize(self, category: str, value: object) -> str:
        """Map free-form input to a canonical code.

        Matching is case-insensitive against the codes first, then the
        synonym table. Empty input yields the default code; anything
        unrecognized yields the value set's fallback code.
        """
        value_set = self._value_set(category)
        if value is None:
            return value_set.default
        text = str(value).strip()
        if not text:
            return value_set.default

        lower = text.lower()
        for code in value_set.codes:
            if code.lower() == lower:
                return code

        mapped = value_set.synonyms.get(lower)
        if mapped is not None and mapped in value_set.codes:
            return mapped
        return value_set.fallback

    def synonyms(self, category: str) -> Mapping[str, str]:
        """Get every recognized lowercase literal with its canonical code."""
        value_set = self._value_set(category)
        table = {code.lower(): code for code in value_set.codes}
        table.update(value_set.synonyms)
        return MappingProxyType(table)
