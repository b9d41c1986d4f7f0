"""Field-name pattern rules for semantic field detection.

Each rule is a case-insensitive, word-bounded regular expression tested
against a source field name, with a base confidence and metadata used to
place the field in a FHIR Patient resource. Categories are evaluated in a
fixed order and rules keep their declaration order; match ranking relies
on this ordering for ties.

Reference:
- http://hl7.org/fhir/patient.html
- LOINC vital sign codes: https://loinc.org/
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterator, Literal

Category = Literal[
    "identifier",
    "name",
    "gender",
    "age",
    "telecom",
    "address",
    "clinical",
    "emergency",
]

CATEGORIES: tuple[Category, ...] = (
    "identifier",
    "name",
    "gender",
    "age",
    "telecom",
    "address",
    "clinical",
    "emergency",
)

LOINC = "http://loinc.org"


@dataclass(frozen=True)
class PatternRule:
    """A single field-name matching rule."""

    pattern: re.Pattern[str]
    category: Category
    confidence: float
    system: str | None = None
    use: str | None = None
    component: str | None = None
    code: str | None = None
    type: str | None = None
    label: str | None = None

    def matches(self, field_name: str) -> bool:
        return self.pattern.search(field_name) is not None


def _rule(
    alternatives: str, category: Category, confidence: float, **metadata: str
) -> PatternRule:
    return PatternRule(
        pattern=re.compile(rf"\b({alternatives})\b", re.IGNORECASE),
        category=category,
        confidence=confidence,
        **metadata,
    )


IDENTIFIER_RULES = (
    _rule(r"id|identifier|case|mrn|ssn|social|patient.*id|record.*id|chart.*id", "identifier", 0.9, system="medical-record"),
    _rule(r"uuid|guid", "identifier", 0.95, system="uuid"),
    _rule(r"passport|passport.*number|passport.*id", "identifier", 0.95, system="passport"),
    _rule(r"driver.*license|dl|license.*number", "identifier", 0.9, system="drivers-license"),
    _rule(r"employee.*id|staff.*id|badge.*id", "identifier", 0.85, system="employee-id"),
    _rule(r"student.*id|school.*id|university.*id", "identifier", 0.85, system="student-id"),
    _rule(r"insurance.*id|policy.*number|member.*id", "identifier", 0.85, system="insurance"),
)

NAME_RULES = (
    _rule(r"name|full.*name|patient.*name|display.*name", "name", 0.9, use="official"),
    _rule(r"first.*name|given.*name|forename", "name", 0.95, component="given"),
    _rule(r"last.*name|family.*name|surname|lastname", "name", 0.95, component="family"),
    _rule(r"middle.*name|middle.*initial", "name", 0.9, component="middle"),
    _rule(r"nick.*name|alias|preferred.*name", "name", 0.85, use="nickname"),
    _rule(r"maiden.*name|birth.*name", "name", 0.85, use="maiden"),
    _rule(r"title|prefix|honorific", "name", 0.8, component="prefix"),
    _rule(r"suffix|jr|sr|generation", "name", 0.8, component="suffix"),
)

GENDER_RULES = (
    _rule(r"gender|sex|sexual.*identity", "gender", 0.95),
    _rule(r"male|female|m|f|man|woman|other|unknown", "gender", 0.7),
)

AGE_RULES = (
    _rule(r"age|age.*estimate|years.*old", "age", 0.9),
    _rule(r"birth.*date|dob|date.*of.*birth|born", "age", 0.95, type="birthDate"),
    _rule(r"birth.*year|year.*born", "age", 0.85, type="birthDate"),
)

TELECOM_RULES = (
    _rule(r"phone|telephone|tel|mobile|cell|contact.*number", "telecom", 0.9, system="phone"),
    _rule(r"email|e.*mail|mail|contact.*email", "telecom", 0.95, system="email"),
    _rule(r"fax|facsimile", "telecom", 0.9, system="fax"),
    _rule(r"website|url|web.*address|homepage", "telecom", 0.85, system="url"),
    _rule(r"home.*phone|home.*number|residential", "telecom", 0.85, system="phone", use="home"),
    _rule(r"work.*phone|office.*phone|business.*phone", "telecom", 0.85, system="phone", use="work"),
    _rule(r"emergency.*phone|emergency.*contact", "telecom", 0.8, system="phone", use="temp"),
)

ADDRESS_RULES = (
    _rule(r"address|addr|location|residence", "address", 0.9),
    _rule(r"street|street.*address|address.*line|line1", "address", 0.95, component="line"),
    _rule(r"city|town|locality|municipality", "address", 0.95, component="city"),
    _rule(r"state|province|region|county", "address", 0.9, component="state"),
    _rule(r"zip|zipcode|postal.*code|postcode", "address", 0.95, component="postalCode"),
    _rule(r"country|nation|country.*code", "address", 0.9, component="country"),
    _rule(r"home.*address|residential.*address", "address", 0.85, use="home"),
    _rule(r"work.*address|office.*address|business.*address", "address", 0.85, use="work"),
    _rule(r"mailing.*address|postal.*address|shipping", "address", 0.8, type="postal"),
)

CLINICAL_RULES = (
    _rule(r"vital|vitals|vital.*signs", "clinical", 0.9, label="vitals"),
    _rule(r"heart.*rate|hr|pulse|bpm", "clinical", 0.95, code="8867-4", system=LOINC),
    _rule(r"blood.*pressure|bp|systolic|diastolic", "clinical", 0.95, code="85354-9", system=LOINC),
    _rule(r"temperature|temp|fever", "clinical", 0.9, code="8310-5", system=LOINC),
    _rule(r"respiratory.*rate|breathing.*rate|respiration", "clinical", 0.95, code="9279-1", system=LOINC),
    _rule(r"oxygen.*saturation|o2.*sat|spo2", "clinical", 0.95, code="2708-6", system=LOINC),
    _rule(r"weight|body.*weight|mass", "clinical", 0.9, code="29463-7", system=LOINC),
    _rule(r"height|body.*height|stature", "clinical", 0.9, code="8302-2", system=LOINC),
)

EMERGENCY_RULES = (
    _rule(r"case.*id|incident.*id|emergency.*id|ems.*id", "emergency", 0.95, label="emergency"),
    _rule(r"unidentified|unknown.*patient|anonymous", "emergency", 0.9, label="emergency"),
    _rule(r"transport|transported.*to|destination|hospital", "emergency", 0.85, label="emergency"),
    _rule(r"location|incident.*location|scene|coordinates|lat|lng|latitude|longitude", "emergency", 0.8, label="location"),
)


class PatternRegistry:
    """Ordered, immutable collection of pattern rules grouped by category."""

    def __init__(self, rules: dict[Category, tuple[PatternRule, ...]]) -> None:
        unknown = set(rules) - set(CATEGORIES)
        if unknown:
            raise ValueError(f"Unknown pattern categories: {', '.join(sorted(unknown))}")
        self._rules: tuple[tuple[Category, tuple[PatternRule, ...]], ...] = tuple(
            (category, tuple(rules.get(category, ()))) for category in CATEGORIES
        )

    def rules_for(self, category: Category) -> tuple[PatternRule, ...]:
        for name, rules in self._rules:
            if name == category:
                return rules
        return ()

    def __iter__(self) -> Iterator[PatternRule]:
        for _, rules in self._rules:
            yield from rules

    def __len__(self) -> int:
        return sum(len(rules) for _, rules in self._rules)

    def match(self, field_name: str) -> list[PatternRule]:
        """Get every rule whose pattern matches the field name, in registry order."""
        return [rule for rule in self if rule.matches(field_name)]


DEFAULT_PATTERNS = PatternRegistry(
    {
        "identifier": IDENTIFIER_RULES,
        "name": NAME_RULES,
        "gender": GENDER_RULES,
        "age": AGE_RULES,
        "telecom": TELECOM_RULES,
        "address": ADDRESS_RULES,
        "clinical": CLINICAL_RULES,
        "emergency": EMERGENCY_RULES,
    }
)


def target_path(rule: PatternRule) -> str:
    """Get the FHIR Patient path a rule's matches map to."""
    category = rule.category
    if category == "identifier":
        return "identifier[0].value"
    if category == "name":
        return {
            "given": "name[0].given[0]",
            "middle": "name[0].given[1]",
            "family": "name[0].family",
            "prefix": "name[0].prefix[0]",
            "suffix": "name[0].suffix[0]",
        }.get(rule.component or "", "name[0].text")
    if category == "gender":
        return "gender"
    if category == "age":
        return "birthDate" if rule.type == "birthDate" else "extension[age].valueInteger"
    if category == "telecom":
        return "telecom[0].value"
    if category == "address":
        return {
            "line": "address[0].line[0]",
            "city": "address[0].city",
            "state": "address[0].state",
            "postalCode": "address[0].postalCode",
            "country": "address[0].country",
        }.get(rule.component or "", "address[0].text")
    if category == "clinical":
        return "extension[vitals].extension[0].valueQuantity.value"
    if category == "emergency":
        return "extension[emergency].valueString"
    return f"extension[{category}].valueString"
