"""Group detected fields into FHIR Patient mapping slots.

Only confident, scalar-valued fields take part; containers are represented
by the fields inside them. Each single-valued slot (given name, family
name, gender, one address component per use, ...) is filled by the first
field that claims it. Later claimants go to the generic extensions bucket
so no detected value is silently dropped.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any

from mapping.field_detector import DetectedField
from mapping.valuesets import (
    ADDRESS_TYPE,
    ADDRESS_USE,
    CONTACT_POINT_SYSTEM,
    CONTACT_POINT_USE,
    CodeResolver,
)

logger = logging.getLogger(__name__)

EXTENSION_URL_BASE = "http://example.org/fhir/extension/"

ALTERNATE_NAME_USES = ("nickname", "maiden")
ADDRESS_COMPONENTS = ("line", "city", "state", "postalCode", "country", "text")


@dataclass
class IdentifierSlot:
    path: str
    system: str
    value: Any = None


@dataclass
class AlternateName:
    path: str
    use: str


@dataclass
class NameSlots:
    given: str | None = None
    middle: str | None = None
    family: str | None = None
    prefix: str | None = None
    suffix: str | None = None
    text: str | None = None
    alternates: list[AlternateName] = field(default_factory=list)

    @property
    def has_primary(self) -> bool:
        return any(
            path is not None
            for path in (self.given, self.middle, self.family, self.prefix, self.suffix, self.text)
        )


@dataclass
class Demographics:
    gender_path: str | None = None
    gender_value_map: dict[str, str] | None = None
    birth_date_path: str | None = None
    age_path: str | None = None


@dataclass
class TelecomSlot:
    path: str
    system: str
    use: str


@dataclass
class AddressSlot:
    path: str
    component: str
    use: str
    type: str | None = None


@dataclass
class ClinicalSlot:
    path: str
    code: str | None
    system: str | None
    value: Any = None


@dataclass
class EmergencySlot:
    path: str
    label: str
    value: Any = None


@dataclass
class ExtensionSlot:
    path: str
    url: str
    value_type: str
    value: Any = None


@dataclass
class MappingContext:
    """Detected fields grouped by the part of the Patient they populate."""

    identifiers: list[IdentifierSlot] = field(default_factory=list)
    name: NameSlots = field(default_factory=NameSlots)
    demographics: Demographics = field(default_factory=Demographics)
    telecom: list[TelecomSlot] = field(default_factory=list)
    address: list[AddressSlot] = field(default_factory=list)
    clinical: list[ClinicalSlot] = field(default_factory=list)
    emergency: list[EmergencySlot] = field(default_factory=list)
    extensions: list[ExtensionSlot] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)


def extension_url(path: str) -> str:
    return EXTENSION_URL_BASE + path.replace(".", "-")


def is_scalar(value: Any) -> bool:
    return not isinstance(value, (dict, list))


class _ContextBuilder:
    def __init__(self, resolver: CodeResolver) -> None:
        self.resolver = resolver
        self.context = MappingContext()

    def add(self, detected: DetectedField) -> None:
        match = detected.best_match
        category = match.category
        if category == "identifier":
            self.context.identifiers.append(
                IdentifierSlot(detected.path, match.system or "unknown", detected.value)
            )
        elif category == "name":
            self._add_name(detected)
        elif category == "gender":
            self._add_gender(detected)
        elif category == "age":
            self._add_age(detected)
        elif category == "telecom":
            self.context.telecom.append(
                TelecomSlot(
                    path=detected.path,
                    system=self.resolver.normalize(CONTACT_POINT_SYSTEM, match.system),
                    use=self.resolver.normalize(CONTACT_POINT_USE, match.use),
                )
            )
        elif category == "address":
            self._add_address(detected)
        elif category == "clinical":
            self.context.clinical.append(
                ClinicalSlot(detected.path, match.code, match.system, detected.value)
            )
        elif category == "emergency":
            self.context.emergency.append(
                EmergencySlot(detected.path, match.label or "emergency", detected.value)
            )
        else:
            self._add_extension(detected)

    def _add_name(self, detected: DetectedField) -> None:
        match = detected.best_match
        name = self.context.name
        if match.component is None and match.use in ALTERNATE_NAME_USES:
            name.alternates.append(AlternateName(detected.path, match.use))
            return

        component = match.component
        if component in ("given", "middle", "family", "prefix", "suffix"):
            if getattr(name, component) is not None:
                return self._add_extension(detected)
            setattr(name, component, detected.path)
        else:
            if name.text is not None:
                return self._add_extension(detected)
            name.text = detected.path

    def _add_gender(self, detected: DetectedField) -> None:
        demographics = self.context.demographics
        if demographics.gender_path is not None:
            return self._add_extension(detected)
        demographics.gender_path = detected.path
        value_map = detected.best_match.value_map
        demographics.gender_value_map = dict(value_map) if value_map else None

    def _add_age(self, detected: DetectedField) -> None:
        demographics = self.context.demographics
        if detected.best_match.type == "birthDate":
            if demographics.birth_date_path is not None:
                return self._add_extension(detected)
            demographics.birth_date_path = detected.path
        else:
            if demographics.age_path is not None:
                return self._add_extension(detected)
            demographics.age_path = detected.path

    def _add_address(self, detected: DetectedField) -> None:
        match = detected.best_match
        component = match.component if match.component in ADDRESS_COMPONENTS else "text"
        use = self.resolver.normalize(ADDRESS_USE, match.use)
        address_type = (
            self.resolver.normalize(ADDRESS_TYPE, match.type) if match.type else None
        )
        if component != "line" and any(
            slot.use == use and slot.component == component for slot in self.context.address
        ):
            return self._add_extension(detected)
        self.context.address.append(AddressSlot(detected.path, component, use, address_type))

    def _add_extension(self, detected: DetectedField) -> None:
        logger.debug(f"Field {detected.path} mapped to a generic extension")
        self.context.extensions.append(
            ExtensionSlot(
                path=detected.path,
                url=extension_url(detected.path),
                value_type=detected.best_match.value_type,
                value=detected.value,
            )
        )


def select_fields(
    fields: list[DetectedField], min_confidence: float
) -> list[DetectedField]:
    """Get the fields confident enough to contribute to a template."""
    return [
        detected
        for detected in fields
        if detected.best_match.confidence >= min_confidence and is_scalar(detected.value)
    ]


def build_mapping_context(
    fields: list[DetectedField], resolver: CodeResolver
) -> MappingContext:
    """Group already-selected detected fields into a MappingContext."""
    builder = _ContextBuilder(resolver)
    for detected in fields:
        builder.add(detected)
    return builder.context
