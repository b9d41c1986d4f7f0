"""Synthesize Liquid mapping templates from field-name semantics.

When no static template fits a document, the synthesizer detects what
each field means and assembles a FHIR Patient template from the result.
Documents that already look like FHIR get a passthrough template instead.

Usage:
    from mapping import SemanticFieldDetector, StaticCodeResolver
    from synthesis import TemplateSynthesizer

    resolver = StaticCodeResolver()
    synthesizer = TemplateSynthesizer(SemanticFieldDetector(resolver), resolver)
    result = synthesizer.synthesize({"first_name": "Ada", "dob": "1815-12-10"})
    if result.success:
        print(result.template)
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from mapping.field_detector import DetectedField, SemanticFieldDetector
from mapping.structure import strip_indices
from mapping.valuesets import ADMINISTRATIVE_GENDER, CodeResolver

from .context import (
    AddressSlot,
    ClinicalSlot,
    EmergencySlot,
    ExtensionSlot,
    IdentifierSlot,
    MappingContext,
    build_mapping_context,
    select_fields,
)
from .ir import (
    ArrayNode,
    Conditional,
    EstimatedBirthDate,
    FieldRef,
    Literal,
    Member,
    ObjectNode,
    ValueLookup,
    conditional_member,
    field_member,
)
from .liquid import render_liquid
from .passthrough import build_passthrough_template, is_canonical

logger = logging.getLogger(__name__)

PASSTHROUGH_CONFIDENCE = 0.95
LOW_CONFIDENCE_FIELD = 0.7
LOW_CONFIDENCE_ERROR = "Low confidence in field detection. Manual template may be required."

IDENTIFIER_TYPE_SYSTEM = "http://terminology.hl7.org/CodeSystem/v2-0203"
BIRTH_TIME_ESTIMATED_URL = "http://hl7.org/fhir/StructureDefinition/patient-birthTime-estimated"
STRUCTURE_DEFINITION_BASE = "http://hl7.org/fhir/StructureDefinition/"

# Identifier system -> (v2-0203 code, display)
IDENTIFIER_TYPES = {
    "medical-record": ("MR", "Medical record number"),
    "uuid": ("U", "Unspecified identifier"),
    "passport": ("PPN", "Passport number"),
    "drivers-license": ("DL", "Driver's license number"),
    "employee-id": ("EI", "Employee number"),
    "student-id": ("SB", "Social Beneficiary Identifier"),
    "insurance": ("NIIP", "National Insurance Payor Identifier (Payor)"),
}
UNKNOWN_IDENTIFIER_TYPE = ("U", "Unspecified identifier")

IDENTIFIER_SYSTEMS = {
    "medical-record": "urn:oid:2.16.840.1.113883.4.1",
    "uuid": "urn:ietf:rfc:3986",
    "passport": "urn:oid:2.16.840.1.113883.4.330",
    "drivers-license": "urn:oid:2.16.840.1.113883.4.3",
    "employee-id": "urn:oid:2.16.840.1.113883.4.6",
    "student-id": "urn:oid:2.16.840.1.113883.6.101",
    "insurance": "urn:oid:2.16.840.1.113883.4.4",
}
DEFAULT_IDENTIFIER_SYSTEM = "urn:oid:2.16.840.1.113883.19.5"


@dataclass
class FieldBreakdown:
    path: str
    confidence: float
    target_path: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "confidence": self.confidence, "target_path": self.target_path}


@dataclass
class SynthesisAnalysis:
    """How a synthesized template was derived."""

    detected_fields: int = 0
    field_breakdown: list[FieldBreakdown] = field(default_factory=list)
    context: MappingContext | None = None
    canonical_input: bool = False
    resource_type: str = "Patient"
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "detected_fields": self.detected_fields,
            "field_breakdown": [item.to_dict() for item in self.field_breakdown],
            "context": self.context.to_dict() if self.context else None,
            "canonical_input": self.canonical_input,
            "resource_type": self.resource_type,
            "recommendations": list(self.recommendations),
        }


@dataclass
class SynthesizedTemplate:
    """Result of template synthesis.

    On failure ``success`` is False, ``template`` is empty, ``tree`` is
    None and ``error`` explains why; the analysis is still attached.
    """

    success: bool
    template: str
    confidence: float
    template_name: str
    analysis: SynthesisAnalysis
    tree: ObjectNode | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result = {
            "success": self.success,
            "template": self.template,
            "confidence": round(self.confidence, 4),
            "template_name": self.template_name,
            "analysis": self.analysis.to_dict(),
        }
        if self.error:
            result["error"] = self.error
        return result


def template_name_for(document: Any) -> str:
    """Derive a stable template name from the document content."""
    canonical = json.dumps(document, sort_keys=True, default=str)
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return f"IntelligentTemplate_{digest[:8]}"


def generate_recommendations(
    fields: list[DetectedField], context: MappingContext
) -> list[str]:
    """Suggest improvements based on what detection found."""
    recommendations = []

    if len(fields) < 3:
        recommendations.append(
            "Input has few recognizable fields. Consider adding more standard field names."
        )

    if any(f.best_match.confidence < LOW_CONFIDENCE_FIELD for f in fields):
        recommendations.append(
            "Some fields have low confidence detection. Manual template might be more accurate."
        )

    if not context.identifiers:
        recommendations.append(
            "No identifier fields detected. Patient resources should have unique identifiers."
        )

    if not context.name.has_primary:
        recommendations.append(
            "No name fields detected. Consider adding patient name information."
        )

    if context.clinical:
        recommendations.append(
            "Clinical data detected. Consider creating specialized clinical templates."
        )

    if context.emergency:
        recommendations.append(
            "Emergency/EMS data detected. Template optimized for emergency care scenarios."
        )

    return recommendations


def _typed_value_member(path: str, sample: Any) -> Member:
    """Member named value[x] after the sample value's JSON type."""
    # bool is a subclass of int
    if isinstance(sample, bool):
        return Member("valueBoolean", FieldRef(path, raw=True))
    if isinstance(sample, int):
        return Member("valueInteger", FieldRef(path, raw=True))
    if isinstance(sample, float):
        return Member("valueDecimal", FieldRef(path, raw=True))
    return Member("valueString", FieldRef(path))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class TemplateSynthesizer:
    """Build mapping templates for documents no static template fits.

    Args:
        detector: Semantic field detector
        resolver: Code resolver for coded values
        min_field_confidence: Detected fields below this are ignored
        min_confidence: Mean confidence below this reports failure
        reference_year: Year used to estimate birth dates from ages.
            Defaults to the current year at synthesis time.
    """

    def __init__(
        self,
        detector: SemanticFieldDetector,
        resolver: CodeResolver,
        min_field_confidence: float = 0.6,
        min_confidence: float = 0.5,
        reference_year: int | None = None,
    ) -> None:
        self.detector = detector
        self.resolver = resolver
        self.min_field_confidence = min_field_confidence
        self.min_confidence = min_confidence
        self.reference_year = reference_year

    def synthesize(self, document: Any, resource_type: str = "Patient") -> SynthesizedTemplate:
        """Synthesize a template for a document.

        Never raises for JSON input; low confidence is reported through
        ``success=False``.
        """
        name = template_name_for(document)

        if is_canonical(document):
            tree = build_passthrough_template(document, resource_type)
            logger.info(f"Built passthrough template {name}")
            return SynthesizedTemplate(
                success=True,
                template=render_liquid(tree),
                confidence=PASSTHROUGH_CONFIDENCE,
                template_name=name,
                analysis=SynthesisAnalysis(canonical_input=True, resource_type=resource_type),
                tree=tree,
            )

        fields = self.detector.detect_fields(document)
        kept = select_fields(fields, self.min_field_confidence)
        context = build_mapping_context(kept, self.resolver)
        confidence = (
            sum(f.best_match.confidence for f in kept) / len(kept) if kept else 0.0
        )

        analysis = SynthesisAnalysis(
            detected_fields=len(fields),
            field_breakdown=[
                FieldBreakdown(f.path, f.best_match.confidence, f.best_match.target_path)
                for f in fields
            ],
            context=context,
            resource_type=resource_type,
            recommendations=generate_recommendations(fields, context),
        )

        if confidence < self.min_confidence:
            logger.warning(
                f"Synthesis confidence {confidence:.2f} below {self.min_confidence:.2f} "
                f"({len(kept)} of {len(fields)} fields usable)"
            )
            return SynthesizedTemplate(
                success=False,
                template="",
                confidence=confidence,
                template_name=name,
                analysis=analysis,
                error=LOW_CONFIDENCE_ERROR,
            )

        tree = self.build_tree(context, resource_type)
        logger.info(
            f"Synthesized template {name} from {len(kept)} fields "
            f"(confidence {confidence:.2f})"
        )
        return SynthesizedTemplate(
            success=True,
            template=render_liquid(tree),
            confidence=confidence,
            template_name=name,
            analysis=analysis,
            tree=tree,
        )

    def build_tree(self, context: MappingContext, resource_type: str = "Patient") -> ObjectNode:
        """Build the template tree for a mapping context."""
        members: list = [Member("resourceType", Literal(resource_type))]

        if context.identifiers:
            primary = context.identifiers[0]
            members.append(
                conditional_member(
                    primary.path,
                    "id",
                    FieldRef(primary.path, ("to_json_string", "generate_uuid")),
                )
            )
            members.append(
                Member(
                    "identifier",
                    ArrayNode(tuple(self._identifier(slot) for slot in context.identifiers)),
                )
            )

        names = self._names(context)
        if names:
            members.append(Member("name", ArrayNode(tuple(names))))

        members.extend(self._demographics(context))

        if context.telecom:
            members.append(
                Member(
                    "telecom",
                    ArrayNode(
                        tuple(
                            Conditional(
                                slot.path,
                                (
                                    ObjectNode(
                                        (
                                            Member("system", Literal(slot.system)),
                                            Member("value", FieldRef(slot.path)),
                                            Member("use", Literal(slot.use)),
                                        )
                                    ),
                                ),
                            )
                            for slot in context.telecom
                        )
                    ),
                )
            )

        if context.address:
            members.append(Member("address", ArrayNode(tuple(self._addresses(context.address)))))

        extensions = self._extensions(context)
        if extensions:
            members.append(Member("extension", ArrayNode(tuple(extensions))))

        return ObjectNode(tuple(members))

    def _identifier(self, slot: IdentifierSlot) -> Conditional:
        code, display = IDENTIFIER_TYPES.get(slot.system, UNKNOWN_IDENTIFIER_TYPE)
        entry = ObjectNode(
            (
                Member("use", Literal("usual")),
                Member(
                    "type",
                    ObjectNode(
                        (
                            Member(
                                "coding",
                                ArrayNode(
                                    (
                                        ObjectNode(
                                            (
                                                Member("system", Literal(IDENTIFIER_TYPE_SYSTEM)),
                                                Member("code", Literal(code)),
                                                Member("display", Literal(display)),
                                            )
                                        ),
                                    )
                                ),
                            ),
                        )
                    ),
                ),
                Member(
                    "system",
                    Literal(IDENTIFIER_SYSTEMS.get(slot.system, DEFAULT_IDENTIFIER_SYSTEM)),
                ),
                Member("value", FieldRef(slot.path)),
            )
        )
        return Conditional(slot.path, (entry,))

    def _names(self, context: MappingContext) -> list:
        name = context.name
        entries: list = []
        if name.text is not None:
            entries.append(
                ObjectNode((Member("use", Literal("official")), field_member("text", name.text)))
            )
        elif name.has_primary:
            members: list = [Member("use", Literal("official"))]
            if name.family is not None:
                members.append(field_member("family", name.family))
            given = [path for path in (name.given, name.middle) if path is not None]
            if given:
                members.append(
                    Member(
                        "given",
                        ArrayNode(tuple(Conditional(path, (FieldRef(path),)) for path in given)),
                    )
                )
            for key in ("prefix", "suffix"):
                path = getattr(name, key)
                if path is not None:
                    members.append(conditional_member(path, key, ArrayNode((FieldRef(path),))))
            entries.append(ObjectNode(tuple(members)))

        for alternate in name.alternates:
            entries.append(
                Conditional(
                    alternate.path,
                    (
                        ObjectNode(
                            (
                                Member("use", Literal(alternate.use)),
                                Member("text", FieldRef(alternate.path)),
                            )
                        ),
                    ),
                )
            )
        return entries

    def _demographics(self, context: MappingContext) -> list:
        demographics = context.demographics
        members: list = []

        if demographics.gender_path is not None:
            value_map = demographics.gender_value_map or {}
            members.append(
                conditional_member(
                    demographics.gender_path,
                    "gender",
                    ValueLookup(
                        path=demographics.gender_path,
                        cases=tuple(value_map.items()),
                        default=self.resolver.default_code(ADMINISTRATIVE_GENDER),
                        variable="gender_code",
                    ),
                )
            )

        if demographics.birth_date_path is not None:
            members.append(field_member("birthDate", demographics.birth_date_path))
        elif demographics.age_path is not None:
            year = self.reference_year or date.today().year
            members.append(
                Conditional(
                    demographics.age_path,
                    (
                        Member("birthDate", EstimatedBirthDate(demographics.age_path, year)),
                        Member(
                            "_birthDate",
                            ObjectNode(
                                (
                                    Member(
                                        "extension",
                                        ArrayNode(
                                            (
                                                ObjectNode(
                                                    (
                                                        Member("url", Literal(BIRTH_TIME_ESTIMATED_URL)),
                                                        Member("valueBoolean", Literal(True)),
                                                    )
                                                ),
                                            )
                                        ),
                                    ),
                                )
                            ),
                        ),
                    ),
                )
            )
        return members

    def _addresses(self, slots: list[AddressSlot]) -> list[ObjectNode]:
        grouped: dict[str, list[AddressSlot]] = {}
        for slot in slots:
            grouped.setdefault(slot.use, []).append(slot)

        addresses = []
        for use, group in grouped.items():
            members: list = [Member("use", Literal(use))]
            lines = [slot.path for slot in group if slot.component == "line"]
            if lines:
                members.append(
                    Member(
                        "line",
                        ArrayNode(tuple(Conditional(path, (FieldRef(path),)) for path in lines)),
                    )
                )
            for component in ("city", "state", "postalCode", "country", "text"):
                for slot in group:
                    if slot.component == component:
                        members.append(field_member(component, slot.path))
            address_type = next((slot.type for slot in group if slot.type), None)
            if address_type is not None:
                members.append(Member("type", Literal(address_type)))
            addresses.append(ObjectNode(tuple(members)))
        return addresses

    def _extensions(self, context: MappingContext) -> list:
        extensions: list = []
        if context.clinical:
            extensions.append(
                ObjectNode(
                    (
                        Member("url", Literal(STRUCTURE_DEFINITION_BASE + "patient-vitals")),
                        Member(
                            "extension",
                            ArrayNode(tuple(self._vital(slot) for slot in context.clinical)),
                        ),
                    )
                )
            )
        extensions.extend(self._emergency(slot) for slot in context.emergency)
        extensions.extend(self._generic_extension(slot) for slot in context.extensions)
        return extensions

    def _vital(self, slot: ClinicalSlot) -> Conditional:
        url = strip_indices(slot.path.rsplit(".", 1)[-1])
        if slot.code and slot.system and _is_number(slot.value):
            value = Member(
                "valueQuantity",
                ObjectNode(
                    (
                        Member("value", FieldRef(slot.path, raw=True)),
                        Member("code", Literal(slot.code)),
                        Member("system", Literal(slot.system)),
                    )
                ),
            )
        else:
            value = Member("valueString", FieldRef(slot.path))
        return Conditional(slot.path, (ObjectNode((Member("url", Literal(url)), value)),))

    def _emergency(self, slot: EmergencySlot) -> Conditional:
        entry = ObjectNode(
            (
                Member("url", Literal(f"{STRUCTURE_DEFINITION_BASE}patient-{slot.label}")),
                Member("valueString", FieldRef(slot.path)),
            )
        )
        return Conditional(slot.path, (entry,))

    def _generic_extension(self, slot: ExtensionSlot) -> Conditional:
        entry = ObjectNode(
            (Member("url", Literal(slot.url)), _typed_value_member(slot.path, slot.value))
        )
        return Conditional(slot.path, (entry,))
