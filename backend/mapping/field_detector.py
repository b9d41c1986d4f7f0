"""Semantic field detection for arbitrary JSON documents.

Every field name in a document is tested against the pattern registry and
each matching rule becomes a FieldMatch pointing at a FHIR Patient path.
Primitive array elements are matched using the name of the array field
that holds them.

Usage:
    from mapping.field_detector import SemanticFieldDetector
    from mapping.valuesets import StaticCodeResolver

    detector = SemanticFieldDetector(resolver=StaticCodeResolver())
    for field in detector.detect_fields({"dob": "1990-01-01"}):
        print(field.path, field.best_match.target_path, field.best_match.confidence)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from .patterns import DEFAULT_PATTERNS, PatternRegistry, PatternRule, target_path
from .structure import strip_indices
from .valuesets import ADMINISTRATIVE_GENDER, CodeResolver

logger = logging.getLogger(__name__)

GENDER_BONUS = 0.1

NORMALIZE_GENDER = "normalizeGender"
AGE_TO_BIRTH_DATE = "ageToEstimatedBirthDate"


@dataclass(frozen=True)
class FieldMatch:
    """One candidate interpretation of a source field."""

    confidence: float
    category: str
    target_path: str
    value_type: str
    system: str | None = None
    use: str | None = None
    component: str | None = None
    code: str | None = None
    label: str | None = None
    type: str | None = None
    transformer: str | None = None
    value_map: Mapping[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary, omitting unset metadata."""
        result: dict[str, Any] = {
            "confidence": self.confidence,
            "category": self.category,
            "target_path": self.target_path,
            "value_type": self.value_type,
        }
        for key in ("system", "use", "component", "code", "label", "type", "transformer"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.value_map is not None:
            result["value_map"] = dict(self.value_map)
        return result


@dataclass
class DetectedField:
    """A source field with its ranked matches."""

    path: str
    value: Any
    matches: list[FieldMatch] = field(default_factory=list)

    @property
    def best_match(self) -> FieldMatch:
        return self.matches[0]

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "value": self.value,
            "best_match": self.best_match.to_dict(),
            "matches": [match.to_dict() for match in self.matches],
        }


def value_type_of(value: Any) -> str:
    """Get the JSON type name of a value (null reports as string)."""
    # bool is a subclass of int
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, list):
        return "array"
    if isinstance(value, dict):
        return "object"
    return "string"


class SemanticFieldDetector:
    """Detect FHIR Patient semantics from source field names.

    Args:
        resolver: Code resolver supplying the gender synonym table
        patterns: Pattern registry to test field names against
    """

    def __init__(
        self,
        resolver: CodeResolver,
        patterns: PatternRegistry = DEFAULT_PATTERNS,
    ) -> None:
        self.resolver = resolver
        self.patterns = patterns
        self._gender_map = resolver.synonyms(ADMINISTRATIVE_GENDER)

    def detect_fields(self, document: Any, base_path: str = "") -> list[DetectedField]:
        """Detect every matching field in a document.

        Returns:
            One DetectedField per path, in first-seen order
        """
        detected: list[DetectedField] = []
        self._traverse(document, base_path, detected)
        consolidated = self._consolidate(detected)
        logger.debug(f"Detected {len(consolidated)} fields")
        return consolidated

    def analyze_field(self, field_name: str, value: Any) -> list[FieldMatch]:
        """Get all matches for a single field name, best first."""
        value_type = value_type_of(value)
        matches = [
            self._build_match(rule, value, value_type)
            for rule in self.patterns.match(field_name)
        ]
        # Stable: ties keep category and rule order
        matches.sort(key=lambda match: match.confidence, reverse=True)
        return matches

    def _traverse(self, node: Any, path: str, detected: list[DetectedField]) -> None:
        if isinstance(node, dict):
            for key, value in node.items():
                full_path = f"{path}.{key}" if path else str(key)
                self._record(str(key), value, full_path, detected)
                if isinstance(value, (dict, list)):
                    self._traverse(value, full_path, detected)
        elif isinstance(node, list):
            parent_name = strip_indices(path.rsplit(".", 1)[-1])
            for index, item in enumerate(node):
                item_path = f"{path}[{index}]"
                if item is None:
                    continue
                if isinstance(item, (dict, list)):
                    self._traverse(item, item_path, detected)
                else:
                    self._record(parent_name, item, item_path, detected)

    def _record(
        self, field_name: str, value: Any, path: str, detected: list[DetectedField]
    ) -> None:
        matches = self.analyze_field(field_name, value)
        if matches:
            detected.append(DetectedField(path=path, value=value, matches=matches))
        else:
            logger.debug(f"No pattern matched field {path}")

    def _build_match(self, rule: PatternRule, value: Any, value_type: str) -> FieldMatch:
        confidence = rule.confidence
        transformer = None
        value_map = None

        if rule.category == "gender":
            if isinstance(value, str) and value.strip().lower() in self._gender_map:
                confidence += GENDER_BONUS
            transformer = NORMALIZE_GENDER
            value_map = self._gender_map
        elif rule.category == "age" and rule.type != "birthDate":
            transformer = AGE_TO_BIRTH_DATE

        return FieldMatch(
            confidence=min(confidence, 1.0),
            category=rule.category,
            target_path=target_path(rule),
            value_type=value_type,
            system=rule.system,
            use=rule.use,
            component=rule.component,
            code=rule.code,
            label=rule.label,
            type=rule.type,
            transformer=transformer,
            value_map=value_map,
        )

    @staticmethod
    def _consolidate(detected: list[DetectedField]) -> list[DetectedField]:
        consolidated: dict[str, DetectedField] = {}
        for candidate in detected:
            existing = consolidated.get(candidate.path)
            if existing is None or (
                candidate.best_match.confidence > existing.best_match.confidence
            ):
                consolidated[candidate.path] = candidate
        return list(consolidated.values())
