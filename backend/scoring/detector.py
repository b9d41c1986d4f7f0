"""Resource type detection across registered template engines.

Each resource type is served by a ResourceEngine wrapping that type's
template registry. The detector asks every engine whether it can handle a
document and ranks the engines that can by their best template confidence.

Usage:
    from scoring import ResourceEngine, ResourceTypeDetector
    from templates import load_default_registries

    detector = ResourceTypeDetector()
    for registry in load_default_registries():
        detector.register_engine(ResourceEngine(registry))

    best = detector.get_best_match({"firstName": "John", "lastName": "Doe"})
    print(best.resource_type, best.confidence)
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from mapping.structure import StructureProfile, analyze_structure
from templates.registry import TemplateRegistry

from .engine import score_templates, select_best_template
from .models import ResourceDetectionResult, TemplateScore, TemplateSelection
from .thresholds import DEFAULT_THRESHOLDS, ConfidenceThresholds

logger = logging.getLogger(__name__)

EXPLICIT_TYPE_INDICATOR = "explicit type field"


class ResourceEngine:
    """Template engine for one resource type, backed by its registry."""

    def __init__(
        self,
        registry: TemplateRegistry,
        thresholds: ConfidenceThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        self.registry = registry
        self.thresholds = thresholds

    @property
    def resource_type(self) -> str:
        return self.registry.resource_type

    def analyze_structure(self, document: Any) -> StructureProfile:
        return analyze_structure(document)

    def matched_indicators(self, profile: StructureProfile) -> list[str]:
        """Get the distinct registry indicators present in a profile's field paths."""
        fields = [path.lower() for path in profile.all_fields]
        found: list[str] = []
        for indicator in self.registry.indicators:
            needle = indicator.lower()
            if needle in found:
                continue
            if any(needle in path for path in fields):
                found.append(needle)
        return found

    def can_handle(self, document: Any, profile: StructureProfile | None = None) -> bool:
        """Check whether a document plausibly belongs to this resource type."""
        if not isinstance(document, dict):
            return False
        if document.get(self.registry.type_tag_field) == self.resource_type:
            return True
        if profile is None:
            profile = analyze_structure(document)
        return len(self.matched_indicators(profile)) >= self.registry.min_indicator_hits

    def score_templates(
        self, document: Any, profile: StructureProfile | None = None
    ) -> list[TemplateScore]:
        return score_templates(self.registry, document, profile)

    def select_best_template(
        self, document: Any, profile: StructureProfile | None = None
    ) -> TemplateSelection:
        return select_best_template(self.registry, document, self.thresholds, profile)

    def template_names(self) -> list[str]:
        return self.registry.names()


class ResourceTypeDetector:
    """Rank registered resource types for a JSON document."""

    def __init__(self, engines: Iterable[ResourceEngine] = ()) -> None:
        self._engines: dict[str, ResourceEngine] = {}
        for engine in engines:
            self.register_engine(engine)

    def register_engine(self, engine: ResourceEngine) -> None:
        """Register an engine under its resource type, replacing any existing one."""
        if engine.resource_type in self._engines:
            logger.warning(f"Replacing engine for resource type {engine.resource_type}")
        self._engines[engine.resource_type] = engine

    def detect_resource_type(self, document: Any) -> list[ResourceDetectionResult]:
        """Detect candidate resource types, most confident first.

        Never raises for any JSON value; documents that cannot be
        classified yield a single Unknown result with zero confidence.
        """
        if document is None or not isinstance(document, (dict, list)):
            return [ResourceDetectionResult.unknown("Invalid or empty JSON data")]

        if isinstance(document, dict):
            type_tag = self._explicit_type(document)
            if type_tag is not None:
                if type_tag in self._engines:
                    return [
                        ResourceDetectionResult(
                            resource_type=type_tag,
                            confidence=100.0,
                            indicators=[EXPLICIT_TYPE_INDICATOR],
                            reasoning=f"Explicit resourceType field found: {type_tag}",
                        )
                    ]
                logger.info(f"Document declares unregistered resource type {type_tag}")
                return [
                    ResourceDetectionResult.unknown(
                        f"Resource type '{type_tag}' is not registered"
                    )
                ]

        profile = analyze_structure(document)
        results: list[ResourceDetectionResult] = []
        for resource_type, engine in self._engines.items():
            if not engine.can_handle(document, profile):
                continue
            scores = engine.score_templates(document, profile)
            if not scores or scores[0].confidence <= 0:
                continue
            best = scores[0]
            results.append(
                ResourceDetectionResult(
                    resource_type=resource_type,
                    confidence=best.confidence,
                    indicators=[match.matched for match in best.matches],
                    reasoning=(
                        f"{resource_type} templates matched {len(best.matches)} fields "
                        f"with {best.confidence:.1f}% confidence"
                    ),
                )
            )

        results.sort(key=lambda r: r.confidence, reverse=True)
        if not results:
            return [
                ResourceDetectionResult.unknown(
                    "No registered template engines can handle this JSON structure"
                )
            ]
        return results

    def _explicit_type(self, document: dict[str, Any]) -> str | None:
        tag_fields = [engine.registry.type_tag_field for engine in self._engines.values()]
        tag_fields.append("resourceType")
        for field_name in dict.fromkeys(tag_fields):
            value = document.get(field_name)
            if isinstance(value, str) and value:
                return value
        return None

    def get_best_match(self, document: Any) -> ResourceDetectionResult:
        return self.detect_resource_type(document)[0]

    def registered_resource_types(self) -> list[str]:
        return list(self._engines)

    def get_engine(self, resource_type: str) -> ResourceEngine | None:
        return self._engines.get(resource_type)

    def is_supported(self, resource_type: str) -> bool:
        return resource_type in self._engines
