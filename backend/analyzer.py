"""Template analysis orchestrator.

Detects the resource type of a JSON document, selects the best static
template from that type's registry and, when no template fits well
enough, synthesizes one from the document's field names.

Usage:
    from analyzer import analyze_document

    result = analyze_document({"firstName": "John", "lastName": "Doe", "patientId": "P1"})
    print(result.selected_resource_type, result.recommendation)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from config import (
    MIN_FIELD_CONFIDENCE,
    SYNTHESIS_MIN_CONFIDENCE,
    TEMPLATE_ACCEPT_CONFIDENCE,
)
from mapping.field_detector import SemanticFieldDetector
from mapping.structure import StructureProfile, analyze_structure
from mapping.valuesets import StaticCodeResolver
from scoring.detector import ResourceEngine, ResourceTypeDetector
from scoring.models import (
    UNKNOWN_RESOURCE_TYPE,
    ResourceDetectionResult,
    TemplateScore,
    TemplateSelection,
)
from synthesis.synthesizer import SynthesizedTemplate, TemplateSynthesizer
from templates.registry import load_default_registries

logger = logging.getLogger(__name__)

UNDETECTED_RECOMMENDATION = (
    "Could not determine resource type. Consider adding support for this data format."
)


@dataclass
class AnalysisResult:
    """Full analysis of one document."""

    resource_detection: list[ResourceDetectionResult]
    selected_resource_type: str
    template_selection: TemplateSelection | None
    structure: StructureProfile
    recommendation: str
    synthesis: SynthesizedTemplate | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "resource_detection": [result.to_dict() for result in self.resource_detection],
            "selected_resource_type": self.selected_resource_type,
            "template_selection": (
                self.template_selection.to_dict() if self.template_selection else None
            ),
            "structure": self.structure.to_dict(),
            "recommendation": self.recommendation,
            "synthesis": self.synthesis.to_dict() if self.synthesis else None,
        }


class TemplateAnalyzer:
    """Resource detection, template selection and synthesis in one place.

    Args:
        detector: Resource type detector with registered engines
        synthesizer: Synthesizer used when no static template fits.
            None disables synthesis.
        accept_confidence: Selected template confidence (0-100) at or
            above which synthesis is skipped
    """

    def __init__(
        self,
        detector: ResourceTypeDetector,
        synthesizer: TemplateSynthesizer | None = None,
        accept_confidence: float = 60.0,
    ) -> None:
        self.detector = detector
        self.synthesizer = synthesizer
        self.accept_confidence = accept_confidence

    def analyze(self, document: Any, synthesize: bool = True) -> AnalysisResult:
        """Analyze a document.

        Never raises for any JSON value.
        """
        detection = self.detector.detect_resource_type(document)
        best = detection[0]
        structure = analyze_structure(document)

        selection: TemplateSelection | None = None
        selected_type = UNKNOWN_RESOURCE_TYPE
        if best.confidence > 0:
            selected_type = best.resource_type
            engine = self.detector.get_engine(selected_type)
            if engine is not None:
                selection = engine.select_best_template(document, structure)
                recommendation = (
                    f"Detected as {selected_type} resource ({best.confidence:.1f}% confidence). "
                    f"{selection.recommendation}"
                )
            else:
                recommendation = (
                    f"Detected as {selected_type} resource, but no template engine available."
                )
        else:
            recommendation = UNDETECTED_RECOMMENDATION

        synthesis = None
        if synthesize and self._needs_synthesis(document, selection):
            resource_type = "Patient" if selected_type == UNKNOWN_RESOURCE_TYPE else selected_type
            synthesis = self.synthesizer.synthesize(document, resource_type)

        logger.debug(f"Analysis selected {selected_type}: {recommendation}")
        return AnalysisResult(
            resource_detection=detection,
            selected_resource_type=selected_type,
            template_selection=selection,
            structure=structure,
            recommendation=recommendation,
            synthesis=synthesis,
        )

    def _needs_synthesis(self, document: Any, selection: TemplateSelection | None) -> bool:
        if self.synthesizer is None or not isinstance(document, dict):
            return False
        return selection is None or selection.selected.confidence < self.accept_confidence

    def select_best_template(self, document: Any) -> TemplateSelection:
        """Select the best static template, falling back to an Unknown selection."""
        analysis = self.analyze(document, synthesize=False)
        if analysis.template_selection is not None:
            return analysis.template_selection
        return TemplateSelection(
            selected=TemplateScore(
                template_name=UNKNOWN_RESOURCE_TYPE,
                resource_type=UNKNOWN_RESOURCE_TYPE,
                score=0.0,
                confidence=0.0,
            ),
            alternatives=[],
            recommendation=analysis.recommendation,
        )

    def score_templates(self, document: Any) -> list[TemplateScore]:
        """Score every template of the detected resource type."""
        best = self.detector.get_best_match(document)
        if best.confidence > 0:
            engine = self.detector.get_engine(best.resource_type)
            if engine is not None:
                return engine.score_templates(document)
        return []

    def template_names(self) -> list[str]:
        names: list[str] = []
        for resource_type in self.detector.registered_resource_types():
            names.extend(self.detector.get_engine(resource_type).template_names())
        return names

    def supported_resource_types(self) -> list[str]:
        return self.detector.registered_resource_types()


def build_default_analyzer(templates_dir: str | Path | None = None) -> TemplateAnalyzer:
    """Build an analyzer from the bundled registries and configuration."""
    detector = ResourceTypeDetector(
        ResourceEngine(registry) for registry in load_default_registries(templates_dir)
    )
    resolver = StaticCodeResolver()
    synthesizer = TemplateSynthesizer(
        SemanticFieldDetector(resolver),
        resolver,
        min_field_confidence=MIN_FIELD_CONFIDENCE,
        min_confidence=SYNTHESIS_MIN_CONFIDENCE,
    )
    return TemplateAnalyzer(detector, synthesizer, accept_confidence=TEMPLATE_ACCEPT_CONFIDENCE)


_default_analyzer: TemplateAnalyzer | None = None


def get_default_analyzer() -> TemplateAnalyzer:
    """Get the shared analyzer, building it on first use."""
    global _default_analyzer
    if _default_analyzer is None:
        _default_analyzer = build_default_analyzer()
    return _default_analyzer


def analyze_document(document: Any, synthesize: bool = True) -> AnalysisResult:
    """Analyze a document with the default analyzer."""
    return get_default_analyzer().analyze(document, synthesize=synthesize)
