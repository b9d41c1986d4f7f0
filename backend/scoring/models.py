"""Data models for template scoring and resource type detection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

UNKNOWN_RESOURCE_TYPE = "Unknown"


@dataclass(frozen=True)
class TemplateMatch:
    """A template field satisfied by a source path."""

    field: str
    matched: str
    weight: int

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "matched": self.matched, "weight": self.weight}


@dataclass
class TemplateScore:
    """Result of scoring one template against one document.

    ``score`` is the raw weighted sum and may be negative; ``confidence``
    is the score as a percentage of the maximum possible, clamped to 0-100.
    """

    template_name: str
    resource_type: str
    score: float
    confidence: float
    matches: list[TemplateMatch] = field(default_factory=list)
    missing_required: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "template_name": self.template_name,
            "resource_type": self.resource_type,
            "score": self.score,
            "confidence": round(self.confidence, 2),
            "matches": [match.to_dict() for match in self.matches],
            "missing_required": list(self.missing_required),
        }


@dataclass
class TemplateSelection:
    selected: TemplateScore
    alternatives: list[TemplateScore]
    recommendation: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "selected": self.selected.to_dict(),
            "alternatives": [alt.to_dict() for alt in self.alternatives],
            "recommendation": self.recommendation,
        }


@dataclass
class ResourceDetectionResult:
    """One candidate resource type for a document."""

    resource_type: str
    confidence: float
    indicators: list[str] = field(default_factory=list)
    reasoning: str = ""

    @classmethod
    def unknown(cls, reasoning: str) -> ResourceDetectionResult:
        return cls(resource_type=UNKNOWN_RESOURCE_TYPE, confidence=0.0, reasoning=reasoning)

    @property
    def is_unknown(self) -> bool:
        return self.resource_type == UNKNOWN_RESOURCE_TYPE

    def to_dict(self) -> dict[str, Any]:
        return {
            "resource_type": self.resource_type,
            "confidence": round(self.confidence, 2),
            "indicators": list(self.indicators),
            "reasoning": self.reasoning,
        }
