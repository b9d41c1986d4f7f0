"""Confidence thresholds for template selection."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ConfidenceThresholds:
    high_min: float = 80.0
    moderate_min: float = 60.0
    low_min: float = 40.0

    def confidence_band(self, confidence: float) -> str:
        if confidence >= self.high_min:
            return "high"
        if confidence >= self.moderate_min:
            return "moderate"
        if confidence >= self.low_min:
            return "low"
        return "very_low"

    def recommendation(
        self, template_name: str, confidence: float, missing_required: list[str] | None = None
    ) -> str:
        band = self.confidence_band(confidence)
        if band == "high":
            text = f"High confidence match with {template_name}"
        elif band == "moderate":
            text = (
                f"Moderate confidence match with {template_name}. "
                "Consider reviewing field mappings."
            )
        elif band == "low":
            text = (
                f"Low confidence match. {template_name} selected "
                "but manual review recommended."
            )
        else:
            text = (
                "Very low confidence. Consider creating a custom template "
                "or check data format."
            )

        if missing_required:
            text += f" Missing required fields: {', '.join(missing_required)}."
        return text

    @staticmethod
    def clamp_confidence(confidence: float) -> float:
        if confidence < 0.0:
            return 0.0
        if confidence > 100.0:
            return 100.0
        return confidence


DEFAULT_THRESHOLDS = ConfidenceThresholds()
