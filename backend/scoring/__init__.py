"""Template scoring and resource type detection."""

from .detector import EXPLICIT_TYPE_INDICATOR, ResourceEngine, ResourceTypeDetector
from .engine import score_template, score_templates, select_best_template
from .models import (
    UNKNOWN_RESOURCE_TYPE,
    ResourceDetectionResult,
    TemplateMatch,
    TemplateScore,
    TemplateSelection,
)
from .thresholds import DEFAULT_THRESHOLDS, ConfidenceThresholds

__all__ = [
    # Models
    "TemplateMatch",
    "TemplateScore",
    "TemplateSelection",
    "ResourceDetectionResult",
    "UNKNOWN_RESOURCE_TYPE",
    # Scoring
    "score_template",
    "score_templates",
    "select_best_template",
    "ConfidenceThresholds",
    "DEFAULT_THRESHOLDS",
    # Detection
    "ResourceEngine",
    "ResourceTypeDetector",
    "EXPLICIT_TYPE_INDICATOR",
]
