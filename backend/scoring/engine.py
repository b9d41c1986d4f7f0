"""Template scoring against arbitrary JSON documents.

A template earns up to 20 structural points for matching the document's
shape, plus its field weights for every mapping whose source paths resolve
to a value. Missing required fields cost twice their weight. Confidence is
the score as a percentage of 20 plus the sum of all weights, so optional
fields that are absent still count against the template.
"""

from __future__ import annotations

import logging
from typing import Any

from mapping.structure import StructureProfile, analyze_structure, resolve_path
from templates.registry import FieldMapping, TemplateDefinition, TemplateRegistry

from .models import TemplateMatch, TemplateScore, TemplateSelection
from .thresholds import DEFAULT_THRESHOLDS, ConfidenceThresholds

logger = logging.getLogger(__name__)

STRUCTURE_WEIGHT = 20
STRUCTURE_CHECK_POINTS = 5
REQUIRED_PENALTY_FACTOR = 2


def structure_score(template: TemplateDefinition, profile: StructureProfile) -> float:
    """Score how well a document's shape fits a template (0-20)."""
    pattern = template.structure
    score = 0.0
    if profile.max_depth <= pattern.max_depth:
        score += STRUCTURE_CHECK_POINTS
    if profile.has_arrays == pattern.has_arrays:
        score += STRUCTURE_CHECK_POINTS
    if profile.has_nested_objects == pattern.has_nested_objects:
        score += STRUCTURE_CHECK_POINTS

    if pattern.expected_fields:
        found = sum(
            1
            for expected in pattern.expected_fields
            if any(expected in path for path in profile.all_fields)
        )
        score += STRUCTURE_CHECK_POINTS * found / len(pattern.expected_fields)
    return score


def find_source_path(document: Any, mapping: FieldMapping) -> str | None:
    """Get the first source path of a mapping that resolves to a value."""
    for path in mapping.source_paths:
        if resolve_path(document, path) is not None:
            return path
    return None


def score_template(
    template: TemplateDefinition,
    document: Any,
    profile: StructureProfile | None = None,
) -> TemplateScore:
    """Score a single template against a document.

    Args:
        template: Template to score
        document: Any JSON value
        profile: Precomputed structure profile of ``document``

    Returns:
        TemplateScore with confidence clamped to 0-100
    """
    if profile is None:
        profile = analyze_structure(document)

    total = structure_score(template, profile)
    max_possible = STRUCTURE_WEIGHT + template.total_weight
    matches: list[TemplateMatch] = []
    missing_required: list[str] = []

    for mapping in template.field_mappings:
        matched_path = find_source_path(document, mapping)
        if matched_path is not None:
            total += mapping.weight
            matches.append(
                TemplateMatch(
                    field=mapping.target_field, matched=matched_path, weight=mapping.weight
                )
            )
        elif mapping.required:
            total -= mapping.weight * REQUIRED_PENALTY_FACTOR
            missing_required.append(mapping.target_field)

    confidence = ConfidenceThresholds.clamp_confidence(total / max_possible * 100)

    return TemplateScore(
        template_name=template.name,
        resource_type=template.resource_type,
        score=total,
        confidence=confidence,
        matches=matches,
        missing_required=missing_required,
    )


def score_templates(
    registry: TemplateRegistry,
    document: Any,
    profile: StructureProfile | None = None,
) -> list[TemplateScore]:
    """Score every template in a registry, best first.

    Ties in raw score keep registry order.
    """
    if profile is None:
        profile = analyze_structure(document)
    scores = [score_template(template, document, profile) for template in registry]
    scores.sort(key=lambda s: s.score, reverse=True)
    if scores:
        logger.debug(
            f"Best {registry.resource_type} template: {scores[0].template_name} "
            f"(score={scores[0].score:.1f}, confidence={scores[0].confidence:.1f}%)"
        )
    return scores


def select_best_template(
    registry: TemplateRegistry,
    document: Any,
    thresholds: ConfidenceThresholds = DEFAULT_THRESHOLDS,
    profile: StructureProfile | None = None,
) -> TemplateSelection:
    """Select the best template with up to two alternatives."""
    scores = score_templates(registry, document, profile)
    best = scores[0]
    return TemplateSelection(
        selected=best,
        alternatives=scores[1:3],
        recommendation=thresholds.recommendation(
            best.template_name, best.confidence, best.missing_required
        ),
    )
