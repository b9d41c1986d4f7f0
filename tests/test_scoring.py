"""Tests for template scoring and selection."""

from __future__ import annotations

import pytest

from mapping.structure import analyze_structure
from scoring import (
    DEFAULT_THRESHOLDS,
    ConfidenceThresholds,
    score_template,
    score_templates,
    select_best_template,
)
from scoring.engine import structure_score
from templates import build_registry


def _registry(*templates):
    return build_registry({"resource_type": "Patient", "templates": list(templates)})


def _template(name, mappings, structure=None):
    return {
        "name": name,
        "structure": structure
        or {"max_depth": 1, "has_arrays": False, "has_nested_objects": False},
        "field_mappings": mappings,
    }


class TestScoreTemplate:
    """Tests for single template scoring."""

    def test_basic_patient(self, patient_registry, basic_patient):
        """Test the flat name and id record against PatientBasic."""
        score = score_template(patient_registry.get("PatientBasic"), basic_patient)

        # 20 structural points plus 10 + 10 + 8, out of 20 + 43
        assert score.score == 48
        assert score.confidence == pytest.approx(48 / 63 * 100)
        assert [m.field for m in score.matches] == ["name.given", "name.family", "id"]
        assert [m.matched for m in score.matches] == ["firstName", "lastName", "patientId"]
        assert score.missing_required == []

    def test_first_present_source_path_wins(self):
        registry = _registry(
            _template("T", [{"target_field": "id", "source_paths": ["mrn", "id"], "weight": 5}])
        )
        score = score_template(registry.get("T"), {"id": "1", "mrn": "2"})

        assert score.matches[0].matched == "mrn"

    def test_missing_required_penalty(self):
        registry = _registry(
            _template(
                "T",
                [
                    {"target_field": "id", "source_paths": ["id"], "weight": 10, "required": True},
                    {"target_field": "name", "source_paths": ["name"], "weight": 5},
                ],
            )
        )
        score = score_template(registry.get("T"), {"name": "x"})

        # 15 structural points (no expected fields) + 5 - 2 * 10
        assert score.score == 0
        assert score.missing_required == ["id"]
        assert score.confidence == 0

    def test_confidence_clamped_at_zero(self, patient_registry):
        score = score_template(patient_registry.get("PatientBasic"), {})

        assert score.score < 0
        assert score.confidence == 0.0
        assert score.missing_required == ["name.given", "name.family", "id"]

    def test_null_values_do_not_match(self, patient_registry):
        score = score_template(
            patient_registry.get("PatientBasic"),
            {"firstName": None, "lastName": "Doe", "patientId": "P1"},
        )

        assert "name.given" in score.missing_required

    @pytest.mark.parametrize("document", [None, 7, "text", [1, 2], {"x": {"y": [1]}}])
    def test_confidence_always_in_range(self, patient_registry, document):
        for template in patient_registry:
            score = score_template(template, document)
            assert 0 <= score.confidence <= 100


class TestStructureScore:
    """Tests for the structural subscore."""

    def test_all_checks_pass(self, patient_registry, basic_patient):
        template = patient_registry.get("PatientBasic")
        assert structure_score(template, analyze_structure(basic_patient)) == 20

    def test_partial_expected_fields(self, patient_registry):
        template = patient_registry.get("PatientBasic")
        profile = analyze_structure({"firstName": "A"})

        # Three shape checks, plus one of three expected fields
        assert structure_score(template, profile) == pytest.approx(15 + 5 / 3)

    def test_too_deep(self, patient_registry):
        template = patient_registry.get("PatientBasic")
        profile = analyze_structure({"a": {"b": {"c": 1}}})

        # Depth and nesting both miss
        assert structure_score(template, profile) == 5


class TestScoreTemplates:
    """Tests for ranking and selection."""

    def test_basic_patient_selects_patient_basic(self, patient_registry, basic_patient):
        selection = select_best_template(patient_registry, basic_patient)

        assert selection.selected.template_name == "PatientBasic"
        assert selection.selected.confidence == pytest.approx(76.19, abs=0.01)
        assert selection.recommendation == (
            "Moderate confidence match with PatientBasic. Consider reviewing field mappings."
        )
        assert len(selection.alternatives) == 2

    def test_ems_record_selects_patient_ems(self, patient_registry, ems_record):
        scores = score_templates(patient_registry, ems_record)

        assert scores[0].template_name == "PatientEMS"
        assert scores[0].confidence == 100.0
        assert scores[0].score > scores[1].score

    def test_empty_document(self, patient_registry):
        """Test every template scores zero for an empty object."""
        scores = score_templates(patient_registry, {})

        assert len(scores) == 49
        assert all(s.confidence == 0 for s in scores)

        selection = select_best_template(patient_registry, {})
        assert selection.recommendation.startswith(
            "Very low confidence. Consider creating a custom template or check data format."
        )
        assert "Missing required fields:" in selection.recommendation

    def test_ties_keep_registry_order(self):
        mapping = [{"target_field": "id", "source_paths": ["id"], "weight": 5}]
        registry = _registry(_template("First", mapping), _template("Second", mapping))

        scores = score_templates(registry, {"id": "1"})
        assert [s.template_name for s in scores] == ["First", "Second"]

    def test_deterministic(self, patient_registry, ems_record):
        first = [s.to_dict() for s in score_templates(patient_registry, ems_record)]
        second = [s.to_dict() for s in score_templates(patient_registry, ems_record)]
        assert first == second


class TestConfidenceThresholds:
    """Tests for recommendation text."""

    @pytest.mark.parametrize(
        "confidence,expected",
        [
            (95, "High confidence match with T"),
            (80, "High confidence match with T"),
            (60, "Moderate confidence match with T. Consider reviewing field mappings."),
            (40, "Low confidence match. T selected but manual review recommended."),
            (39.9, "Very low confidence. Consider creating a custom template or check data format."),
        ],
    )
    def test_bands(self, confidence, expected):
        assert DEFAULT_THRESHOLDS.recommendation("T", confidence) == expected

    def test_missing_required_suffix(self):
        text = DEFAULT_THRESHOLDS.recommendation("T", 85, ["id", "name.given"])
        assert text == "High confidence match with T Missing required fields: id, name.given."

    def test_custom_thresholds(self):
        strict = ConfidenceThresholds(high_min=95, moderate_min=90, low_min=85)
        assert strict.confidence_band(91) == "moderate"
        assert strict.confidence_band(50) == "very_low"

    def test_clamp(self):
        assert ConfidenceThresholds.clamp_confidence(-12) == 0.0
        assert ConfidenceThresholds.clamp_confidence(140) == 100.0
        assert ConfidenceThresholds.clamp_confidence(42.5) == 42.5
