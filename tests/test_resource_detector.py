"""Tests for resource type detection."""

from __future__ import annotations

import logging

import pytest

from scoring import (
    EXPLICIT_TYPE_INDICATOR,
    UNKNOWN_RESOURCE_TYPE,
    ResourceEngine,
    ResourceTypeDetector,
)
from templates import build_registry


@pytest.fixture
def observation_registry():
    return build_registry(
        {
            "resource_type": "Observation",
            "indicators": ["loinc", "valueQuantity", "effectiveDateTime"],
            "templates": [
                {
                    "name": "ObservationBasic",
                    "structure": {"max_depth": 1, "has_arrays": False, "has_nested_objects": False},
                    "field_mappings": [
                        {"target_field": "code", "source_paths": ["loinc"], "weight": 10, "required": True},
                        {"target_field": "value", "source_paths": ["valueQuantity"], "weight": 5},
                    ],
                }
            ],
        }
    )


class TestResourceEngine:
    """Tests for ResourceEngine capabilities."""

    def test_can_handle_by_indicators(self, patient_registry, basic_patient):
        engine = ResourceEngine(patient_registry)
        assert engine.can_handle(basic_patient) is True

    def test_can_handle_by_type_tag(self, patient_registry):
        engine = ResourceEngine(patient_registry)
        assert engine.can_handle({"resourceType": "Patient"}) is True

    def test_single_indicator_is_not_enough(self, patient_registry):
        engine = ResourceEngine(patient_registry)
        assert engine.can_handle({"mrn": "123"}) is False

    def test_repeated_indicator_counts_once(self, patient_registry):
        """Test an indicator listed in several casings only counts once."""
        engine = ResourceEngine(patient_registry)
        profile = engine.analyze_structure({"MRN": "1", "mrn_alt": "2"})

        assert engine.matched_indicators(profile) == ["mrn"]
        assert engine.can_handle({"MRN": "1", "mrn_alt": "2"}) is False

    @pytest.mark.parametrize("document", [None, [], ["firstName", "lastName"], "patient"])
    def test_non_objects_not_handled(self, patient_registry, document):
        assert ResourceEngine(patient_registry).can_handle(document) is False

    def test_template_names(self, patient_registry):
        names = ResourceEngine(patient_registry).template_names()
        assert names[0] == "PatientBasic"


class TestDetectResourceType:
    """Tests for ResourceTypeDetector.detect_resource_type."""

    def test_explicit_resource_type(self, resource_detector):
        results = resource_detector.detect_resource_type({"resourceType": "Patient", "id": "123"})

        assert len(results) == 1
        assert results[0].resource_type == "Patient"
        assert results[0].confidence == 100.0
        assert results[0].indicators == [EXPLICIT_TYPE_INDICATOR]
        assert results[0].reasoning == "Explicit resourceType field found: Patient"

    def test_unregistered_resource_type(self, resource_detector):
        results = resource_detector.detect_resource_type({"resourceType": "Encounter"})

        assert results[0].resource_type == UNKNOWN_RESOURCE_TYPE
        assert results[0].confidence == 0
        assert results[0].reasoning == "Resource type 'Encounter' is not registered"

    @pytest.mark.parametrize("document", [None, 42, "text", True])
    def test_invalid_documents(self, resource_detector, document):
        results = resource_detector.detect_resource_type(document)

        assert len(results) == 1
        assert results[0].is_unknown
        assert results[0].reasoning == "Invalid or empty JSON data"

    def test_inferred_patient(self, resource_detector, basic_patient):
        best = resource_detector.get_best_match(basic_patient)

        assert best.resource_type == "Patient"
        assert best.confidence == pytest.approx(76.19, abs=0.01)
        assert best.indicators == ["firstName", "lastName", "patientId"]
        assert best.reasoning == "Patient templates matched 3 fields with 76.2% confidence"

    def test_ems_record(self, resource_detector, ems_record):
        best = resource_detector.get_best_match(ems_record)

        assert best.resource_type == "Patient"
        assert best.confidence == 100.0

    @pytest.mark.parametrize("document", [{}, {"widget": 1}, [1, 2, 3]])
    def test_nothing_can_handle(self, resource_detector, document):
        results = resource_detector.detect_resource_type(document)

        assert results[0].is_unknown
        assert results[0].reasoning == (
            "No registered template engines can handle this JSON structure"
        )

    def test_zero_confidence_engines_excluded(self, observation_registry):
        """Test a handled document whose best template scores zero is not reported."""
        detector = ResourceTypeDetector([ResourceEngine(observation_registry)])
        # Both indicators occur in field names, but the required code is missing
        document = {"loinc_note": "n/a", "valueQuantity_unit": "bpm"}

        assert detector.get_engine("Observation").can_handle(document)
        assert detector.get_best_match(document).is_unknown

    def test_results_ranked_by_confidence(
        self, patient_registry, observation_registry, basic_patient
    ):
        detector = ResourceTypeDetector(
            [ResourceEngine(observation_registry), ResourceEngine(patient_registry)]
        )
        document = dict(basic_patient, loinc="8867-4", valueQuantity=72)

        results = detector.detect_resource_type(document)
        assert [r.resource_type for r in results] == ["Observation", "Patient"]
        assert results[0].confidence >= results[1].confidence

    def test_deterministic(self, resource_detector, ems_record):
        first = [r.to_dict() for r in resource_detector.detect_resource_type(ems_record)]
        second = [r.to_dict() for r in resource_detector.detect_resource_type(ems_record)]
        assert first == second


class TestEngineRegistration:
    """Tests for engine registration and lookup."""

    def test_registration(self, patient_registry, observation_registry):
        detector = ResourceTypeDetector([ResourceEngine(patient_registry)])
        detector.register_engine(ResourceEngine(observation_registry))

        assert detector.registered_resource_types() == ["Patient", "Observation"]
        assert detector.is_supported("Observation")
        assert not detector.is_supported("Encounter")
        assert detector.get_engine("Encounter") is None

    def test_reregistration_replaces_and_warns(self, patient_registry, caplog):
        detector = ResourceTypeDetector([ResourceEngine(patient_registry)])
        replacement = ResourceEngine(patient_registry)

        with caplog.at_level(logging.WARNING):
            detector.register_engine(replacement)

        assert detector.get_engine("Patient") is replacement
        assert detector.registered_resource_types() == ["Patient"]
        assert "Replacing engine for resource type Patient" in caplog.text
