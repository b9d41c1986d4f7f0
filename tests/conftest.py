"""Pytest configuration and fixtures."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

# Add backend to path for imports
backend_path = str(Path(__file__).parent.parent / "backend")
if backend_path not in sys.path:
    sys.path.insert(0, backend_path)


@pytest.fixture(scope="session")
def resolver():
    """Code resolver over the bundled value sets."""
    from mapping.valuesets import StaticCodeResolver

    return StaticCodeResolver()


@pytest.fixture(scope="session")
def field_detector(resolver):
    from mapping.field_detector import SemanticFieldDetector

    return SemanticFieldDetector(resolver)


@pytest.fixture(scope="session")
def patient_registry():
    """The bundled Patient template registry."""
    from templates import BUNDLED_TEMPLATES_DIR, load_registry

    return load_registry(BUNDLED_TEMPLATES_DIR / "patient.yaml")


@pytest.fixture(scope="session")
def resource_detector(patient_registry):
    from scoring import ResourceEngine, ResourceTypeDetector

    return ResourceTypeDetector([ResourceEngine(patient_registry)])


@pytest.fixture
def synthesizer(field_detector, resolver):
    from synthesis import TemplateSynthesizer

    return TemplateSynthesizer(field_detector, resolver, reference_year=2024)


@pytest.fixture
def basic_patient() -> dict[str, Any]:
    """Flat patient record with a name and an identifier."""
    return {"firstName": "John", "lastName": "Doe", "patientId": "P1"}


@pytest.fixture
def flat_patient() -> dict[str, Any]:
    """Flat snake_case patient record covering the common demographics."""
    return {
        "patient_id": "P-1001",
        "first_name": "Ada",
        "last_name": "Lovelace",
        "gender": "F",
        "dob": "1815-12-10",
        "phone": "555-0100",
        "city": "London",
    }


@pytest.fixture
def ems_record() -> dict[str, Any]:
    """Emergency medical services run report."""
    return {
        "caseId": "EMS-2024-0042",
        "patient": {
            "sex": "male",
            "ageEstimate": 45,
            "unidentified": True,
        },
        "vitals": {
            "heartRate": 112,
            "respiratoryRate": 22,
            "bloodPressure": "150/95",
        },
        "incidentLocation": {
            "lat": 40.7128,
            "lng": -74.006,
            "description": "Intersection of 5th and Main",
        },
        "transportedTo": "General Hospital",
    }


@pytest.fixture
def fhir_patient() -> dict[str, Any]:
    """Document that is already a FHIR Patient resource."""
    return {
        "resourceType": "Patient",
        "id": "example",
        "identifier": [{"system": "urn:oid:1.2.36.146.595.217.0.1", "value": "12345"}],
        "name": [{"use": "official", "family": "Chalmers", "given": ["Peter", "James"]}],
        "telecom": [{"system": "phone", "value": "(03) 5555 6473", "use": "work"}],
        "gender": "male",
        "birthDate": "1974-12-25",
        "address": [{"use": "home", "line": ["534 Erewhon St"], "city": "PleasantVille"}],
    }
