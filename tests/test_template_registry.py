"""Tests for template registry loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from templates import (
    TemplateRegistryError,
    build_registry,
    get_template_list,
    load_default_registries,
    load_registry,
)

MINIMAL_REGISTRY = {
    "resource_type": "Observation",
    "name": "Observation templates",
    "indicators": ["loinc", "valueQuantity"],
    "templates": [
        {
            "name": "ObservationBasic",
            "structure": {"max_depth": 1, "has_arrays": False, "has_nested_objects": False},
            "field_mappings": [
                {"target_field": "code", "source_paths": ["loinc", "code"], "weight": 10, "required": True},
                {"target_field": "value", "source_paths": ["value"], "weight": 5},
            ],
        }
    ],
}


def _write(directory: Path, name: str, data) -> Path:
    path = directory / name
    path.write_text(yaml.safe_dump(data) if not isinstance(data, str) else data)
    return path


def _registry_data(**overrides):
    data = yaml.safe_load(yaml.safe_dump(MINIMAL_REGISTRY))
    data.update(overrides)
    return data


class TestBundledPatientRegistry:
    """Tests for the bundled Patient registry."""

    def test_template_order(self, patient_registry):
        names = patient_registry.names()

        assert len(patient_registry) == 49
        assert names[0] == "PatientBasic"
        assert names[-1] == "PatientEMS"
        assert len(set(names)) == len(names)

    def test_registry_metadata(self, patient_registry):
        assert patient_registry.resource_type == "Patient"
        assert patient_registry.type_tag_field == "resourceType"
        assert patient_registry.min_indicator_hits == 2
        assert "firstName" in patient_registry.indicators

    def test_anchored_synonyms_expand(self, patient_registry):
        """Test YAML anchors expand to full source path lists."""
        basic = patient_registry.get("PatientBasic")
        given = basic.field_mappings[0]

        assert given.target_field == "name.given"
        assert given.source_paths[0] == "firstName"
        assert "forename" in given.source_paths
        assert given.required is True

    def test_every_template_has_a_required_field(self, patient_registry):
        for template in patient_registry:
            assert any(m.required for m in template.field_mappings), template.name

    def test_lookup_is_case_sensitive(self, patient_registry):
        assert patient_registry.get("PatientEMS") is not None
        assert patient_registry.get("patientems") is None
        assert "PatientEMS" in patient_registry

    def test_templates_are_immutable(self, patient_registry):
        template = patient_registry.get("PatientBasic")
        with pytest.raises(AttributeError):
            template.name = "Other"

    def test_to_dict(self, patient_registry):
        data = patient_registry.get("PatientBasic").to_dict()

        assert data["name"] == "PatientBasic"
        assert data["resource_type"] == "Patient"


class TestBuildRegistry:
    """Tests for registry validation."""

    def test_valid_data(self):
        registry = build_registry(_registry_data())

        assert registry.resource_type == "Observation"
        assert registry.names() == ["ObservationBasic"]
        assert registry.get("ObservationBasic").total_weight == 15

    def test_non_mapping_rejected(self):
        with pytest.raises(TemplateRegistryError):
            build_registry(["not", "a", "mapping"])

    def test_zero_weight_rejected(self):
        data = _registry_data()
        data["templates"][0]["field_mappings"][0]["weight"] = 0

        with pytest.raises(TemplateRegistryError) as exc_info:
            build_registry(data, "observation.yaml")

        fields = [error["field"] for error in exc_info.value.errors]
        assert "templates.0.field_mappings.0.weight" in fields
        assert exc_info.value.errors[0]["file"] == "observation.yaml"

    def test_unknown_data_type_rejected(self):
        data = _registry_data()
        data["templates"][0]["field_mappings"][1]["data_type"] = "datetime"

        with pytest.raises(TemplateRegistryError):
            build_registry(data)

    def test_blank_source_path_rejected(self):
        data = _registry_data()
        data["templates"][0]["field_mappings"][1]["source_paths"] = ["  "]

        with pytest.raises(TemplateRegistryError):
            build_registry(data)

    def test_empty_template_list_rejected(self):
        with pytest.raises(TemplateRegistryError):
            build_registry(_registry_data(templates=[]))

    def test_duplicate_template_names_rejected(self):
        data = _registry_data()
        data["templates"].append(dict(data["templates"][0]))

        with pytest.raises(TemplateRegistryError) as exc_info:
            build_registry(data)
        assert "Duplicate template names" in str(exc_info.value.errors)

    def test_unknown_template_keys_rejected(self):
        data = _registry_data()
        data["templates"][0]["weighting"] = "heavy"

        with pytest.raises(TemplateRegistryError):
            build_registry(data)

    def test_error_is_value_error(self):
        with pytest.raises(ValueError):
            build_registry(_registry_data(resource_type=""))


class TestLoadRegistry:
    """Tests for loading registry files."""

    def test_load_from_file(self, tmp_path: Path):
        path = _write(tmp_path, "observation.yaml", MINIMAL_REGISTRY)

        registry = load_registry(path)
        assert registry.resource_type == "Observation"

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(TemplateRegistryError, match="not found"):
            load_registry(tmp_path / "missing.yaml")

    def test_malformed_yaml(self, tmp_path: Path):
        path = _write(tmp_path, "broken.yaml", "templates: [unclosed\n  - :")

        with pytest.raises(TemplateRegistryError, match="Invalid YAML"):
            load_registry(path)

    def test_load_default_registries(self):
        registries = load_default_registries()

        assert [r.resource_type for r in registries] == ["Patient"]

    def test_load_directory(self, tmp_path: Path):
        _write(tmp_path, "observation.yaml", MINIMAL_REGISTRY)
        _write(tmp_path, "patient.yaml", _registry_data(resource_type="Patient"))

        registries = load_default_registries(tmp_path)
        assert [r.resource_type for r in registries] == ["Observation", "Patient"]

    def test_errors_collected_across_files(self, tmp_path: Path):
        bad = _registry_data()
        bad["templates"][0]["field_mappings"][0]["weight"] = -1
        _write(tmp_path, "a.yaml", bad)
        _write(tmp_path, "b.yaml", "templates: [unclosed")

        with pytest.raises(TemplateRegistryError) as exc_info:
            load_default_registries(tmp_path)
        files = {Path(error["file"]).name for error in exc_info.value.errors}
        assert files == {"a.yaml", "b.yaml"}

    def test_duplicate_resource_types(self, tmp_path: Path):
        _write(tmp_path, "a.yaml", MINIMAL_REGISTRY)
        _write(tmp_path, "b.yaml", MINIMAL_REGISTRY)

        with pytest.raises(TemplateRegistryError) as exc_info:
            load_default_registries(tmp_path)
        assert "Duplicate resource type" in exc_info.value.errors[0]["error"]

    def test_empty_directory(self, tmp_path: Path):
        with pytest.raises(TemplateRegistryError, match="No template registries"):
            load_default_registries(tmp_path)


class TestGetTemplateList:
    """Tests for get_template_list."""

    def test_bundled_registries(self):
        registries = get_template_list()
        patient = next(r for r in registries if r["id"] == "patient")

        assert patient["resource_type"] == "Patient"
        assert patient["template_count"] == 49

    def test_skips_malformed_files(self, tmp_path: Path):
        _write(tmp_path, "observation.yaml", MINIMAL_REGISTRY)
        _write(tmp_path, "broken.yaml", "templates: [unclosed")

        registries = get_template_list(tmp_path)
        assert [r["id"] for r in registries] == ["observation"]

    def test_sorted_by_name(self, tmp_path: Path):
        _write(tmp_path, "z.yaml", _registry_data(name="Alpha"))
        _write(tmp_path, "a.yaml", _registry_data(name="Beta"))

        names = [r["name"] for r in get_template_list(tmp_path)]
        assert names == ["Alpha", "Beta"]

    def test_follows_configured_directory(self, tmp_path: Path, monkeypatch):
        """Test listing and loading both default to config.TEMPLATES_DIR."""
        import config

        _write(tmp_path, "observation.yaml", MINIMAL_REGISTRY)
        monkeypatch.setattr(config, "TEMPLATES_DIR", tmp_path)

        assert [r["id"] for r in get_template_list()] == ["observation"]
        assert [r.resource_type for r in load_default_registries()] == ["Observation"]
