"""Patient Template Inference Backend Package.

This package infers which mapping template fits an arbitrary JSON document
describing a patient, and synthesizes a Liquid template when none does:

- Structural profiling and semantic field detection
- Data-driven template registries validated at load time
- Template scoring and resource type detection
- Liquid template synthesis with FHIR code resolution

Usage:
    # From project root:
    PYTHONPATH=backend python scripts/analyze_document.py patient.json

    # Or as a library:
    from analyzer import analyze_document
    result = analyze_document({"firstName": "John", "lastName": "Doe"})

Modules:
    analyzer: Orchestrates detection, selection and synthesis
    mapping: Structure profiling, field patterns and code resolution
    templates: YAML template registries
    scoring: Template scoring and resource type detection
    synthesis: Template IR, Liquid rendering and synthesis
    schemas: Pydantic models for registry files
"""

__version__ = "0.2.0"
