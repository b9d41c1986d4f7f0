"""Field-level analysis of arbitrary JSON documents.

This module profiles document structure, detects FHIR Patient semantics
from field names and resolves coded values against canonical code tables.

Usage:
    from mapping import SemanticFieldDetector, StaticCodeResolver, analyze_structure

    profile = analyze_structure(document)
    print(profile.max_depth, profile.all_fields)

    detector = SemanticFieldDetector(resolver=StaticCodeResolver())
    fields = detector.detect_fields(document)

    # Resolve a value by source path
    from mapping import resolve_path
    family = resolve_path(document, "patient.name[0].family")
"""

from .field_detector import DetectedField, FieldMatch, SemanticFieldDetector
from .patterns import (
    CATEGORIES,
    DEFAULT_PATTERNS,
    PatternRegistry,
    PatternRule,
    target_path,
)
from .structure import StructureProfile, analyze_structure, resolve_path, split_path
from .valuesets import (
    ADDRESS_TYPE,
    ADDRESS_USE,
    ADMINISTRATIVE_GENDER,
    CONTACT_POINT_SYSTEM,
    CONTACT_POINT_USE,
    MARITAL_STATUS,
    NAME_USE,
    VALUE_SETS,
    CodeResolver,
    StaticCodeResolver,
    ValueSet,
)

__all__ = [
    # Structure
    "StructureProfile",
    "analyze_structure",
    "resolve_path",
    "split_path",
    # Patterns
    "CATEGORIES",
    "DEFAULT_PATTERNS",
    "PatternRegistry",
    "PatternRule",
    "target_path",
    # Detection
    "SemanticFieldDetector",
    "DetectedField",
    "FieldMatch",
    # Value sets
    "CodeResolver",
    "StaticCodeResolver",
    "ValueSet",
    "VALUE_SETS",
    "ADMINISTRATIVE_GENDER",
    "NAME_USE",
    "CONTACT_POINT_SYSTEM",
    "CONTACT_POINT_USE",
    "ADDRESS_USE",
    "ADDRESS_TYPE",
    "MARITAL_STATUS",
]
