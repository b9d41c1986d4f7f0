"""Shared Pydantic schemas for the template inference backend.

This module centralizes the models used to validate template registry
files so every loader applies the same rules.
"""

from .templates import (
    FieldMappingSchema,
    StructurePatternSchema,
    TemplateFileSchema,
    TemplateSchema,
)

__all__ = [
    "FieldMappingSchema",
    "StructurePatternSchema",
    "TemplateFileSchema",
    "TemplateSchema",
]
