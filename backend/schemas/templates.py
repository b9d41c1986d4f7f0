"""Pydantic schemas for template registry files."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DataType = Literal["string", "number", "boolean", "array", "object", "date"]


class FieldMappingSchema(BaseModel):
    """One target field with the source paths that can supply it."""

    model_config = ConfigDict(extra="forbid")

    target_field: str = Field(min_length=1)
    source_paths: list[str] = Field(min_length=1)
    weight: int = Field(gt=0)
    required: bool = False
    data_type: DataType = "string"

    @field_validator("source_paths")
    @classmethod
    def validate_source_paths(cls, v: list[str]) -> list[str]:
        """Validate that no source path is blank."""
        if any(not path.strip() for path in v):
            raise ValueError("Source paths must be non-empty strings")
        return v


class StructurePatternSchema(BaseModel):
    """Expected document shape for a template."""

    model_config = ConfigDict(extra="forbid")

    max_depth: int = Field(ge=0)
    has_arrays: bool
    has_nested_objects: bool
    expected_fields: list[str] = Field(default_factory=list)


class TemplateSchema(BaseModel):
    """A single template definition."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(min_length=1)
    description: str = ""
    priority: int = 0
    structure: StructurePatternSchema
    field_mappings: list[FieldMappingSchema] = Field(min_length=1)


class TemplateFileSchema(BaseModel):
    """Top-level layout of a template registry file."""

    resource_type: str = Field(min_length=1)
    name: str = ""
    description: str = ""
    type_tag_field: str = "resourceType"
    min_indicator_hits: int = Field(default=2, ge=1)
    indicators: list[str] = Field(default_factory=list)
    # Reusable source path lists, referenced from templates through YAML anchors
    synonyms: dict[str, list[str]] = Field(default_factory=dict)
    templates: list[TemplateSchema] = Field(min_length=1)

    @model_validator(mode="after")
    def validate_unique_names(self) -> "TemplateFileSchema":
        """Validate that template names are unique within the file."""
        seen: set[str] = set()
        duplicates: list[str] = []
        for template in self.templates:
            if template.name in seen:
                duplicates.append(template.name)
            seen.add(template.name)
        if duplicates:
            raise ValueError(f"Duplicate template names: {', '.join(duplicates)}")
        return self
