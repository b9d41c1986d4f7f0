"""Template registry loading and lookup.

A registry holds the ordered templates for one resource type together with
the indicators used to decide whether a document belongs to that type.
Registries are loaded from YAML, validated, and immutable afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterator

import yaml
from pydantic import ValidationError

import config
from schemas.templates import TemplateFileSchema

logger = logging.getLogger(__name__)


class TemplateRegistryError(ValueError):
    """Raised when a template registry file is missing or invalid."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


@dataclass(frozen=True)
class FieldMapping:
    target_field: str
    source_paths: tuple[str, ...]
    weight: int
    required: bool = False
    data_type: str = "string"


@dataclass(frozen=True)
class StructurePattern:
    max_depth: int
    has_arrays: bool
    has_nested_objects: bool
    expected_fields: tuple[str, ...] = ()


@dataclass(frozen=True)
class TemplateDefinition:
    """A declarative mapping from source paths to target fields."""

    name: str
    description: str
    resource_type: str
    priority: int
    field_mappings: tuple[FieldMapping, ...]
    structure: StructurePattern

    @property
    def total_weight(self) -> int:
        return sum(mapping.weight for mapping in self.field_mappings)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "description": self.description,
            "resource_type": self.resource_type,
            "priority": self.priority,
            "structure": {
                "max_depth": self.structure.max_depth,
                "has_arrays": self.structure.has_arrays,
                "has_nested_objects": self.structure.has_nested_objects,
                "expected_fields": list(self.structure.expected_fields),
            },
            "field_mappings": [
                {
                    "target_field": mapping.target_field,
                    "source_paths": list(mapping.source_paths),
                    "weight": mapping.weight,
                    "required": mapping.required,
                    "data_type": mapping.data_type,
                }
                for mapping in self.field_mappings
            ],
        }


class TemplateRegistry:
    """Ordered, read-only collection of templates for one resource type."""

    def __init__(
        self,
        resource_type: str,
        templates: tuple[TemplateDefinition, ...],
        indicators: tuple[str, ...] = (),
        min_indicator_hits: int = 2,
        type_tag_field: str = "resourceType",
        name: str = "",
        description: str = "",
    ) -> None:
        if not templates:
            raise TemplateRegistryError(f"Registry for {resource_type} has no templates")
        self._resource_type = resource_type
        self._templates = tuple(templates)
        self._by_name = {template.name: template for template in self._templates}
        if len(self._by_name) != len(self._templates):
            raise TemplateRegistryError(
                f"Registry for {resource_type} has duplicate template names"
            )
        self._indicators = tuple(indicators)
        self._min_indicator_hits = min_indicator_hits
        self._type_tag_field = type_tag_field
        self.name = name or resource_type
        self.description = description

    @property
    def resource_type(self) -> str:
        return self._resource_type

    @property
    def templates(self) -> tuple[TemplateDefinition, ...]:
        return self._templates

    @property
    def indicators(self) -> tuple[str, ...]:
        return self._indicators

    @property
    def min_indicator_hits(self) -> int:
        return self._min_indicator_hits

    @property
    def type_tag_field(self) -> str:
        return self._type_tag_field

    def get(self, name: str) -> TemplateDefinition | None:
        """Look up a template by exact (case-sensitive) name."""
        return self._by_name.get(name)

    def names(self) -> list[str]:
        return [template.name for template in self._templates]

    def __iter__(self) -> Iterator[TemplateDefinition]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __repr__(self) -> str:
        return f"TemplateRegistry({self._resource_type!r}, templates={len(self)})"


def _format_errors(exc: ValidationError, source: str) -> list[dict[str, Any]]:
    return [
        {
            "file": source,
            "field": ".".join(str(part) for part in error["loc"]),
            "error": error["msg"],
        }
        for error in exc.errors()
    ]


def build_registry(data: Any, source: str = "<memory>") -> TemplateRegistry:
    """Validate parsed registry data and build a TemplateRegistry.

    Args:
        data: Parsed YAML content
        source: Origin of the data, used in error messages

    Raises:
        TemplateRegistryError: If validation fails
    """
    if not isinstance(data, dict):
        raise TemplateRegistryError(
            f"Invalid template registry format in {source}",
            errors=[{"file": source, "error": "Expected a mapping at the top level"}],
        )

    try:
        parsed = TemplateFileSchema.model_validate(data)
    except ValidationError as e:
        errors = _format_errors(e, source)
        raise TemplateRegistryError(
            f"Validation failed for {len(errors)} item(s) in {source}", errors=errors
        ) from e

    templates = tuple(
        TemplateDefinition(
            name=template.name,
            description=template.description,
            resource_type=parsed.resource_type,
            priority=template.priority,
            field_mappings=tuple(
                FieldMapping(
                    target_field=mapping.target_field,
                    source_paths=tuple(mapping.source_paths),
                    weight=mapping.weight,
                    required=mapping.required,
                    data_type=mapping.data_type,
                )
                for mapping in template.field_mappings
            ),
            structure=StructurePattern(
                max_depth=template.structure.max_depth,
                has_arrays=template.structure.has_arrays,
                has_nested_objects=template.structure.has_nested_objects,
                expected_fields=tuple(template.structure.expected_fields),
            ),
        )
        for template in parsed.templates
    )

    return TemplateRegistry(
        resource_type=parsed.resource_type,
        templates=templates,
        indicators=tuple(parsed.indicators),
        min_indicator_hits=parsed.min_indicator_hits,
        type_tag_field=parsed.type_tag_field,
        name=parsed.name,
        description=parsed.description,
    )


def load_registry(path: str | Path) -> TemplateRegistry:
    """Load a template registry from a YAML file.

    Raises:
        TemplateRegistryError: If the file is missing, unparsable or invalid
    """
    path = Path(path)
    if not path.exists():
        raise TemplateRegistryError(f"Template registry not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise TemplateRegistryError(
            f"Invalid YAML in {path}", errors=[{"file": str(path), "error": str(e)}]
        ) from e

    registry = build_registry(data, str(path))
    logger.info(
        f"Loaded {len(registry)} {registry.resource_type} template(s) from {path.name}"
    )
    return registry


def load_default_registries(templates_dir: str | Path | None = None) -> list[TemplateRegistry]:
    """Load every registry file in a directory, in file name order.

    Args:
        templates_dir: Directory to scan. Defaults to config.TEMPLATES_DIR,
            read at call time.

    Raises:
        TemplateRegistryError: If any file fails to load, with all errors collected
    """
    directory = Path(templates_dir) if templates_dir else config.TEMPLATES_DIR

    registries: list[TemplateRegistry] = []
    errors: list[dict[str, Any]] = []
    seen_types: set[str] = set()

    for file_path in sorted(directory.glob("*.yaml")):
        try:
            registry = load_registry(file_path)
        except TemplateRegistryError as e:
            errors.extend(e.errors or [{"file": str(file_path), "error": str(e)}])
            continue
        if registry.resource_type in seen_types:
            errors.append(
                {
                    "file": str(file_path),
                    "error": f"Duplicate resource type: {registry.resource_type}",
                }
            )
            continue
        seen_types.add(registry.resource_type)
        registries.append(registry)

    if errors:
        raise TemplateRegistryError(
            f"Validation failed for {len(errors)} item(s)", errors=errors
        )
    if not registries:
        raise TemplateRegistryError(f"No template registries found in {directory}")

    return registries
