"""Template registries bundled with the backend.

Each YAML file in this directory describes the structural templates for
one resource type. Use ``load_default_registries`` to build validated,
immutable registries and ``get_template_list`` for a quick catalogue.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

import config
from .registry import (
    FieldMapping,
    StructurePattern,
    TemplateDefinition,
    TemplateRegistry,
    TemplateRegistryError,
    build_registry,
    load_default_registries,
    load_registry,
)

logger = logging.getLogger(__name__)

BUNDLED_TEMPLATES_DIR = Path(__file__).parent


def get_template_list(templates_dir: str | Path | None = None) -> list[dict[str, Any]]:
    """Get list of available template registry files.

    Unreadable files are skipped here; loading them through
    ``load_registry`` reports the actual problem.

    Returns:
        List of registry metadata (id, resource_type, name, description, template_count).
    """
    directory = Path(templates_dir) if templates_dir else config.TEMPLATES_DIR
    registries = []
    for file_path in directory.glob("*.yaml"):
        try:
            with open(file_path) as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Skipping unreadable template file {file_path.name}: {e}")
            continue
        if data and isinstance(data, dict):
            templates = data.get("templates") or []
            registries.append(
                {
                    "id": file_path.stem,
                    "resource_type": data.get("resource_type", ""),
                    "name": data.get("name", file_path.stem),
                    "description": data.get("description", ""),
                    "template_count": len(templates) if isinstance(templates, list) else 0,
                }
            )

    return sorted(registries, key=lambda x: x["name"])


__all__ = [
    "BUNDLED_TEMPLATES_DIR",
    "FieldMapping",
    "StructurePattern",
    "TemplateDefinition",
    "TemplateRegistry",
    "TemplateRegistryError",
    "build_registry",
    "get_template_list",
    "load_default_registries",
    "load_registry",
]
