"""Structural profiling and path resolution for arbitrary JSON documents.

The profile produced here feeds the structural part of template scoring.
Template ``max_depth`` thresholds are calibrated against the exact depth
rules below: depth grows when descending into the value of a key, never
when stepping through the elements of an array.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

_INDEX_SUFFIX = re.compile(r"\[(\d+)\]")


@dataclass
class StructureProfile:
    """Shape summary of a JSON document."""

    max_depth: int = 0
    has_arrays: bool = False
    has_nested_objects: bool = False
    field_count: int = 0
    all_fields: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "max_depth": self.max_depth,
            "has_arrays": self.has_arrays,
            "has_nested_objects": self.has_nested_objects,
            "field_count": self.field_count,
            "all_fields": list(self.all_fields),
        }


def analyze_structure(document: Any) -> StructureProfile:
    """Walk a JSON value and build its structural profile.

    Args:
        document: Any JSON value (dict, list, scalar or None)

    Returns:
        StructureProfile where ``field_count == len(all_fields)``
    """
    profile = StructureProfile()
    _traverse(document, "", 0, profile)
    return profile


def _traverse(node: Any, path: str, depth: int, profile: StructureProfile) -> None:
    profile.max_depth = max(profile.max_depth, depth)

    if isinstance(node, list):
        profile.has_arrays = True
        for index, item in enumerate(node):
            if isinstance(item, (dict, list)):
                # Array elements stay at the depth of the array itself
                _traverse(item, f"{path}[{index}]", depth, profile)
    elif isinstance(node, dict):
        if depth > 0:
            profile.has_nested_objects = True
        for key, value in node.items():
            field_path = f"{path}.{key}" if path else str(key)
            profile.all_fields.append(field_path)
            profile.field_count += 1
            if isinstance(value, (dict, list)):
                _traverse(value, field_path, depth + 1, profile)


def split_path(path: str) -> list[str | int]:
    """Split a source path into key and index steps.

    ``"patients.0.name"`` and ``"patients[0].name"`` both become
    ``["patients", 0, "name"]``.
    """
    steps: list[str | int] = []
    for segment in path.split("."):
        if not segment:
            continue
        bracket = segment.find("[")
        key = segment if bracket == -1 else segment[:bracket]
        if key:
            steps.append(int(key) if key.isdigit() else key)
        if bracket != -1:
            steps.extend(int(m) for m in _INDEX_SUFFIX.findall(segment[bracket:]))
    return steps


def resolve_path(document: Any, path: str) -> Any | None:
    """Resolve a dotted source path against a document.

    Numeric segments index into lists. A JSON ``null`` anywhere along
    the path counts as absent.

    Returns:
        The value at ``path``, or None when any step is missing
    """
    current = document
    for step in split_path(path):
        if isinstance(current, dict):
            # Numeric keys are legal in JSON objects
            current = current.get(str(step) if isinstance(step, int) else step)
        elif isinstance(current, list) and isinstance(step, int):
            current = current[step] if step < len(current) else None
        else:
            return None
        if current is None:
            return None
    return current


def strip_indices(segment: str) -> str:
    """Remove trailing ``[n]`` index suffixes from a path segment."""
    return _INDEX_SUFFIX.sub("", segment)
