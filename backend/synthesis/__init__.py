"""Liquid template synthesis for documents without a matching static template.

Usage:
    from synthesis import TemplateSynthesizer, render_liquid

    result = synthesizer.synthesize(document)
    if result.success:
        print(result.template_name, result.confidence)
        print(result.template)
"""

from .context import MappingContext, build_mapping_context, select_fields
from .ir import (
    ArrayNode,
    Conditional,
    EstimatedBirthDate,
    FieldRef,
    Literal,
    Member,
    ObjectNode,
    ValueLookup,
)
from .liquid import LiquidRenderer, liquid_path, render_liquid
from .passthrough import build_passthrough_template, is_canonical
from .synthesizer import (
    LOW_CONFIDENCE_ERROR,
    FieldBreakdown,
    SynthesisAnalysis,
    SynthesizedTemplate,
    TemplateSynthesizer,
)

__all__ = [
    # Synthesis
    "TemplateSynthesizer",
    "SynthesizedTemplate",
    "SynthesisAnalysis",
    "FieldBreakdown",
    "LOW_CONFIDENCE_ERROR",
    # Context
    "MappingContext",
    "build_mapping_context",
    "select_fields",
    # Passthrough
    "is_canonical",
    "build_passthrough_template",
    # IR
    "Literal",
    "FieldRef",
    "ValueLookup",
    "EstimatedBirthDate",
    "Member",
    "Conditional",
    "ObjectNode",
    "ArrayNode",
    # Rendering
    "LiquidRenderer",
    "liquid_path",
    "render_liquid",
]
