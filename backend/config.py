"""Shared configuration for the template inference backend.

This module centralizes environment variable access and default values
to prevent drift between modules.
"""

import os
from pathlib import Path

# Template registry files (one YAML file per resource type)
TEMPLATES_DIR = Path(
    os.getenv("TEMPLATES_DIR", str(Path(__file__).parent / "templates"))
)

# Detected fields below this confidence are ignored during synthesis
MIN_FIELD_CONFIDENCE = float(os.getenv("MIN_FIELD_CONFIDENCE", "0.6"))

# Synthesized templates below this mean confidence are reported as failures
SYNTHESIS_MIN_CONFIDENCE = float(os.getenv("SYNTHESIS_MIN_CONFIDENCE", "0.5"))

# Static template confidence (0-100) at or above which no synthesis is attempted
TEMPLATE_ACCEPT_CONFIDENCE = float(os.getenv("TEMPLATE_ACCEPT_CONFIDENCE", "60"))

# Used by the command line entry point only; the library never configures logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")
