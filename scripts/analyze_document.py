#!/usr/bin/env python3
"""Analyze a JSON document and report the best mapping template.

Usage:
    python scripts/analyze_document.py patient.json
    cat patient.json | python scripts/analyze_document.py --synthesize-only -o patient.liquid
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from analyzer import build_default_analyzer  # noqa: E402
from config import LOG_LEVEL  # noqa: E402
from templates import TemplateRegistryError  # noqa: E402

logger = logging.getLogger("analyze_document")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "input",
        nargs="?",
        help="JSON file to analyze (reads stdin when omitted)",
    )
    parser.add_argument(
        "--synthesize-only",
        action="store_true",
        help="Skip static template selection and always synthesize a template",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Write the synthesized Liquid template to this path",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def read_document(source: str | None):
    """Read and parse the input JSON document."""
    if source:
        with open(source, "r", encoding="utf-8") as f:
            return json.load(f)
    return json.load(sys.stdin)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        document = read_document(args.input)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Could not read input: {e}")
        return 1

    try:
        analyzer = build_default_analyzer()
    except TemplateRegistryError as e:
        logger.error(f"{e}")
        for error in e.errors:
            logger.error(f"  {error}")
        return 1

    if args.synthesize_only:
        synthesis = analyzer.synthesizer.synthesize(document)
        report = synthesis.to_dict()
    else:
        result = analyzer.analyze(document)
        synthesis = result.synthesis
        report = result.to_dict()

    print(json.dumps(report, indent=2))

    if args.output:
        if synthesis is None or not synthesis.success:
            logger.warning("No template was synthesized; nothing written")
        else:
            Path(args.output).write_text(synthesis.template, encoding="utf-8")
            logger.info(f"Wrote {synthesis.template_name} to {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
