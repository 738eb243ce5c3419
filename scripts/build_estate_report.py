#!/usr/bin/env python3
"""
Build an estate distribution report from a saved estate snapshot.

Usage:
  python scripts/build_estate_report.py estate.json --output report.pdf
  python scripts/build_estate_report.py estate.json --text
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from warasat.config import settings
from warasat.services.estate.models import Location
from warasat.services.estate.session import EstateError, EstateSession
from warasat.services.i18n.localization import resolve_language
from warasat.services.report.pdf import build_estate_report_pdf
from warasat.services.report.render import render_estate_report

logger = logging.getLogger("build_estate_report")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Render an estate snapshot (JSON) as a PDF or text report.",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("snapshot", type=Path, help="Path to the estate snapshot JSON.")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="PDF output path. Defaults to the snapshot path with a .pdf suffix.",
    )
    parser.add_argument(
        "--text",
        action="store_true",
        help="Print the plain-text report to stdout instead of writing a PDF.",
    )
    parser.add_argument(
        "--lang",
        default=settings.default_language,
        help="Report language (en, ur).",
    )
    parser.add_argument(
        "--currency",
        default=settings.currency,
        help="Currency label used in amounts.",
    )
    return parser.parse_args(argv)


def load_session(path: Path) -> EstateSession:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("Estate snapshot must be a JSON object")
    return EstateSession.from_snapshot(
        data,
        settlement_threshold=settings.settlement_threshold,
        default_location=Location(lat=settings.default_latitude, lng=settings.default_longitude),
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
    lang = resolve_language(args.lang)

    try:
        session = load_session(args.snapshot)
    except FileNotFoundError:
        print(f"Snapshot not found: {args.snapshot}", file=sys.stderr)
        return 1
    except (ValueError, EstateError) as exc:
        print(f"Invalid snapshot: {exc}", file=sys.stderr)
        return 1

    if args.text:
        print(render_estate_report(session, lang=lang, currency=args.currency))
        return 0

    output = args.output or args.snapshot.with_suffix(".pdf")
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(build_estate_report_pdf(session, lang=lang, currency=args.currency))
    logger.info("Report written to %s", output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
