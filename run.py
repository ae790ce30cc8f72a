#!/usr/bin/env python3
"""
VeriWeave Report - Simple CLI Runner

Normalizes a raw analysis payload (JSON file) and renders it as a PDF report.

Usage:
    python run.py <payload_json> [--files <name> ...] [--output-dir <path>] [-v | -vv]
    python run.py data/raw/analysis.json
    python run.py data/raw/batch.json --files invoice.pdf receipt.png --output-dir reports
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

from src.common.logger import setup_logger
from src.section1_normalization import MalformedPayloadError, normalize_with_metadata
from src.section2_report_render import ReportRenderer, encode_pdf

OPTION_FLAGS = {"--files", "--output-dir", "--log-file", "-v", "-vv"}


def _option_values(args: list[str], flag: str) -> list[str]:
    """Values following flag up to the next option."""
    if flag not in args:
        return []
    values = []
    for value in args[args.index(flag) + 1:]:
        if value in OPTION_FLAGS:
            break
        values.append(value)
    return values


def main():
    args = sys.argv[1:]
    if not args or args[0] in OPTION_FLAGS:
        print(__doc__)
        sys.exit(1)

    payload_path = Path(args[0])
    uploaded_names = _option_values(args, "--files")
    output_dir = Path((_option_values(args, "--output-dir") or ["data/reports"])[0])
    log_file = (_option_values(args, "--log-file") or [None])[0]
    verbosity = 2 if "-vv" in args else 1 if "-v" in args else 0

    setup_logger(verbosity=verbosity, log_file=log_file)

    if not payload_path.exists():
        print(f"Error: File not found: {payload_path}")
        sys.exit(1)

    print(f"Normalizing: {payload_path}")
    print("-" * 50)

    try:
        finding, metadata = normalize_with_metadata(
            payload_path.read_text(encoding="utf-8"),
            uploaded_names,
        )
    except MalformedPayloadError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Shape: {metadata.shape.value}")
    print(f"Files: {', '.join(finding.filenames)}")
    print(f"Score: {finding.score}/100 ({finding.risk_level.value} risk)")
    print(f"Backfilled: {len(metadata.warnings)} field(s)")
    for warning in metadata.warnings:
        print(f"  - {warning}")

    renderer = ReportRenderer()
    generated_at = datetime.now(timezone.utc)
    pages = renderer.render(finding, generated_at)

    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / renderer.build_filename(finding, generated_at)
    output_path.write_bytes(encode_pdf(pages, renderer.config))

    print("-" * 50)
    print(f"Pages: {len(pages)}")
    print(f"Saved to: {output_path}")


if __name__ == "__main__":
    main()
