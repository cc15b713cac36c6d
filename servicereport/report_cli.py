from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .assets import collect_image_refs, prefetch_images
from .config import ReportConfig
from .errors import ReportBuildError
from .models import ReportInputs
from .report import build_service_report_pdf
from .report_i18n import SUPPORTED_LANGS


def _offline_fetcher(url: str, timeout_s: float) -> bytes:
    raise OSError("network fetches are disabled (--offline)")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Render a service report PDF from a JSON bundle")
    parser.add_argument(
        "input",
        type=Path,
        help="Input bundle (.json) with report, policy, client, company, devices, technicians",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Output PDF path (default: <input_stem>_report.pdf)",
    )
    parser.add_argument("--lang", choices=SUPPORTED_LANGS, default="es", help="Report language")
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Do not fetch remote images; embedded images are still decoded",
    )
    return parser.parse_args()


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    args = parse_args()
    if not args.input.exists():
        print(f"Error: input file not found: {args.input}", file=sys.stderr)
        return 1
    try:
        bundle = json.loads(args.input.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        print(f"Error: input file contains invalid JSON: {exc}", file=sys.stderr)
        return 1
    if not isinstance(bundle, dict):
        print("Error: input bundle must be a JSON object", file=sys.stderr)
        return 1
    try:
        inputs = ReportInputs.from_dict(bundle)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    images = prefetch_images(
        collect_image_refs(inputs),
        fetcher=_offline_fetcher if args.offline else None,
    )
    out_pdf = args.output or args.input.with_name(f"{args.input.stem}_report.pdf")
    out_pdf.parent.mkdir(parents=True, exist_ok=True)
    try:
        pdf = build_service_report_pdf(
            inputs, images=images, options=ReportConfig(language=args.lang)
        )
    except ReportBuildError as exc:
        print(f"Error: PDF generation failed: {exc}", file=sys.stderr)
        return 1
    out_pdf.write_bytes(pdf)
    print(f"wrote report: {out_pdf}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
