"""
Avvo Lawyers Scraper - CLI Runner

Usage:
  python -m als.run \
    --input input.json \
    --config config/example.yaml \
    --out ./out

  python -m als.run --practice-area bankruptcy-debt --state al --city Birmingham \
    --max-lawyers 25 --include-contact-info --export csv,json --out ./out

Dry run (validate only, no browser or network):
  python -m als.run --input input.json --out ./out --dry-run

Exit codes:
  0 - success
  1 - config error (settings file missing or invalid YAML)
  2 - input error (missing target, maxLawyers out of range, unreadable input)
  3 - processing error (runtime failures)
"""
from __future__ import annotations

import argparse
import sys
from dataclasses import replace
from pathlib import Path
from typing import List

from lawdir.config import build_search_url, load_run_input, load_settings
from lawdir.errors import ConfigError, InputValidationError
from lawdir.logging_config import get_logger, setup_logging
from lawdir.pipeline.ingest import RunOrchestrator
from lawdir.storage import Dataset, DatasetExporter, KeyValueStore


log = get_logger("als.run")

EXPORT_FORMATS = ("csv", "json")


def ensure_out_dir(out_dir: Path) -> None:
    try:
        out_dir.mkdir(parents=True, exist_ok=True)
        test_file = out_dir / ".write_test"
        test_file.write_text("ok", encoding="utf-8")
        test_file.unlink(missing_ok=True)
    except OSError as e:
        print(f"Output error: cannot write to {out_dir}: {e}", file=sys.stderr)
        sys.exit(3)


def parse_export_formats(value: str | None) -> List[str]:
    if not value:
        return []
    formats = [f.strip().lower() for f in value.split(",") if f.strip()]
    unknown = [f for f in formats if f not in EXPORT_FORMATS]
    if unknown:
        raise argparse.ArgumentTypeError(f"unknown export format(s): {', '.join(unknown)}")
    return formats


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="als.run", description="Avvo lawyer directory scraper")
    parser.add_argument("--input", "-i", default=None, help="Path to run input (JSON or YAML)")
    parser.add_argument("--config", "-c", default=None, help="Path to YAML settings file")
    parser.add_argument("--out", "-o", required=True, help="Output directory")
    parser.add_argument("--dry-run", action="store_true", help="Validate input/settings and exit")
    parser.add_argument("--start-url", default=None, help="Listing URL to start from (overrides search fields)")
    parser.add_argument("--practice-area", default=None, help="Practice area slug, e.g. bankruptcy-debt")
    parser.add_argument("--state", default=None, help="Two-letter state code, e.g. al")
    parser.add_argument("--city", default=None, help="Optional city name")
    parser.add_argument("--max-lawyers", type=int, default=None, help="Maximum lawyers to keep (0 = unlimited)")
    parser.add_argument("--include-contact-info", action="store_true", default=None,
                        help="Fetch each profile page for bio, education and awards")
    parser.add_argument("--export", type=parse_export_formats, default=[],
                        help="Comma-separated exports to write after the run: csv,json")
    parser.add_argument("--headful", action="store_true", help="Show the browser window")
    parser.add_argument("--log-level", default=None, help="Logging level (default: LOG_LEVEL env or INFO)")
    return parser


def main(argv: list[str] | None = None) -> int:
    # Python 3.11+ gate (must run before any heavy imports/arg parsing)
    if sys.version_info < (3, 11):
        cur = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
        print(f"Python 3.11+ required. Current: {cur}. Run: python3.11 -m als.run …", file=sys.stderr)
        return 1

    args = build_parser().parse_args(argv)
    out_dir = Path(args.out)

    overrides = {
        "startUrl": args.start_url,
        "practiceArea": args.practice_area,
        "state": args.state,
        "city": args.city,
        "maxLawyers": args.max_lawyers,
        "includeContactInfo": args.include_contact_info,
    }
    try:
        settings = load_settings(Path(args.config) if args.config else None)
    except ConfigError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1
    try:
        run_input = load_run_input(Path(args.input) if args.input else None, overrides)
    except InputValidationError as e:
        print(f"Input error: {e}", file=sys.stderr)
        return 2

    setup_logging(args.log_level or settings.log_level, settings.log_file)
    if args.headful:
        settings.crawler = replace(settings.crawler, headless=False)

    ensure_out_dir(out_dir)

    if args.dry_run:
        print("✅ Dry-run validation passed")
        print(f" - Start URL: {build_search_url(run_input)}")
        print(f" - Max lawyers: {run_input.max_lawyers or 'unlimited'}")
        print(f" - Include contact info: {run_input.include_contact_info}")
        print(f" - Output dir: {out_dir}")
        return 0

    dataset = Dataset(out_dir / "dataset.jsonl")
    kv_store = KeyValueStore(out_dir / "key_value")
    orchestrator = RunOrchestrator(run_input, dataset=dataset, kv_store=kv_store, settings=settings)

    try:
        stats = orchestrator.run()
    except Exception:
        log.exception("Run failed")
        return 3

    if args.export:
        items = dataset.get_items()
        exporter = DatasetExporter(output_dir=out_dir)
        if not items:
            print("Nothing to export: no lawyers were scraped", file=sys.stderr)
        else:
            if "csv" in args.export:
                print(f"📄 CSV: {exporter.to_csv(items)}")
            if "json" in args.export:
                print(f"📄 JSON: {exporter.to_json(items)}")

    print("🏁 Done.")
    print(f"   Pages processed: {stats.pages_processed}")
    print(f"   Total lawyers: {stats.total_lawyers_scraped}")
    print(f"   Extraction method: {stats.extraction_method}")
    if stats.blocked_profiles:
        print(f"   Blocked profile pages: {stats.blocked_profiles}")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
