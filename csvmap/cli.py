"""Command-line interface for csv-field-mapper."""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

import uvicorn

from .config import settings
from .errors import PipelineError
from .exporters import EXPORTERS
from .mapping import infer_mappings, missing_required
from .parse import parse_bytes
from .pipeline import run_pipeline

logger = logging.getLogger(__name__)


def parse_map_args(values: List[str]) -> Dict[str, str]:
    """Turn ``["Source Col=target", ...]`` into an override dict."""
    overrides: Dict[str, str] = {}
    for value in values:
        source, sep, target = value.rpartition("=")
        if not sep or not source:
            raise argparse.ArgumentTypeError(f"Expected SOURCE=TARGET, got {value!r}")
        overrides[source] = target
    return overrides


def build_parser(formats: List[str]) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="csvmap",
        description="csv-field-mapper - map CSV columns onto target fields and export them",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    server_parser = subparsers.add_parser("serve", help="Start the web server")
    server_parser.add_argument("--host", default=settings.host, help="Host to bind to")
    server_parser.add_argument("--port", type=int, default=settings.port, help="Port to bind to")
    server_parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")

    preview_parser = subparsers.add_parser("preview", help="Show headers and inferred mappings")
    preview_parser.add_argument("file", type=Path, help="CSV file to inspect")

    convert_parser = subparsers.add_parser("convert", help="Map and export a CSV file")
    convert_parser.add_argument("file", type=Path, help="CSV file to convert")
    convert_parser.add_argument("--format", "-f", default="csv", choices=formats, help="Export format")
    convert_parser.add_argument(
        "--map",
        "-m",
        action="append",
        default=[],
        metavar="SOURCE=TARGET",
        help="Override the mapping of one column (repeatable; TARGET may be 'skip')",
    )
    convert_parser.add_argument("--output", "-o", type=Path, help="Output path (default: suggested filename)")
    convert_parser.add_argument(
        "--preview-only",
        action="store_true",
        help=f"Only process the first {settings.preview_rows} data rows",
    )

    return parser


def run_server(host: str, port: int, reload: bool):
    """Run the web server."""
    uvicorn.run(
        "csvmap.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


def run_preview(path: Path) -> int:
    catalog, rules = settings.load_rules()
    parsed = parse_bytes(path.read_bytes(), row_limit=settings.preview_rows)
    mapping_set = infer_mappings(parsed.headers, rules)

    print(f"{len(parsed.headers)} columns, {parsed.total_rows} data rows")
    for m in mapping_set.mappings:
        print(f"  {m.source!r:30} -> {m.target or '(unmapped)'}")
    missing = missing_required(mapping_set, catalog)
    if missing:
        print(f"Required fields not mapped: {', '.join(missing)}")
    for item in parsed.report.warnings:
        print(f"  warning: row {item.row}: {item.issue} ({item.action})")
    return 0


def run_convert(
    path: Path,
    format_id: str,
    overrides: Dict[str, str],
    output: Optional[Path],
    preview_only: bool,
) -> int:
    catalog, rules = settings.load_rules()

    def report_progress(done: int, total: int):
        logger.info("Transformed %d/%d records", done, total)

    result = run_pipeline(
        path.read_bytes(),
        format_id,
        overrides=overrides,
        row_limit=settings.preview_rows if preview_only else None,
        catalog=catalog,
        rules=rules,
        on_progress=report_progress,
        progress_every=settings.progress_every,
        filename_prefix=settings.export_filename_prefix,
    )

    target = output or Path(result.bundle.filename)
    target.write_bytes(result.bundle.encode())
    print(f"Wrote {len(result.transform.records)} records to {target}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    parser = build_parser(list(EXPORTERS))
    args = parser.parse_args(argv)

    if args.command == "serve":
        run_server(args.host, args.port, args.reload)
        return 0
    if args.command not in ("preview", "convert"):
        parser.print_help()
        return 1

    try:
        if args.command == "preview":
            return run_preview(args.file)
        overrides = parse_map_args(args.map)
        return run_convert(args.file, args.format, overrides, args.output, args.preview_only)
    except (PipelineError, OSError, argparse.ArgumentTypeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
