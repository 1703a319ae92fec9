"""
Command-line interface for the application.

This module provides the main entry point for the CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from birdbase import __version__
from birdbase.config import get_settings
from birdbase.errors import BirdbaseError, ConfigError
from birdbase.flows.pipeline import REPORT_PATH, build_dataset
from birdbase.store import DataStore

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Send ``birdbase`` log records to stderr at ``level``."""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger("birdbase").setLevel(level.upper())


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="birdbase",
        description="Build normalized, enriched tables from a personal eBird export",
    )
    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    build_parser = subparsers.add_parser("build", help="Enrich the export and write the tables")
    build_parser.add_argument(
        "--export",
        type=Path,
        default=None,
        help="Export CSV to read (default: export_path from settings)",
    )
    build_parser.add_argument(
        "--data-dir",
        type=Path,
        default=None,
        help="Data store directory (default: data_dir from settings)",
    )

    subparsers.add_parser("info", help="Show application info")

    report_parser = subparsers.add_parser("report", help="Show unresolved items from the last build")
    report_parser.add_argument(
        "--stage",
        choices=["rows", "coordinates", "checklists", "weather", "biomes", "taxonomy"],
        default=None,
        help="Only list failures for this stage",
    )

    return parser


def cmd_build(args: argparse.Namespace) -> int:
    """Handle the 'build' command."""
    settings = get_settings()
    updates: dict[str, Path] = {}
    if args.export is not None:
        updates["export_path"] = args.export
    if args.data_dir is not None:
        updates["data_dir"] = args.data_dir
    if updates:
        settings = settings.model_copy(update=updates)

    try:
        summary = build_dataset(settings=settings)
    except BirdbaseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for table, count in summary["counts"].items():
        print(f"{table}: {count} rows")
    unresolved = summary["unresolved"]
    if unresolved:
        print("Unresolved: " + ", ".join(f"{k}={v}" for k, v in sorted(unresolved.items())))
    return 0


def cmd_info(_args: argparse.Namespace) -> int:
    """Handle the 'info' command."""
    settings = get_settings()
    print(f"Application: {settings.app_name}")
    print(f"Version: {__version__}")
    print(f"Environment: {settings.app_env}")
    print(f"Data dir: {settings.data_dir}")
    print(f"Export: {settings.export_path}")
    print(f"Biome layer: {settings.biome_layer_path}")
    print(f"eBird API key: {'set' if settings.api_key else 'not set'}")
    return 0


def cmd_report(args: argparse.Namespace) -> int:
    """Handle the 'report' command: print the last build's enrichment report."""
    settings = get_settings()
    report = DataStore(settings.data_dir).read(REPORT_PATH)
    if report is None:
        print("No report found. Run 'birdbase build' first.", file=sys.stderr)
        return 1

    counts = report.get("unresolved_counts", {})
    attempted = report.get("attempted", {})
    for stage in sorted(set(counts) | set(attempted)):
        print(f"{stage}: {counts.get(stage, 0)} unresolved of {attempted.get(stage, 0)}")

    failures = report.get("failures", [])
    if args.stage:
        failures = [f for f in failures if f.get("stage") == args.stage]
    for failure in failures:
        print(json.dumps(failure))
    return 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "build": cmd_build,
        "info": cmd_info,
        "report": cmd_report,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    try:
        configure_logging("DEBUG" if args.debug else get_settings().log_level)
        return handler(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
