# src/main.py — v2
"""CLI entry point: watch, status, report commands.

Usage:
    scanflow watch [--scanner ID] [--station ID] [--root DIR]
    scanflow status [--root DIR]
    scanflow report <file>
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from scanflow.version import __version__

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    _setup_logging(args.verbose)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130
    except Exception as exc:
        logger.error("Fatal error: %s", exc, exc_info=args.verbose)
        return 1


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="scanflow",
        description=f"scanflow v{__version__}: staged ingestion of scanned documents",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- watch ---
    p_watch = subparsers.add_parser(
        "watch", help="Watch the scan folder and run the pipeline",
    )
    p_watch.add_argument("--scanner", default=None, help="Scanner name / ID")
    p_watch.add_argument("--station", default=None, help="PC name / station ID")
    p_watch.add_argument(
        "--root", type=Path, default=None,
        help="Work root holding the stage folders (default: SCANFLOW_WORK_ROOT)",
    )
    p_watch.add_argument(
        "--no-prompt", action="store_true",
        help="Fail instead of prompting for a missing scanner/station",
    )
    p_watch.set_defaults(func=_cmd_watch)

    # --- status ---
    p_status = subparsers.add_parser(
        "status", help="Show the number of documents per stage",
    )
    p_status.add_argument("--root", type=Path, default=None, help="Work root")
    p_status.set_defaults(func=_cmd_status)

    # --- report ---
    p_report = subparsers.add_parser(
        "report", help="Print the metadata of one document",
    )
    p_report.add_argument("file", type=Path, help="Path to document")
    p_report.set_defaults(func=_cmd_report)

    return parser


def _overrides(args: argparse.Namespace) -> dict[str, object]:
    overrides: dict[str, object] = {}
    if getattr(args, "root", None) is not None:
        overrides["work_root"] = args.root
    if getattr(args, "scanner", None):
        overrides["scanner_id"] = args.scanner
    if getattr(args, "station", None):
        overrides["station_id"] = args.station
    return overrides


def _prompt(label: str) -> str:
    while True:
        value = input(f"{label}: ").strip()
        if value:
            return value
        print(f"{label} required")


async def _cmd_watch(args: argparse.Namespace) -> int:
    """Run the pipeline until interrupted."""
    from scanflow.config.settings import load_settings
    from scanflow.logging.logger import setup_logging
    from scanflow.pipeline.orchestrator import ScanPipeline

    overrides = _overrides(args)
    settings = load_settings(**overrides)
    if not settings.operator_configured:
        if args.no_prompt:
            print("Scanner and station identity are required", file=sys.stderr)
            return 1
        if not settings.scanner_id.strip():
            overrides["scanner_id"] = _prompt("Scanner Name / ID")
        if not settings.station_id.strip():
            overrides["station_id"] = _prompt("PC Name / No")
        settings = load_settings(**overrides)

    try:
        setup_logging(
            level="DEBUG" if args.verbose else settings.log_level,
            log_format=settings.log_format,
            log_file=settings.log_file,
            rotation=settings.log_rotation,
            retention=settings.log_retention,
        )
        pipeline = ScanPipeline(settings)
        pipeline.prepare()
    except OSError as exc:
        print(f"Cannot start: {exc}", file=sys.stderr)
        return 1

    await pipeline.run()
    return 0


async def _cmd_status(args: argparse.Namespace) -> int:
    """Display the document count of every stage directory."""
    from scanflow.config.settings import load_settings
    from scanflow.stages.layout import StageLayout
    from scanflow.stages.store import StageStore

    settings = load_settings(**_overrides(args))
    layout = StageLayout.from_settings(settings)
    store = StageStore(layout, settings.document_extension)

    print(f"\nStages under {settings.work_root}:")
    for stage, count in store.counts().items():
        print(f"  {stage.value:15s} {count:5d}  {layout.directory_for(stage)}")
    batches = [p for p in layout.scan_root.iterdir() if p.is_dir()] if layout.scan_root.is_dir() else []
    print(f"  {'Open batches':15s} {len(batches):5d}")
    return 0


async def _cmd_report(args: argparse.Namespace) -> int:
    """Print coarse metadata for one document."""
    from scanflow.extraction.pdf_metadata import read_document_metadata

    file_path: Path = args.file
    if not file_path.is_file():
        logger.error("File not found: %s", file_path)
        print(f"File not found: {file_path}", file=sys.stderr)
        return 1

    metadata = await asyncio.to_thread(read_document_metadata, file_path)
    print(f"\nDocument: {metadata.file_name}")
    print(f"  Folder:   {metadata.base_folder}")
    print(f"  Pages:    {metadata.page_count}")
    print(f"  Size:     {metadata.size_mb} MB")
    print(f"  Title:    {metadata.title}")
    print(f"  Author:   {metadata.author}")
    print(f"  Created:  {metadata.created_at}")
    return 0


def _setup_logging(verbose: bool) -> None:
    """Console logging until a command configures its own handlers."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


if __name__ == "__main__":
    sys.exit(main())
