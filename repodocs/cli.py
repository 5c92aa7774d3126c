"""CLI entrypoint for repodocs."""

from __future__ import annotations

import argparse
import os
import re
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from .cancellation import CancellationToken, GracefulShutdown
from .config import CliOverrides, Config, load_config, merge_overrides, save_config, validate
from .errors import CancelledError, RepoDocsError
from .logging import configure_logging
from .orchestrator import DryRunPlan, Orchestrator
from .ui.output import OUTPUT_MODES, OutputFormatter, format_bytes
from .ui.progress import ProgressManager

DEFAULT_CONFIG_FILE = "repodocs.yml"

_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*([a-zA-Z]*)\s*$")
_SIZE_UNITS = {
    "": 1024 * 1024,
    "b": 1,
    "k": 1024,
    "kb": 1024,
    "m": 1024 * 1024,
    "mb": 1024 * 1024,
    "g": 1024 * 1024 * 1024,
    "gb": 1024 * 1024 * 1024,
}


def parse_size_string(value: str) -> int:
    """Parse ``10``, ``10MB``, ``512k`` or ``100b`` into bytes; a bare number means megabytes."""
    match = _SIZE_PATTERN.match(value or "")
    if not match:
        raise argparse.ArgumentTypeError(f"invalid size: {value!r}")
    number, unit = match.groups()
    multiplier = _SIZE_UNITS.get(unit.lower())
    if multiplier is None:
        raise argparse.ArgumentTypeError(f"unknown size unit {unit!r} in {value!r}")
    size = int(float(number) * multiplier)
    if size <= 0:
        raise argparse.ArgumentTypeError("size must be greater than 0")
    return size


def parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in {"true", "yes", "1", "on"}:
        return True
    if lowered in {"false", "no", "0", "off"}:
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got {value!r}")


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError("value must be greater than 0")
    return number


def _split_csv(value: str) -> List[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repodocs",
        description="Extract documentation files from a GitHub repository into a local directory.",
    )
    parser.add_argument(
        "url",
        nargs="?",
        help="GitHub repository URL (https://github.com/owner/repo).",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output directory name, or a path whose parent becomes the base directory.",
    )
    parser.add_argument(
        "-f",
        "--formats",
        help="Comma-separated file extensions to extract (e.g. md,rst,txt).",
    )
    parser.add_argument(
        "-e",
        "--exclude",
        type=_split_csv,
        help="Comma-separated directory names to skip, added to the configured list.",
    )
    parser.add_argument(
        "--max-size",
        type=parse_size_string,
        help="Maximum file size (e.g. 10, 10MB, 512k). A bare number means MB.",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        help=f"Configuration file path (defaults to ./{DEFAULT_CONFIG_FILE} when present).",
    )
    parser.add_argument(
        "--output-format",
        choices=OUTPUT_MODES,
        default="human",
        help="How progress and results are printed.",
    )
    parser.add_argument(
        "--preserve-structure",
        type=parse_bool,
        metavar="BOOL",
        help="Keep the repository's directory layout (true) or flatten files (false).",
    )
    parser.add_argument(
        "--timeout",
        type=_positive_int,
        help="Clone timeout in seconds.",
    )
    parser.add_argument("-b", "--branch", help="Branch to clone instead of the default.")
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeat for more detail).",
    )
    verbosity.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only print errors.",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Replace an existing output directory.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate the URL and show what would happen without cloning.",
    )
    parser.add_argument(
        "--generate-config",
        action="store_true",
        help="Write a sample configuration file to --config (or ./repodocs.yml) and exit.",
    )
    parser.add_argument(
        "--no-index",
        action="store_true",
        help="Skip writing the _index.md file.",
    )
    return parser


def _split_output(value: str | None) -> Tuple[Optional[Path], Optional[str]]:
    """Return ``(base_directory, directory_name)`` for an ``--output`` value."""
    if not value:
        return None, None
    if "/" in value or os.sep in value:
        target = Path(value).expanduser()
        return target.parent, target.name
    return None, value


def _overrides_from_args(args: argparse.Namespace, base_directory: Path | None) -> CliOverrides:
    return CliOverrides(
        formats=args.formats,
        exclude=args.exclude,
        max_file_size=args.max_size,
        output_dir=base_directory,
        preserve_structure=args.preserve_structure,
        timeout=args.timeout,
        branch=args.branch,
        create_index=False if args.no_index else None,
    )


def _generate_config(args: argparse.Namespace, formatter: OutputFormatter) -> int:
    target = args.config or Path(DEFAULT_CONFIG_FILE)
    try:
        path = save_config(target)
    except RepoDocsError as exc:
        formatter.print_user_friendly_error(exc)
        return exc.exit_code
    formatter.success(f"Generated sample configuration file: {path}")
    formatter.info("Edit this file to customize your extraction settings.")
    formatter.info(f"Use it with: repodocs <URL> --config {path}")
    return 0


def _print_dry_run(plan: DryRunPlan, formatter: OutputFormatter, *, force: bool) -> None:
    config: Config = plan.config
    formatter.info("DRY RUN MODE - No files will be extracted")
    formatter.success(f"Repository URL is valid: {plan.source.url}")
    formatter.info("Configuration:")
    formatter.info(f"  Extensions: {', '.join(config.filters.extensions)}")
    formatter.info(f"  Max file size: {format_bytes(config.filters.max_file_size)}")
    formatter.info(f"  Exclude directories: {', '.join(config.filters.exclude_dirs)}")
    formatter.info(f"  Preserve structure: {str(config.output.preserve_structure).lower()}")
    formatter.info(f"  Base directory: {config.output.base_directory}")
    formatter.info(f"  Git branch: {config.git.branch or 'default'}")
    formatter.info(f"  Git timeout: {config.git.timeout}s")
    formatter.info("Extraction plan:")
    formatter.info(f"  Repository: {plan.source.owner}/{plan.source.name}")
    formatter.info(f"  Output directory: {plan.output_directory}")
    if plan.output_directory.exists():
        if force:
            formatter.warning(f"Existing directory {plan.output_directory} would be replaced (--force)")
        else:
            formatter.warning(f"Output directory {plan.output_directory} already exists; use --force to replace it")
    formatter.success("Dry run completed successfully")


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for repodocs; returns the process exit status."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbosity=args.verbose,
        quiet=args.quiet,
        rich_output=args.output_format == "human",
    )
    formatter = OutputFormatter(args.output_format, args.verbose, args.quiet)

    if args.generate_config:
        return _generate_config(args, formatter)
    if not args.url:
        parser.error("the following arguments are required: url")

    base_directory, output_name = _split_output(args.output)
    try:
        config = merge_overrides(load_config(args.config), _overrides_from_args(args, base_directory))
        validate(config)
    except RepoDocsError as exc:
        formatter.print_user_friendly_error(exc)
        return exc.exit_code

    token = CancellationToken()
    show_progress = args.output_format == "human" and not args.quiet and sys.stderr.isatty()
    progress = ProgressManager(enabled=show_progress)
    orchestrator = Orchestrator(config, cancel_token=token, progress_sink=progress)

    if args.dry_run:
        try:
            plan = orchestrator.dry_run(args.url, output_name=output_name)
        except RepoDocsError as exc:
            formatter.print_user_friendly_error(exc)
            return exc.exit_code
        _print_dry_run(plan, formatter, force=args.force)
        return 0

    formatter.start_operation(f"Extracting documentation from {args.url}")
    try:
        with GracefulShutdown(token), progress:
            report = orchestrator.run(args.url, force=args.force, output_name=output_name)
    except CancelledError as exc:
        formatter.print_user_friendly_error(exc)
        partial = orchestrator.output_directory
        if partial is not None and partial.exists():
            formatter.warning(f"Partial output left in {partial}; delete it before retrying or pass --force")
        return exc.exit_code
    except RepoDocsError as exc:
        formatter.print_user_friendly_error(exc)
        return exc.exit_code
    except OSError as exc:
        formatter.error(f"repodocs failed: {exc}")
        return 1

    if orchestrator.progress is not None:
        formatter.print_extraction_summary(orchestrator.progress)
    formatter.print_extraction_report(report)
    if report.scan_errors:
        formatter.warning(f"{len(report.scan_errors)} entries could not be read while scanning")
    if report.errors:
        formatter.warning(f"Extraction completed with {len(report.errors)} errors")
        return 2
    if report.output_directory is not None:
        formatter.success(f"Documentation extracted to {report.output_directory}")
    return 0


__all__ = ["main", "parse_bool", "parse_size_string"]
