"""Console rendering for human, JSON and plain output modes."""

from __future__ import annotations

import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Tuple

from rich.console import Console
from rich.table import Table

from ..errors import RepoDocsError
from ..models import ExtractionProgress, ExtractionReport

OUTPUT_MODES = ("human", "json", "plain")

_UNITS = ("B", "KB", "MB", "GB")


def format_bytes(size: int) -> str:
    """Render a byte count with one decimal, e.g. ``1.5 MB``."""
    value = float(size)
    unit = 0
    while value >= 1024.0 and unit < len(_UNITS) - 1:
        value /= 1024.0
        unit += 1
    if unit == 0:
        return f"{size} {_UNITS[0]}"
    return f"{value:.1f} {_UNITS[unit]}"


def format_duration(seconds: float) -> str:
    whole = int(seconds)
    if whole >= 60:
        return f"{whole // 60}m {whole % 60}s"
    if whole > 0:
        return f"{whole}s"
    return f"{int(seconds * 1000)}ms"


def sorted_file_types(files_by_extension: Dict[str, int]) -> List[Tuple[str, int]]:
    """Return ``(label, count)`` pairs by descending count; ``no_extension`` reads as ``no extension``."""
    ordered = sorted(files_by_extension.items(), key=lambda item: (-item[1], item[0]))
    return [("no extension" if ext == "no_extension" else ext, count) for ext, count in ordered]


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class OutputFormatter:
    """Prints user-facing messages in the selected output mode."""

    def __init__(
        self,
        mode: str = "human",
        verbose: int = 0,
        quiet: bool = False,
        *,
        console: Console | None = None,
        err_console: Console | None = None,
    ) -> None:
        mode = (mode or "human").lower()
        self.mode = mode if mode in OUTPUT_MODES else "human"
        self.quiet = quiet
        self.verbose = 0 if quiet else verbose
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def _show(self, min_verbose: int = 0) -> bool:
        return not self.quiet and self.verbose >= min_verbose

    def _emit_json(self, payload: Dict[str, Any], *, pretty: bool = False) -> None:
        text = json.dumps(payload, indent=2 if pretty else None, sort_keys=pretty)
        print(text, file=sys.stdout)

    def _message(self, level: str, message: str, *, style: str, prefix: str, stream_err: bool = False) -> None:
        if self.mode == "json":
            self._emit_json({"type": "message", "level": level, "message": message, "timestamp": _utc_now()})
        elif self.mode == "plain":
            print(f"{level.upper()}: {message}", file=sys.stderr if stream_err else sys.stdout)
        else:
            target = self.err_console if stream_err else self.console
            target.print(f"{prefix} {message}", style=style, markup=False)

    def success(self, message: str) -> None:
        if self._show():
            self._message("success", message, style="bold green", prefix="✓")

    def info(self, message: str) -> None:
        if self._show():
            self._message("info", message, style="cyan", prefix="i")

    def warning(self, message: str) -> None:
        if self._show():
            self._message("warning", message, style="bold yellow", prefix="!")

    def error(self, message: str) -> None:
        self._message("error", message, style="bold red", prefix="✗", stream_err=True)

    def debug(self, message: str) -> None:
        if self._show(1):
            self._message("debug", message, style="dim", prefix=" ")

    def start_operation(self, operation: str) -> None:
        if not self._show():
            return
        if self.mode == "json":
            self._emit_json({"type": "message", "level": "operation_start", "message": operation, "timestamp": _utc_now()})
        elif self.mode == "plain":
            print(f"STARTING: {operation}")
        else:
            self.console.print(f"> {operation}", style="bold", markup=False)

    def print_user_friendly_error(self, error: RepoDocsError) -> None:
        self.error(error.user_message())
        suggestion = error.suggestion()
        if not suggestion:
            return
        if self.mode == "json":
            self._emit_json({"type": "suggestion", "message": suggestion})
        elif self.mode == "plain":
            print(f"SUGGESTION: {suggestion}", file=sys.stderr)
        else:
            self.err_console.print(f"Suggestion: {suggestion}", style="cyan", markup=False)

    def print_extraction_summary(self, progress: ExtractionProgress) -> None:
        if self.quiet:
            return
        elapsed = progress.elapsed()
        if self.mode == "json":
            self._emit_json(
                {
                    "type": "summary",
                    "files_processed": progress.files_processed,
                    "bytes_processed": progress.bytes_processed,
                    "duration_ms": int(elapsed * 1000),
                    "errors": len(progress.errors),
                    "timestamp": _utc_now(),
                }
            )
            return
        if self.mode == "plain":
            print("COMPLETED: Documentation extraction")
            print(f"Files processed: {progress.files_processed}")
            print(f"Bytes processed: {progress.bytes_processed}")
            print(f"Duration: {format_duration(elapsed)}")
            if progress.errors:
                print(f"Errors: {len(progress.errors)}")
            return

        self.console.rule()
        self.console.print("Documentation extraction completed!", style="bold green")
        self.console.print(f"  Files processed: {progress.files_processed}", markup=False)
        self.console.print(f"  Bytes processed: {format_bytes(progress.bytes_processed)}", markup=False)
        self.console.print(f"  Time taken:      {format_duration(elapsed)}", markup=False)
        if progress.errors:
            self.console.print(f"  Errors:          {len(progress.errors)}", style="yellow", markup=False)
        self.console.rule()

    def print_extraction_report(self, report: ExtractionReport) -> None:
        if self.mode == "json":
            self._emit_json(report.to_dict(), pretty=True)
            return
        if self.quiet:
            return
        info = report.repository_info
        summary = report.extraction_summary
        if self.mode == "plain":
            print("REPORT: Extraction completed")
            print(f"Repository: {info.owner}/{info.name}")
            print(f"Files: {summary.total_files_processed}")
            print(f"Size: {summary.total_bytes_processed} bytes")
            print(f"Duration: {format_duration(summary.extraction_duration)}")
            if report.errors:
                print(f"Errors: {len(report.errors)}")
            return

        self.console.print()
        self.console.print("Extraction Report", style="bold cyan")
        self.console.print(f"Repository: {info.owner}/{info.name}", markup=False)
        self.console.print(f"URL: {info.url}", markup=False)
        self.console.print(
            f"Extracted at: {report.extraction_time.strftime('%Y-%m-%d %H:%M UTC')}", markup=False
        )
        if report.output_directory is not None:
            self.console.print(f"Output: {report.output_directory}", markup=False)
        file_types = sorted_file_types(summary.files_by_extension)
        if file_types:
            table = Table(show_header=True, header_style="bold magenta")
            table.add_column("Type")
            table.add_column("Files", justify="right")
            for label, count in file_types:
                table.add_row(label, str(count))
            self.console.print(table)
        self._print_issues(report.errors)

    def _print_issues(self, errors: Iterable[str]) -> None:
        errors = list(errors)
        if not errors:
            return
        self.console.print("Issues encountered:", style="yellow")
        for error in errors:
            self.console.print(f"  - {error}", markup=False)


__all__ = [
    "OUTPUT_MODES",
    "OutputFormatter",
    "format_bytes",
    "format_duration",
    "sorted_file_types",
]
