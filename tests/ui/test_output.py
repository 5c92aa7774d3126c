"""Tests for repodocs.ui.output."""

from __future__ import annotations

import io
import json
from datetime import datetime, timezone

import pytest
from rich.console import Console

from repodocs.errors import NoDocumentationFoundError
from repodocs.models import (
    ConfigSnapshot,
    ExtractionProgress,
    ExtractionReport,
    ExtractionSummary,
    RepositoryInfo,
)
from repodocs.ui.output import OutputFormatter, format_bytes, format_duration, sorted_file_types


def _report(errors: list[str] | None = None) -> ExtractionReport:
    return ExtractionReport(
        repository_info=RepositoryInfo("acme", "widgets", "main", 2, False, "https://github.com/acme/widgets"),
        extraction_summary=ExtractionSummary(
            total_files_processed=3,
            total_bytes_processed=2048,
            extraction_duration=1.5,
            files_by_extension={"md": 2, "no_extension": 1},
            largest_file=None,
            average_file_size=682,
        ),
        files=[],
        extraction_time=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        errors=errors or [],
        config_used=ConfigSnapshot(["md"], 1024, ["node_modules"], True),
    )


def _consoles() -> tuple[Console, io.StringIO, Console, io.StringIO]:
    out, err = io.StringIO(), io.StringIO()
    return (
        Console(file=out, width=200, color_system=None),
        out,
        Console(file=err, width=200, color_system=None),
        err,
    )


@pytest.mark.parametrize(
    ("size", "expected"),
    [(0, "0 B"), (500, "500 B"), (1024, "1.0 KB"), (1536, "1.5 KB"), (10 * 1024 * 1024, "10.0 MB"), (3 * 1024**3, "3.0 GB")],
)
def test_format_bytes(size: int, expected: str) -> None:
    assert format_bytes(size) == expected


@pytest.mark.parametrize(("seconds", "expected"), [(0.25, "250ms"), (5.9, "5s"), (125, "2m 5s")])
def test_format_duration(seconds: float, expected: str) -> None:
    assert format_duration(seconds) == expected


def test_sorted_file_types_orders_by_count_then_name() -> None:
    ordered = sorted_file_types({"txt": 1, "md": 3, "no_extension": 1, "rst": 3})

    assert ordered == [("md", 3), ("rst", 3), ("no extension", 1), ("txt", 1)]


def test_plain_mode_writes_levels(capsys: pytest.CaptureFixture[str]) -> None:
    formatter = OutputFormatter("plain")

    formatter.info("hello")
    formatter.success("done")
    formatter.debug("hidden")
    formatter.error("broken")

    captured = capsys.readouterr()
    assert captured.out.splitlines() == ["INFO: hello", "SUCCESS: done"]
    assert captured.err.splitlines() == ["ERROR: broken"]


def test_quiet_mode_only_prints_errors(capsys: pytest.CaptureFixture[str]) -> None:
    formatter = OutputFormatter("plain", verbose=2, quiet=True)

    formatter.info("hello")
    formatter.warning("careful")
    formatter.debug("details")
    formatter.error("broken")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert captured.err.strip() == "ERROR: broken"


def test_verbose_enables_debug(capsys: pytest.CaptureFixture[str]) -> None:
    OutputFormatter("plain", verbose=1).debug("details")

    assert capsys.readouterr().out.strip() == "DEBUG: details"


def test_json_mode_emits_one_object_per_message(capsys: pytest.CaptureFixture[str]) -> None:
    formatter = OutputFormatter("json")

    formatter.warning("careful")
    formatter.start_operation("Extracting")

    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
    assert [line["level"] for line in lines] == ["warning", "operation_start"]
    assert lines[0]["message"] == "careful"
    assert lines[0]["timestamp"].endswith("Z")


def test_user_friendly_error_includes_suggestion(capsys: pytest.CaptureFixture[str]) -> None:
    formatter = OutputFormatter("plain")

    formatter.print_user_friendly_error(NoDocumentationFoundError(["md", "rst"]))

    err = capsys.readouterr().err.splitlines()
    assert err[0] == "ERROR: No documentation files found with extensions: md, rst"
    assert err[1].startswith("SUGGESTION: Try using different file extensions")


def test_human_mode_uses_rich_consoles() -> None:
    console, out, err_console, err = _consoles()
    formatter = OutputFormatter("human", console=console, err_console=err_console)

    formatter.success("Cloned [acme/widgets]")
    formatter.print_user_friendly_error(NoDocumentationFoundError(["md"]))

    assert "✓ Cloned [acme/widgets]" in out.getvalue()
    assert "✗ No documentation files found with extensions: md" in err.getvalue()
    assert "Suggestion: Try using different file extensions" in err.getvalue()


def test_human_report_lists_types_and_issues() -> None:
    console, out, err_console, _ = _consoles()
    formatter = OutputFormatter("human", console=console, err_console=err_console)

    formatter.print_extraction_report(_report(["Failed to copy a.md: exists"]))

    text = out.getvalue()
    assert "Repository: acme/widgets" in text
    assert "no extension" in text
    assert "Issues encountered:" in text
    assert "- Failed to copy a.md: exists" in text


def test_json_report_is_pretty_printed(capsys: pytest.CaptureFixture[str]) -> None:
    OutputFormatter("json", quiet=True).print_extraction_report(_report())

    payload = json.loads(capsys.readouterr().out)
    assert payload["repository_info"]["name"] == "widgets"
    assert payload["extraction_summary"]["files_by_extension"] == {"md": 2, "no_extension": 1}


def test_plain_summary(capsys: pytest.CaptureFixture[str]) -> None:
    progress = ExtractionProgress(total_files=2, total_bytes=30)
    progress.update_file("a.md", 30)
    progress.add_error("boom")

    OutputFormatter("plain").print_extraction_summary(progress)

    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "COMPLETED: Documentation extraction"
    assert "Files processed: 1" in lines
    assert "Bytes processed: 30" in lines
    assert "Errors: 1" in lines


def test_unknown_mode_falls_back_to_human() -> None:
    assert OutputFormatter("fancy").mode == "human"
