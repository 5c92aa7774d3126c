"""Output directory lifecycle and extraction reports."""

from __future__ import annotations

import json
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional, Sequence

from ..errors import OutputDirectoryExistsError, PermissionDeniedError
from ..logging import get_logger
from ..models import (
    ConfigSnapshot,
    DocumentFile,
    ExtractionProgress,
    ExtractionReport,
    ExtractionSummary,
    FileInfo,
    RepositoryInfo,
)
from ..pathguard import sanitize_repo_name
from ..ui.output import format_bytes, format_duration, sorted_file_types
from .file_ops import write_generated_file
from .rendering import render_template

METADATA_DIRNAME = ".repodocs"
REPORT_JSON = "extraction_report.json"
REPORT_TEXT = "extraction_report.txt"
SUMMARY_FILENAME = "EXTRACTION_SUMMARY.md"
_WRITE_PROBE = ".repodocs_write_test"


class OutputManager:
    """Creates the ``docs_<repo>`` directory and writes reports into it."""

    def __init__(
        self,
        base_path: Path,
        repo_name: str,
        force_overwrite: bool = False,
        output_name: str | None = None,
    ) -> None:
        self.base_path = Path(base_path).expanduser()
        self.repo_name = repo_name
        self.force_overwrite = force_overwrite
        if output_name:
            directory_name = sanitize_repo_name(output_name)
        else:
            directory_name = f"docs_{sanitize_repo_name(repo_name)}"
        self.output_directory = self.base_path / directory_name
        self.logger = get_logger("output")
        self._validate_base_path()

    @property
    def metadata_dir(self) -> Path:
        return self.output_directory / METADATA_DIRNAME

    def _validate_base_path(self) -> None:
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise PermissionDeniedError(f"{self.base_path} ({exc})") from exc

        probe = self.base_path / _WRITE_PROBE
        try:
            probe.write_bytes(b"")
            probe.unlink()
        except OSError as exc:
            raise PermissionDeniedError(f"{self.base_path} ({exc})") from exc

    def initialize(self) -> Path:
        """Create a fresh output directory, removing an existing one only when forced."""
        if self.output_directory.exists():
            if not self.force_overwrite:
                raise OutputDirectoryExistsError(str(self.output_directory))
            self.logger.info("Removing existing output directory %s", self.output_directory)
            shutil.rmtree(self.output_directory)
        self.output_directory.mkdir(parents=True)
        self.metadata_dir.mkdir(parents=True, exist_ok=True)
        return self.output_directory

    def build_summary(
        self, documents: Sequence[DocumentFile], progress: ExtractionProgress
    ) -> ExtractionSummary:
        by_extension: Dict[str, int] = {}
        largest: Optional[DocumentFile] = None
        for document in documents:
            key = document.extension or "no_extension"
            by_extension[key] = by_extension.get(key, 0) + 1
            if largest is None or document.size > largest.size:
                largest = document
        total_bytes = sum(document.size for document in documents)
        average = total_bytes // len(documents) if documents else 0
        return ExtractionSummary(
            total_files_processed=progress.files_processed,
            total_bytes_processed=progress.bytes_processed,
            extraction_duration=progress.elapsed(),
            files_by_extension=by_extension,
            largest_file=FileInfo.from_document(largest) if largest else None,
            average_file_size=average,
        )

    def create_extraction_report(
        self,
        info: RepositoryInfo,
        documents: Sequence[DocumentFile],
        progress: ExtractionProgress,
        config_snapshot: ConfigSnapshot,
        *,
        scan_errors: Sequence[str] = (),
        write_files: bool = True,
    ) -> ExtractionReport:
        """Assemble the report and persist it as JSON, text and Markdown.

        A copied document already named ``EXTRACTION_SUMMARY.md`` is kept and the
        skipped summary is recorded as an error instead.
        """
        errors = list(progress.errors)
        summary_taken = write_files and (self.output_directory / SUMMARY_FILENAME).exists()
        if summary_taken:
            errors.append(f"Skipped {SUMMARY_FILENAME}: a repository document already uses that name")
        report = ExtractionReport(
            repository_info=info,
            extraction_summary=self.build_summary(documents, progress),
            files=[FileInfo.from_document(document) for document in documents],
            extraction_time=datetime.now(timezone.utc),
            errors=errors,
            config_used=config_snapshot,
            output_directory=self.output_directory,
            scan_errors=list(scan_errors),
        )
        if write_files:
            self.save_report_json(report)
            self.save_report_text(report)
            if not summary_taken:
                self.create_summary_file(report)
        return report

    def save_report_json(self, report: ExtractionReport) -> Path:
        self.metadata_dir.mkdir(parents=True, exist_ok=True)
        path = self.metadata_dir / REPORT_JSON
        path.write_text(json.dumps(report.to_dict(), indent=2, sort_keys=True), encoding="utf-8")
        return path

    def save_report_text(self, report: ExtractionReport) -> Path:
        self.metadata_dir.mkdir(parents=True, exist_ok=True)
        path = self.metadata_dir / REPORT_TEXT
        path.write_text(render_template("report.txt.j2", **self._template_context(report)), encoding="utf-8")
        return path

    def create_summary_file(self, report: ExtractionReport) -> Path:
        return write_generated_file(
            self.output_directory / SUMMARY_FILENAME,
            render_template("summary.md.j2", **self._template_context(report)),
        )

    @staticmethod
    def _template_context(report: ExtractionReport) -> Dict[str, object]:
        summary = report.extraction_summary
        largest = summary.largest_file
        return {
            "info": report.repository_info,
            "summary": summary,
            "extracted_at": report.extraction_time.strftime("%Y-%m-%d %H:%M UTC"),
            "duration": format_duration(summary.extraction_duration),
            "total_size": format_bytes(summary.total_bytes_processed),
            "average_size": format_bytes(summary.average_file_size),
            "largest": largest,
            "largest_size": format_bytes(largest.size) if largest else "",
            "file_types": sorted_file_types(summary.files_by_extension),
            "files": report.files,
            "errors": list(report.errors) + list(report.scan_errors),
            "config": report.config_used,
            "max_file_size": format_bytes(report.config_used.max_file_size),
        }

    def cleanup_on_error(self) -> None:
        """Remove the output directory; never called automatically."""
        if self.output_directory.exists():
            self.logger.info("Removing output directory %s", self.output_directory)
            shutil.rmtree(self.output_directory)


__all__ = [
    "METADATA_DIRNAME",
    "OutputManager",
    "REPORT_JSON",
    "REPORT_TEXT",
    "SUMMARY_FILENAME",
]
