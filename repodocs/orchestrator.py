"""Pipeline orchestration for the clone, scan, copy and report stages."""

from __future__ import annotations

import shutil
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional

from .cancellation import CancellationToken
from .config import Config
from .errors import CancelledError, CloneTimeoutError, InvalidPathError
from .extractor.file_ops import INDEX_FILENAME, FileOperations
from .extractor.output_manager import OutputManager
from .git.cloner import CloneOutcome, ProgressCallback, SafeCloner
from .logging import get_logger
from .models import ConfigSnapshot, ExtractionProgress, ExtractionReport
from .pathguard import RepositorySource, sanitize_repo_name, validate_repository_url
from .scanner.document_scanner import DocumentScanner
from .ui.progress import ProgressManager

ClonerFactory = Callable[[Config, CancellationToken, Optional[ProgressCallback]], SafeCloner]

_JOIN_INTERVAL = 0.1


def default_cloner_factory(
    config: Config,
    cancel_token: CancellationToken,
    progress_callback: Optional[ProgressCallback] = None,
) -> SafeCloner:
    git = config.git
    return SafeCloner(
        timeout=git.timeout,
        branch=git.branch,
        progress_callback=progress_callback,
        cancel_token=cancel_token,
        token_env=git.token_env,
        ssh_key_path=git.ssh_key_path,
        allow_invalid_certs=git.allow_invalid_certs,
        depth=git.clone_depth,
    )


@dataclass(frozen=True)
class DryRunPlan:
    """What a run would do, computed without touching the network or disk."""

    source: RepositorySource
    output_directory: Path
    config: Config


def output_directory_for(config: Config, repo_name: str, output_name: str | None = None) -> Path:
    base = Path(config.output.base_directory).expanduser()
    if output_name:
        return base / sanitize_repo_name(output_name)
    return base / f"docs_{sanitize_repo_name(repo_name)}"


class Orchestrator:
    """Coordinates repository cloning, documentation discovery, copying and reporting."""

    def __init__(
        self,
        config: Config,
        *,
        cancel_token: CancellationToken | None = None,
        cloner_factory: ClonerFactory | None = None,
        progress_sink: ProgressManager | None = None,
    ) -> None:
        self.config = config
        self.cancel_token = cancel_token or CancellationToken()
        self._cloner_factory = cloner_factory or default_cloner_factory
        self._progress = progress_sink
        self.output_directory: Optional[Path] = None
        self.progress: Optional[ExtractionProgress] = None
        self.logger = get_logger("orchestrator")

    def run(self, url: str, *, force: bool = False, output_name: str | None = None) -> ExtractionReport:
        """Clone ``url`` and extract its documentation into the configured output tree."""
        token = self.cancel_token
        token.raise_if_cancelled()
        source = validate_repository_url(url)
        self.logger.info("Starting extraction for %s/%s", source.owner, source.name)

        outcome = self._clone(url)
        try:
            return self._extract(outcome, force=force, output_name=output_name)
        finally:
            self.logger.debug("Removing temporary clone at %s", outcome.path)
            outcome.cleanup()

    def dry_run(self, url: str, *, output_name: str | None = None) -> DryRunPlan:
        source = validate_repository_url(url)
        return DryRunPlan(
            source=source,
            output_directory=output_directory_for(self.config, source.name, output_name),
            config=self.config,
        )

    @staticmethod
    def remove_output_tree(path: Path) -> bool:
        """Delete a partially written output tree; returns False when nothing existed."""
        path = Path(path)
        if not path.exists():
            return False
        if not path.is_dir():
            raise InvalidPathError(str(path), f"{path} is not a directory")
        shutil.rmtree(path)
        return True

    def config_snapshot(self) -> ConfigSnapshot:
        filters = self.config.filters
        return ConfigSnapshot(
            extensions=list(filters.extensions),
            max_file_size=filters.max_file_size,
            exclude_dirs=list(filters.exclude_dirs),
            preserve_structure=self.config.output.preserve_structure,
        )

    def _clone(self, url: str) -> CloneOutcome:
        progress_callback = self._progress.clone_callback() if self._progress else None
        cloner = self._cloner_factory(self.config, self.cancel_token, progress_callback)
        timeout = float(cloner.timeout)

        result: Dict[str, object] = {}
        lock = threading.Lock()
        abandoned = threading.Event()

        def _worker() -> None:
            try:
                outcome = cloner.clone_to_temp(url)
            except Exception as exc:
                with lock:
                    result["error"] = exc
                return
            with lock:
                if abandoned.is_set():
                    outcome.cleanup()
                    return
                result["outcome"] = outcome

        thread = threading.Thread(target=_worker, name="repodocs-clone", daemon=True)
        deadline = time.monotonic() + timeout
        thread.start()
        while thread.is_alive():
            thread.join(_JOIN_INTERVAL)
            if self.cancel_token.cancelled or time.monotonic() > deadline:
                break

        with lock:
            if "error" in result:
                raise result["error"]  # type: ignore[misc]
            outcome = result.get("outcome")
            if outcome is None:
                abandoned.set()

        if outcome is None:
            if self.cancel_token.cancelled:
                self.logger.warning("Clone cancelled; abandoning worker")
                raise CancelledError()
            self.logger.error("Clone did not finish within %.0f seconds", timeout)
            raise CloneTimeoutError(timeout)

        if self._progress is not None:
            self._progress.finish_clone()
        return outcome  # type: ignore[return-value]

    def _extract(self, outcome: CloneOutcome, *, force: bool, output_name: str | None) -> ExtractionReport:
        token = self.cancel_token
        info = outcome.info
        config = self.config

        token.raise_if_cancelled()
        scanner = DocumentScanner.from_config(config.filters)
        scan = scanner.scan(outcome.path, cancel_token=token)
        documents = scan.documents
        self.logger.debug("Scanner selected %d documents", len(documents))

        token.raise_if_cancelled()
        manager = OutputManager(
            config.output.base_directory,
            info.name,
            force_overwrite=force,
            output_name=output_name,
        )
        output_dir = manager.initialize()
        self.output_directory = output_dir

        token.raise_if_cancelled()
        operations = FileOperations(
            preserve_structure=config.output.preserve_structure,
            force_overwrite=force,
        )
        file_callback = self._progress.file_callback(len(documents)) if self._progress else None
        progress = operations.extract_files(documents, output_dir, file_callback, token)
        self.progress = progress

        token.raise_if_cancelled()
        write_index = config.output.create_index
        if write_index and (output_dir / INDEX_FILENAME).exists():
            write_index = False
            progress.add_error(f"Skipped {INDEX_FILENAME}: a repository document already uses that name")
        report = manager.create_extraction_report(
            info,
            documents,
            progress,
            self.config_snapshot(),
            scan_errors=scan.errors,
            write_files=config.output.generate_report,
        )

        if write_index:
            operations.create_index_file(documents, output_dir)
        self.logger.info("Extraction finished in %s", output_dir)
        return report


__all__ = ["DryRunPlan", "Orchestrator", "default_cloner_factory", "output_directory_for"]
