"""Progress bars for the clone and copy stages."""

from __future__ import annotations

from typing import Callable, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from ..models import CloneProgress, ExtractionProgress


class ProgressManager:
    """Owns a rich Progress display; every method is a no-op when disabled."""

    def __init__(self, enabled: bool = True, *, console: Console | None = None) -> None:
        self.enabled = enabled
        self._progress: Optional[Progress] = None
        if enabled:
            self._progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=console or Console(stderr=True),
                transient=True,
            )
        self._clone_task: Optional[TaskID] = None
        self._file_task: Optional[TaskID] = None

    def start(self) -> None:
        if self._progress is not None:
            self._progress.start()

    def stop(self) -> None:
        if self._progress is not None:
            self._progress.stop()

    def __enter__(self) -> "ProgressManager":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def clone_callback(self) -> Callable[[CloneProgress], bool]:
        """Return a transfer callback that mirrors received objects onto a task."""

        def _update(stats: CloneProgress) -> bool:
            if self._progress is None:
                return True
            if self._clone_task is None:
                self._clone_task = self._progress.add_task("Cloning repository", total=None)
            self._progress.update(
                self._clone_task,
                total=stats.total_objects or None,
                completed=stats.received_objects,
            )
            return True

        return _update

    def finish_clone(self) -> None:
        if self._progress is not None and self._clone_task is not None:
            for task in self._progress.tasks:
                if task.id == self._clone_task and task.total:
                    self._progress.update(self._clone_task, completed=task.total)

    def file_callback(self, total: int) -> Callable[[ExtractionProgress], None]:
        """Return a copy callback that advances a task sized to ``total`` files."""
        if self._progress is not None and self._file_task is None:
            self._file_task = self._progress.add_task("Extracting files", total=total)

        def _update(progress: ExtractionProgress) -> None:
            if self._progress is None or self._file_task is None:
                return
            description = "Extracting files"
            if progress.current_file:
                description = f"Extracting {progress.current_file}"
            self._progress.update(
                self._file_task,
                completed=progress.files_processed + len(progress.errors),
                description=description,
            )

        return _update


__all__ = ["ProgressManager"]
