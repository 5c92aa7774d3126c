"""Bounded, exclusion-aware walk that selects documentation files."""

from __future__ import annotations

import errno
import os
import stat
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Optional

from ..cancellation import CancellationToken
from ..config import FilterConfig
from ..errors import InvalidPathError, NoDocumentationFoundError, PermissionDeniedError
from ..logging import get_logger
from ..models import DocumentFile, ScanResult, ScanStatistics
from ..pathguard import relative_is_safe
from .file_filter import FileFilter


def _describe_walk_error(exc: OSError) -> str:
    if isinstance(exc, PermissionError) or exc.errno in (errno.EACCES, errno.EPERM):
        return f"Permission denied: {exc.filename or exc}"
    return f"Scan error: {exc}"


class DocumentScanner:
    """Walks a checkout and returns the documentation files it contains."""

    def __init__(self, file_filter: FileFilter | None = None, *, max_depth: int | None = None) -> None:
        self.filter = file_filter or FileFilter(FilterConfig())
        self.max_depth = max_depth if max_depth is not None else self.filter.max_depth
        self.logger = get_logger("scanner")

    @classmethod
    def from_config(cls, config: FilterConfig) -> "DocumentScanner":
        return cls(FileFilter(config), max_depth=config.max_depth)

    def scan(self, root: Path | str, cancel_token: CancellationToken | None = None) -> ScanResult:
        """Return documents under ``root`` sorted by relative path."""
        root_path = Path(root).expanduser()
        if not root_path.exists():
            raise InvalidPathError(str(root_path))
        if not root_path.is_dir():
            raise InvalidPathError(str(root_path), f"{root_path} is not a directory")

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        self.logger.debug("Scanning %s (max depth %d)", root_path, self.max_depth)
        documents: List[DocumentFile] = []
        errors: List[str] = []
        healthy_entries = 0

        def _on_error(exc: OSError) -> None:
            errors.append(_describe_walk_error(exc))

        for dirpath, dirnames, filenames in os.walk(root_path, onerror=_on_error, followlinks=False):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            current = Path(dirpath)
            rel_dir = PurePosixPath(current.relative_to(root_path).as_posix())
            depth = 0 if str(rel_dir) == "." else len(rel_dir.parts)
            if depth:
                healthy_entries += 1

            if depth + 1 >= self.max_depth:
                dirnames[:] = []
            else:
                kept = []
                for name in sorted(dirnames):
                    rel = rel_dir / name if depth else PurePosixPath(name)
                    if os.path.islink(current / name):
                        continue
                    if self.filter.should_traverse_directory(rel):
                        kept.append(name)
                    else:
                        self.logger.debug("Pruned directory %s", rel)
                dirnames[:] = kept

            for filename in sorted(filenames):
                if not self.filter.is_documentation_file(filename):
                    # Listed without error, so it counts as a readable entry.
                    healthy_entries += 1
                    continue
                source = current / filename
                try:
                    info = os.lstat(source)
                except OSError as exc:
                    errors.append(f"Error processing {source}: {exc}")
                    continue
                healthy_entries += 1
                if not stat.S_ISREG(info.st_mode):
                    continue
                if not self.filter.is_size_allowed(info.st_size):
                    self.logger.debug("Skipping %s (%d bytes exceeds limit)", source, info.st_size)
                    continue

                relative = source.relative_to(root_path).as_posix()
                if not relative_is_safe(relative):
                    errors.append(f"Unsafe relative path rejected: {relative}")
                    continue
                documents.append(
                    DocumentFile.create(source, relative, info.st_size, info.st_mtime)
                )

        for message in errors:
            self.logger.warning(message)

        if not documents:
            if errors and healthy_entries == 0:
                raise PermissionDeniedError(f"{root_path} ({'; '.join(errors)})")
            raise NoDocumentationFoundError(self.filter.extensions)

        documents.sort(key=lambda doc: doc.relative_path.as_posix())
        self.logger.info("Found %d documentation files", len(documents))
        return ScanResult(documents=documents, errors=errors)

    @staticmethod
    def statistics(documents: Iterable[DocumentFile]) -> ScanStatistics:
        stats = ScanStatistics()
        by_extension: Dict[str, int] = {}
        largest: Optional[DocumentFile] = None
        for document in documents:
            stats.total_files += 1
            stats.total_size += document.size
            key = document.extension or "no_extension"
            by_extension[key] = by_extension.get(key, 0) + 1
            if largest is None or document.size > largest.size:
                largest = document
        stats.files_by_extension = by_extension
        if largest is not None:
            stats.largest_file_size = largest.size
            stats.largest_file_path = largest.display_path
        return stats


__all__ = ["DocumentScanner"]
