"""Structure-preserving, path-validated copying of selected documents."""

from __future__ import annotations

import os
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, List, Sequence

from ..cancellation import CancellationToken
from ..errors import DestinationExistsError, InvalidPathError, RepoDocsError
from ..logging import get_logger
from ..models import DocumentFile, ExtractionProgress
from ..pathguard import DEFAULT_MAX_PATH, validate_destination
from .rendering import render_template

CHUNK_SIZE = 8 * 1024
DEFAULT_BUFFER_SIZE = 64 * 1024
MIN_BUFFER_SIZE = 4096
INDEX_FILENAME = "_index.md"

ProgressCallback = Callable[[ExtractionProgress], None]


def write_generated_file(path: Path, content: str) -> Path:
    """Create a generated file, refusing to replace anything already at ``path``."""
    try:
        with Path(path).open("x", encoding="utf-8") as handle:
            handle.write(content)
    except FileExistsError as exc:
        raise DestinationExistsError(str(path)) from exc
    return Path(path)


class FileOperations:
    """Copies documents into an output tree without ever overwriting silently."""

    def __init__(
        self,
        preserve_structure: bool = True,
        force_overwrite: bool = False,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        cross_platform: bool = True,
        max_path_length: int = DEFAULT_MAX_PATH,
    ) -> None:
        self.preserve_structure = preserve_structure
        self.force_overwrite = force_overwrite
        self.buffer_size = max(buffer_size, MIN_BUFFER_SIZE)
        self.cross_platform = cross_platform
        self.max_path_length = max_path_length
        self.logger = get_logger("extractor")

    def extract_files(
        self,
        documents: Sequence[DocumentFile],
        output_root: Path,
        progress_callback: ProgressCallback | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> ExtractionProgress:
        """Copy ``documents`` in order, recording per-file failures instead of aborting."""
        output_root = Path(output_root)
        output_root.mkdir(parents=True, exist_ok=True)
        progress = ExtractionProgress(
            total_files=len(documents),
            total_bytes=sum(document.size for document in documents),
        )

        for document in documents:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            if progress_callback is not None:
                progress_callback(progress)
            try:
                copied = self.copy_document(document, output_root)
            except (RepoDocsError, OSError) as exc:
                message = f"Failed to copy {document.source_path}: {exc}"
                self.logger.warning(message)
                progress.add_error(message)
                continue
            progress.update_file(document.filename, copied)
            self.logger.debug("Copied %s (%d bytes)", document.display_path, copied)

        if progress_callback is not None:
            progress_callback(progress)
        self.logger.info(
            "Copied %d of %d files (%d errors)",
            progress.files_processed,
            progress.total_files,
            len(progress.errors),
        )
        return progress

    def destination_for(self, document: DocumentFile, output_root: Path) -> Path:
        if self.preserve_structure:
            return Path(output_root).joinpath(*document.relative_path.parts)
        return Path(output_root) / document.filename

    def copy_document(self, document: DocumentFile, output_root: Path) -> int:
        destination = self.destination_for(document, output_root)
        validate_destination(
            destination, max_length=self.max_path_length, cross_platform=self.cross_platform
        )
        destination.parent.mkdir(parents=True, exist_ok=True)
        return self.secure_copy(document.source_path, destination)

    def secure_copy(self, source: Path, destination: Path) -> int:
        """Stream ``source`` into ``destination`` and return the number of bytes copied."""
        source = Path(source)
        destination = Path(destination)
        if not source.exists():
            raise InvalidPathError(str(source), f"Source file does not exist: {source}")
        if not source.is_file():
            raise InvalidPathError(str(source), f"Source is not a file: {source}")

        validate_destination(
            destination, max_length=self.max_path_length, cross_platform=self.cross_platform
        )

        if destination.exists() and not self.force_overwrite:
            raise DestinationExistsError(str(destination))

        mode = "wb" if self.force_overwrite else "xb"
        total = 0
        try:
            with source.open("rb") as reader, destination.open(mode, buffering=self.buffer_size) as writer:
                for chunk in iter(lambda: reader.read(CHUNK_SIZE), b""):
                    writer.write(chunk)
                    total += len(chunk)
        except FileExistsError as exc:
            raise DestinationExistsError(str(destination)) from exc

        try:
            stat_result = source.stat()
            os.utime(destination, ns=(stat_result.st_atime_ns, stat_result.st_mtime_ns))
        except OSError:
            pass
        return total

    def create_index_file(
        self,
        documents: Sequence[DocumentFile],
        output_dir: Path,
        *,
        generated_at: datetime | None = None,
    ) -> Path:
        """Write ``_index.md`` listing documents grouped by source directory."""
        grouped: Dict[str, List[DocumentFile]] = defaultdict(list)
        for document in documents:
            parent = document.relative_path.parent.as_posix()
            grouped[parent].append(document)

        sections = []
        for directory in sorted(grouped):
            entries = []
            for document in grouped[directory]:
                link = document.display_path if self.preserve_structure else document.filename
                entries.append(
                    {
                        "name": document.filename,
                        "link": link.replace("\\", "/"),
                        "size": document.size,
                    }
                )
            title = "Root Directory" if directory == "." else f"{directory}/"
            sections.append({"title": title, "entries": entries})

        timestamp = generated_at or datetime.now(timezone.utc)
        content = render_template(
            "index.md.j2",
            generated_at=timestamp.strftime("%Y-%m-%d %H:%M:%S UTC"),
            sections=sections,
            total_files=len(documents),
            total_size=sum(document.size for document in documents),
        )
        return write_generated_file(Path(output_dir) / INDEX_FILENAME, content)


__all__ = ["CHUNK_SIZE", "FileOperations", "INDEX_FILENAME", "write_generated_file"]
