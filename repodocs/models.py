"""Core data models shared across repodocs components."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Dict, List, Optional

import pygit2

from .pathguard import parse_repository_url

EXTENSIONLESS_DOC_NAMES = frozenset(
    {
        "readme",
        "license",
        "licence",
        "changelog",
        "contributing",
        "authors",
        "notice",
        "install",
        "usage",
        "todo",
        "copying",
        "news",
        "history",
        "credits",
        "maintainers",
        "thanks",
        "acknowledgments",
        "acknowledgements",
        "code_of_conduct",
        "codeofconduct",
        "security",
        "support",
    }
)


def normalise_doc_name(filename: str) -> str:
    """Lowercase a filename and drop the separators ignored when matching conventional names."""
    lowered = filename.strip().lower()
    return lowered.replace("-", "_").replace(" ", "_")


def is_conventional_doc_name(filename: str) -> bool:
    normalised = normalise_doc_name(filename)
    if normalised in EXTENSIONLESS_DOC_NAMES:
        return True
    return normalised.replace("_", "") in {name.replace("_", "") for name in EXTENSIONLESS_DOC_NAMES}


@dataclass(frozen=True)
class RepositoryInfo:
    """Snapshot of repository facts derived once after a clone."""

    owner: str
    name: str
    default_branch: str
    total_commits: int
    is_empty: bool
    url: str

    @classmethod
    def from_repository(cls, repo: pygit2.Repository, url: str) -> "RepositoryInfo":
        """Derive facts from a fresh checkout; owner and name come from the requested URL."""
        owner, name = parse_repository_url(url)
        # libgit2 only reports empty when the unborn HEAD names its own default branch.
        is_empty = bool(repo.is_empty) or repo.head_is_unborn
        branch = "main"
        total_commits = 0
        if repo.head_is_unborn:
            target = repo.lookup_reference("HEAD").target
            if isinstance(target, str):
                branch = target.removeprefix("refs/heads/") or "main"
        else:
            try:
                head = repo.head
            except pygit2.GitError:
                head = None
            if head is not None:
                branch = head.shorthand or "main"
                if not is_empty:
                    total_commits = sum(1 for _ in repo.walk(head.target))
        return cls(
            owner=owner,
            name=name,
            default_branch=branch,
            total_commits=total_commits,
            is_empty=is_empty,
            url=url,
        )

    def display_summary(self) -> str:
        return (
            f"Repository: {self.owner}/{self.name}\n"
            f"Branch: {self.default_branch}\n"
            f"Commits: {self.total_commits}\n"
            f"Empty: {self.is_empty}"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner": self.owner,
            "name": self.name,
            "default_branch": self.default_branch,
            "total_commits": self.total_commits,
            "is_empty": self.is_empty,
            "url": self.url,
        }


@dataclass(frozen=True)
class CloneProgress:
    """Transfer counters reported while a clone is running."""

    total_objects: int = 0
    received_objects: int = 0
    local_objects: int = 0
    total_deltas: int = 0
    indexed_deltas: int = 0
    received_bytes: int = 0

    @classmethod
    def from_stats(cls, stats: Any) -> "CloneProgress":
        return cls(
            total_objects=int(getattr(stats, "total_objects", 0)),
            received_objects=int(getattr(stats, "received_objects", 0)),
            local_objects=int(getattr(stats, "local_objects", 0)),
            total_deltas=int(getattr(stats, "total_deltas", 0)),
            indexed_deltas=int(getattr(stats, "indexed_deltas", 0)),
            received_bytes=int(getattr(stats, "received_bytes", 0)),
        )


@dataclass(frozen=True)
class DocumentFile:
    """Metadata for one file selected for extraction."""

    source_path: Path
    relative_path: PurePosixPath
    filename: str
    extension: str
    size: int
    modified: float

    @classmethod
    def create(
        cls,
        source_path: Path,
        relative_path: PurePosixPath | str,
        size: int,
        modified: float,
    ) -> "DocumentFile":
        """Build a descriptor, deriving filename and lowercase extension from the source path."""
        source_path = Path(source_path)
        suffix = source_path.suffix
        return cls(
            source_path=source_path,
            relative_path=PurePosixPath(relative_path),
            filename=source_path.name,
            extension=suffix[1:].lower() if suffix else "",
            size=size,
            modified=modified,
        )

    @property
    def display_path(self) -> str:
        return self.relative_path.as_posix()

    def is_extensionless_doc(self) -> bool:
        if self.extension:
            return False
        return is_conventional_doc_name(self.filename)


@dataclass
class ScanResult:
    """Documents selected by a scan plus the non-fatal errors met on the way."""

    documents: List[DocumentFile] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.documents)

    def __iter__(self):
        return iter(self.documents)


@dataclass
class ScanStatistics:
    """Aggregate numbers about a set of documents."""

    total_files: int = 0
    total_size: int = 0
    files_by_extension: Dict[str, int] = field(default_factory=dict)
    largest_file_size: int = 0
    largest_file_path: Optional[str] = None


@dataclass
class ExtractionProgress:
    """Running ledger for a copy batch."""

    total_files: int = 0
    total_bytes: int = 0
    files_processed: int = 0
    bytes_processed: int = 0
    current_file: Optional[str] = None
    errors: List[str] = field(default_factory=list)
    start_time: float = field(default_factory=time.monotonic)

    def update_file(self, filename: str, bytes_copied: int) -> None:
        self.files_processed += 1
        self.bytes_processed += bytes_copied
        self.current_file = filename

    def add_error(self, message: str) -> None:
        self.errors.append(message)

    def percentage(self) -> float:
        if self.total_files == 0:
            return 0.0
        return self.files_processed / self.total_files * 100.0

    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def estimated_remaining(self) -> float:
        if self.files_processed == 0:
            return 0.0
        elapsed = self.elapsed()
        if elapsed <= 0:
            return 0.0
        rate = self.files_processed / elapsed
        remaining = max(self.total_files - self.files_processed, 0)
        return remaining / rate if rate > 0 else 0.0


@dataclass(frozen=True)
class FileInfo:
    """Serializable view of a document for reports."""

    filename: str
    relative_path: str
    extension: str
    size: int
    modified: str

    @classmethod
    def from_document(cls, document: DocumentFile) -> "FileInfo":
        modified = datetime.fromtimestamp(document.modified, tz=timezone.utc)
        return cls(
            filename=document.filename,
            relative_path=document.display_path,
            extension=document.extension,
            size=document.size,
            modified=modified.isoformat().replace("+00:00", "Z"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "relative_path": self.relative_path,
            "extension": self.extension,
            "size": self.size,
            "modified": self.modified,
        }


@dataclass(frozen=True)
class ConfigSnapshot:
    """Subset of configuration recorded alongside an extraction."""

    extensions: List[str]
    max_file_size: int
    exclude_dirs: List[str]
    preserve_structure: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "extensions": list(self.extensions),
            "max_file_size": self.max_file_size,
            "exclude_dirs": list(self.exclude_dirs),
            "preserve_structure": self.preserve_structure,
        }


@dataclass
class ExtractionSummary:
    total_files_processed: int
    total_bytes_processed: int
    extraction_duration: float
    files_by_extension: Dict[str, int]
    largest_file: Optional[FileInfo]
    average_file_size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_files_processed": self.total_files_processed,
            "total_bytes_processed": self.total_bytes_processed,
            "extraction_duration": self.extraction_duration,
            "files_by_extension": dict(self.files_by_extension),
            "largest_file": self.largest_file.to_dict() if self.largest_file else None,
            "average_file_size": self.average_file_size,
        }


@dataclass
class ExtractionReport:
    """Everything recorded about a finished extraction."""

    repository_info: RepositoryInfo
    extraction_summary: ExtractionSummary
    files: List[FileInfo]
    extraction_time: datetime
    errors: List[str]
    config_used: ConfigSnapshot
    output_directory: Optional[Path] = None
    scan_errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "repository_info": self.repository_info.to_dict(),
            "extraction_summary": self.extraction_summary.to_dict(),
            "files": [info.to_dict() for info in self.files],
            "extraction_time": self.extraction_time.isoformat().replace("+00:00", "Z"),
            "errors": list(self.errors),
            "scan_errors": list(self.scan_errors),
            "config_used": self.config_used.to_dict(),
            "output_directory": str(self.output_directory) if self.output_directory else None,
        }
