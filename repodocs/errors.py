"""Error taxonomy for repodocs pipelines."""

from __future__ import annotations

from typing import Iterable, List, Optional


class RepoDocsError(Exception):
    """Base class for every failure the pipeline reports to callers."""

    exit_code = 1

    def user_message(self) -> str:
        """Return a plain description suitable for end users."""
        return str(self)

    def suggestion(self) -> Optional[str]:
        """Return an actionable hint, when one exists."""
        return None


class ConfigError(RepoDocsError):
    """Raised when the configuration file cannot be loaded or is invalid."""

    def user_message(self) -> str:
        return f"Configuration error: {self}"

    def suggestion(self) -> Optional[str]:
        return "Check your configuration file syntax and ensure all required fields are present."


class InvalidUrlError(RepoDocsError):
    """Raised when a repository URL is malformed or not allowed."""

    exit_code = 2

    def __init__(self, url: str, reason: str | None = None) -> None:
        self.url = url
        self.reason = reason
        detail = f"Invalid repository URL: {url}"
        if reason:
            detail = f"{detail} ({reason})"
        super().__init__(detail)

    def suggestion(self) -> Optional[str]:
        return (
            "Please check that the URL is a valid GitHub repository URL "
            "(e.g., https://github.com/owner/repo)"
        )


class InvalidPathError(RepoDocsError):
    """Raised when a filesystem path cannot be used."""

    def __init__(self, path: str, detail: str | None = None) -> None:
        self.path = path
        super().__init__(detail or f"Invalid file path: {path}")


class PathValidationError(InvalidPathError):
    """Raised when a destination path fails traversal or naming checks."""

    TRAVERSAL = "traversal"
    TOO_LONG = "too_long"
    ILLEGAL_CHARACTERS = "illegal_characters"
    RESERVED_NAME = "reserved_name"
    TRAILING_DOT_OR_SPACE = "trailing_dot_or_space"

    def __init__(self, path: str, reason: str, detail: str) -> None:
        self.reason = reason
        super().__init__(path, detail)


class NetworkError(RepoDocsError):
    """Raised when the transport fails before the remote answers."""

    exit_code = 5

    def __init__(self, url: str, message: str | None = None) -> None:
        self.url = url
        super().__init__(
            message
            or f"Network error while cloning {url}. Check your internet connection and try again."
        )

    def user_message(self) -> str:
        return f"Network error: {self}"

    def suggestion(self) -> Optional[str]:
        return (
            "Check your internet connection and try again. If the problem persists, "
            "the repository server might be temporarily unavailable."
        )


class AuthenticationError(RepoDocsError):
    """Raised when the remote rejects the supplied credentials."""

    exit_code = 4

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Authentication failed for: {url}")

    def suggestion(self) -> Optional[str]:
        return (
            "Set the GITHUB_TOKEN environment variable with a valid personal access "
            "token for private repositories."
        )


class RepositoryNotFoundError(RepoDocsError):
    """Raised when the remote repository does not exist or is hidden."""

    exit_code = 3

    def __init__(self, url: str) -> None:
        self.url = url
        super().__init__(f"Repository not found: {url}")

    def suggestion(self) -> Optional[str]:
        return (
            "Verify the repository exists and you have access to it. For private "
            "repositories, set the GITHUB_TOKEN environment variable."
        )


class CloneTimeoutError(RepoDocsError):
    """Raised when a clone exceeds its wall-clock budget."""

    exit_code = 9

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        super().__init__(f"Operation timed out after {seconds:g} seconds")

    def suggestion(self) -> Optional[str]:
        return (
            "The operation took longer than expected. Try again or increase the "
            "timeout with --timeout."
        )


class CancelledError(RepoDocsError):
    """Raised when the shared cancellation token was tripped."""

    exit_code = 130

    def __init__(self, message: str = "Operation was cancelled by user") -> None:
        super().__init__(message)


class PermissionDeniedError(RepoDocsError):
    """Raised when the filesystem refuses access."""

    exit_code = 7

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Permission denied accessing: {path}")

    def suggestion(self) -> Optional[str]:
        return "Ensure you have the necessary read/write permissions for the target directory."


class OutputDirectoryExistsError(RepoDocsError):
    """Raised when the output location already exists and force is off."""

    exit_code = 8

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Output directory already exists: {path}")

    def suggestion(self) -> Optional[str]:
        return (
            "Remove the existing directory, choose a different output name with "
            "--output, or use --force to overwrite."
        )


class DestinationExistsError(OutputDirectoryExistsError):
    """Raised when a single copy target already exists; callers may retry with force."""

    def __init__(self, path: str) -> None:
        self.path = path
        RepoDocsError.__init__(self, f"Destination already exists: {path}")

    def suggestion(self) -> Optional[str]:
        return "Use --force to overwrite existing files."


class NoDocumentationFoundError(RepoDocsError):
    """Raised when a scan selects zero documents."""

    exit_code = 6

    def __init__(self, searched_extensions: Iterable[str]) -> None:
        self.searched_extensions: List[str] = list(searched_extensions)
        super().__init__("No documentation files found in repository")

    def user_message(self) -> str:
        return (
            "No documentation files found with extensions: "
            + ", ".join(self.searched_extensions)
        )

    def suggestion(self) -> Optional[str]:
        return (
            "Try using different file extensions with --formats (e.g., --formats "
            "md,rst,txt,adoc) or check if the repository contains documentation files."
        )


class GitOperationError(RepoDocsError):
    """Raised for transport failures that fit no narrower class."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Git operation failed: {message}")


__all__ = [
    "AuthenticationError",
    "CancelledError",
    "CloneTimeoutError",
    "ConfigError",
    "DestinationExistsError",
    "GitOperationError",
    "InvalidPathError",
    "InvalidUrlError",
    "NetworkError",
    "NoDocumentationFoundError",
    "OutputDirectoryExistsError",
    "PathValidationError",
    "PermissionDeniedError",
    "RepoDocsError",
    "RepositoryNotFoundError",
]
