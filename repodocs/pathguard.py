"""Path and repository URL validation helpers."""

from __future__ import annotations

import re
from dataclasses import dataclass
from os import PathLike
from pathlib import PurePath
from typing import Optional, Tuple, Union
from urllib.parse import urlsplit

from .errors import InvalidUrlError, PathValidationError

DEFAULT_MAX_PATH = 4096
LEGACY_MAX_PATH = 260
MAX_SEGMENT_LENGTH = 100
TRUSTED_HOST = "github.com"

ALLOWED_SCHEMES = ("https", "ssh", "git")

_ILLEGAL_FILENAME_CHARS = frozenset('<>:"|?*')
_SANITIZE_CHARS = frozenset('<>:"|?*/\\')
_SEGMENT_RE = re.compile(r"^[A-Za-z0-9._-]+$")

_RESERVED_NAMES = frozenset(
    {"CON", "PRN", "AUX", "NUL"}
    | {f"COM{index}" for index in range(1, 10)}
    | {f"LPT{index}" for index in range(1, 10)}
)

PathInput = Union[str, "PathLike[str]"]


@dataclass(frozen=True)
class RepositorySource:
    """A repository URL that passed validation."""

    url: str
    owner: str
    name: str
    protocol: str
    host: str
    branch: Optional[str] = None


def _is_control(char: str) -> bool:
    code = ord(char)
    return code < 32 or code == 127


def _segments(path: str) -> list[str]:
    return [segment for segment in re.split(r"[\\/]", path) if segment]


def check_path_length(path: PathInput, limit: int = DEFAULT_MAX_PATH) -> None:
    """Raise when the textual form of ``path`` exceeds ``limit`` characters."""
    text = str(path)
    if len(text) > limit:
        raise PathValidationError(
            text,
            PathValidationError.TOO_LONG,
            f"Path too long ({len(text)} > {limit} characters): {text}",
        )


def is_reserved_name(name: str) -> bool:
    stem = name.split(".", 1)[0]
    return stem.upper() in _RESERVED_NAMES


def validate_destination(
    path: PathInput,
    *,
    max_length: int = DEFAULT_MAX_PATH,
    cross_platform: bool = True,
) -> None:
    """Reject destinations that could escape the output tree or are illegal on common filesystems."""
    text = str(path)
    segments = _segments(text)

    if any(segment == ".." for segment in segments):
        raise PathValidationError(
            text, PathValidationError.TRAVERSAL, f"Path traversal detected: {text}"
        )

    check_path_length(text, max_length)

    name = segments[-1] if segments else ""
    if not name:
        return

    bad = [char for char in name if char in _ILLEGAL_FILENAME_CHARS or _is_control(char)]
    if bad:
        raise PathValidationError(
            text,
            PathValidationError.ILLEGAL_CHARACTERS,
            f"Illegal characters in filename: {name!r}",
        )

    if cross_platform and is_reserved_name(name):
        raise PathValidationError(
            text,
            PathValidationError.RESERVED_NAME,
            f"Reserved filename: {name}",
        )

    if name.endswith((" ", ".")):
        raise PathValidationError(
            text,
            PathValidationError.TRAILING_DOT_OR_SPACE,
            f"Filename ends with a dot or space: {name!r}",
        )


def _validate_segment(url: str, label: str, value: str) -> None:
    if not value:
        raise InvalidUrlError(url, f"{label} must not be empty")
    if len(value) > MAX_SEGMENT_LENGTH:
        raise InvalidUrlError(url, f"{label} exceeds {MAX_SEGMENT_LENGTH} characters")
    if value.startswith("."):
        raise InvalidUrlError(url, f"{label} must not start with '.'")
    if not _SEGMENT_RE.match(value):
        raise InvalidUrlError(url, f"{label} contains invalid characters")


def _host_allowed(host: str, trusted_host: str) -> bool:
    host = host.lower()
    trusted_host = trusted_host.lower()
    return host == trusted_host or host.endswith(f".{trusted_host}")


def validate_repository_url(url: str, *, trusted_host: str = TRUSTED_HOST) -> RepositorySource:
    """Validate a repository URL and return its parsed form."""
    candidate = (url or "").strip()
    if not candidate:
        raise InvalidUrlError(url, "URL must not be empty")

    try:
        parts = urlsplit(candidate)
        host = parts.hostname or ""
    except ValueError as exc:
        raise InvalidUrlError(url, str(exc)) from exc

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise InvalidUrlError(url, f"unsupported protocol {scheme or '(none)'!r}")
    if not host:
        raise InvalidUrlError(url, "missing host")
    if not _host_allowed(host, trusted_host):
        raise InvalidUrlError(url, f"host must be {trusted_host}")
    if parts.query or parts.fragment:
        raise InvalidUrlError(url, "query strings and fragments are not allowed")

    segments = parts.path.split("/")
    if segments and segments[0] == "":
        segments = segments[1:]
    if segments and segments[-1] == "":
        segments = segments[:-1]
    if len(segments) != 2:
        raise InvalidUrlError(url, "expected exactly two path segments (owner/repository)")

    owner, name = segments
    if name.endswith(".git"):
        name = name[: -len(".git")]
    _validate_segment(url, "owner", owner)
    _validate_segment(url, "repository name", name)

    netloc = parts.netloc
    normalised = f"{scheme}://{netloc}/{owner}/{name}"
    return RepositorySource(
        url=normalised,
        owner=owner,
        name=name,
        protocol=scheme,
        host=host.lower(),
    )


def parse_repository_url(url: str) -> Tuple[str, str]:
    """Return ``(owner, name)`` from a repository URL, dropping a trailing ``.git``."""
    parts = urlsplit(url.strip())
    segments = [segment for segment in parts.path.split("/") if segment]
    if len(segments) < 2:
        raise InvalidUrlError(url, "cannot determine owner and repository name")
    owner, name = segments[-2], segments[-1]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not owner or not name:
        raise InvalidUrlError(url, "cannot determine owner and repository name")
    return owner, name


def sanitize_name(name: str) -> str:
    """Replace separator, reserved and control characters so ``name`` is safe as a single path component."""
    cleaned = "".join(
        "_" if char in _SANITIZE_CHARS or _is_control(char) else char for char in name
    )
    cleaned = cleaned.rstrip(". ")
    return cleaned or "unnamed_file"


def sanitize_repo_name(name: str) -> str:
    cleaned = "".join(char if char.isalnum() or char in "-._" else "_" for char in name)
    cleaned = cleaned.strip("._ ")
    if not cleaned:
        return "unnamed_repo"
    return cleaned[:MAX_SEGMENT_LENGTH]


def relative_is_safe(relative: PurePath | str) -> bool:
    """Return True when a relative path has no parent components and is not absolute."""
    pure = PurePath(relative)
    if pure.is_absolute():
        return False
    return ".." not in _segments(str(relative))


__all__ = [
    "ALLOWED_SCHEMES",
    "DEFAULT_MAX_PATH",
    "LEGACY_MAX_PATH",
    "RepositorySource",
    "check_path_length",
    "is_reserved_name",
    "parse_repository_url",
    "relative_is_safe",
    "sanitize_name",
    "sanitize_repo_name",
    "validate_destination",
    "validate_repository_url",
]
