"""Eligibility rules for documentation files and traversable directories."""

from __future__ import annotations

import re
from pathlib import PurePath
from typing import List, Pattern

from ..config import FilterConfig
from ..logging import get_logger
from ..models import is_conventional_doc_name

ALLOWED_HIDDEN_DIRS = frozenset({".github", ".vscode", ".devcontainer"})

BUILD_OUTPUT_DIRS = frozenset(
    {
        "target",
        "build",
        "dist",
        "out",
        "output",
        "bin",
        "obj",
        "node_modules",
        "vendor",
        ".cache",
        "tmp",
        "temp",
        "__pycache__",
        ".pytest_cache",
        ".mypy_cache",
        "coverage",
        ".coverage",
        "htmlcov",
    }
)

_logger = get_logger("scanner.filter")


def _compile_patterns(patterns: List[str]) -> List[Pattern[str]]:
    compiled: List[Pattern[str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as exc:
            _logger.warning("Ignoring invalid exclude pattern %r: %s", pattern, exc)
    return compiled


def _base_name(path: PurePath | str) -> str:
    return PurePath(path).name


class FileFilter:
    """Decides which files are documentation and which directories get walked."""

    def __init__(self, config: FilterConfig | None = None) -> None:
        config = config or FilterConfig()
        self._extensions: List[str] = [ext.lower() for ext in config.extensions]
        self._max_file_size = config.max_file_size
        self._exclude_dirs: List[str] = list(config.exclude_dirs)
        self._patterns = _compile_patterns(list(config.exclude_patterns))
        self.max_depth = config.max_depth

    @property
    def extensions(self) -> List[str]:
        return list(self._extensions)

    @property
    def exclude_dirs(self) -> List[str]:
        return list(self._exclude_dirs)

    @property
    def max_file_size(self) -> int:
        return self._max_file_size

    def is_documentation_file(self, path: PurePath | str) -> bool:
        name = _base_name(path)
        suffix = PurePath(name).suffix
        if suffix and suffix[1:].lower() in self._extensions:
            return True
        return is_conventional_doc_name(name)

    def is_excluded_name(self, name: str) -> bool:
        lowered = name.lower()
        return any(lowered == excluded.lower() for excluded in self._exclude_dirs)

    def matches_any_pattern(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self._patterns)

    @staticmethod
    def is_hidden_excluded(name: str) -> bool:
        if not name.startswith(".") or name in {".", ".."}:
            return False
        return name.lower() not in ALLOWED_HIDDEN_DIRS

    @staticmethod
    def is_build_output(name: str) -> bool:
        return name.lower() in BUILD_OUTPUT_DIRS

    def should_traverse_directory(self, path: PurePath | str) -> bool:
        """Return False when any exclusion predicate matches, checked in a fixed order."""
        name = _base_name(path)
        if not name:
            return True
        if self.is_excluded_name(name):
            return False
        if self.matches_any_pattern(PurePath(path).as_posix()):
            return False
        if self.is_hidden_excluded(name):
            return False
        if self.is_build_output(name):
            return False
        return True

    def is_size_allowed(self, size: int) -> bool:
        return size <= self._max_file_size

    def add_extension(self, extension: str) -> None:
        ext = extension.lower().lstrip(".")
        if ext and ext not in self._extensions:
            self._extensions.append(ext)

    def remove_extension(self, extension: str) -> None:
        ext = extension.lower().lstrip(".")
        self._extensions = [existing for existing in self._extensions if existing != ext]

    def add_exclude_directory(self, directory: str) -> None:
        if directory not in self._exclude_dirs:
            self._exclude_dirs.append(directory)

    def set_max_file_size(self, size: int) -> None:
        self._max_file_size = size


__all__ = ["ALLOWED_HIDDEN_DIRS", "BUILD_OUTPUT_DIRS", "FileFilter"]
