"""Documentation discovery for cloned repositories."""

from __future__ import annotations

from .document_scanner import DocumentScanner
from .file_filter import ALLOWED_HIDDEN_DIRS, BUILD_OUTPUT_DIRS, FileFilter

__all__ = ["ALLOWED_HIDDEN_DIRS", "BUILD_OUTPUT_DIRS", "DocumentScanner", "FileFilter"]
