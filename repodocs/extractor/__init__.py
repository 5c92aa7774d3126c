"""Copy engine and output directory management."""

from __future__ import annotations

from .file_ops import CHUNK_SIZE, INDEX_FILENAME, FileOperations
from .output_manager import OutputManager

__all__ = ["CHUNK_SIZE", "FileOperations", "INDEX_FILENAME", "OutputManager"]
