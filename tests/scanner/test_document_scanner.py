"""Tests for repodocs.scanner.document_scanner."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from repodocs.cancellation import CancellationToken
from repodocs.config import FilterConfig
from repodocs.errors import CancelledError, InvalidPathError, NoDocumentationFoundError, PermissionDeniedError
from repodocs.scanner import DocumentScanner, FileFilter


def _write(root: Path, files: dict[str, str | bytes]) -> None:
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")


def _paths(result) -> list[str]:
    return [document.display_path for document in result.documents]


def test_scan_selects_md_and_txt_and_skips_node_modules(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write(
        tmp_path,
        {
            "README.md": "# readme",
            "notes.txt": "notes",
            "script.js": "console.log(1)",
            "node_modules/ignored.md": "# ignored",
        },
    )
    visited: list[str] = []
    real_walk = os.walk

    def recording_walk(top, *args, **kwargs):
        for dirpath, dirnames, filenames in real_walk(top, *args, **kwargs):
            visited.append(Path(dirpath).name)
            yield dirpath, dirnames, filenames

    monkeypatch.setattr("repodocs.scanner.document_scanner.os.walk", recording_walk)
    scanner = DocumentScanner.from_config(
        FilterConfig(extensions=["md", "txt"], exclude_dirs=["node_modules"], exclude_patterns=[])
    )

    result = scanner.scan(tmp_path)

    assert sorted(_paths(result)) == ["README.md", "notes.txt"]
    assert result.errors == []
    assert "node_modules" not in visited


def test_size_ceiling_is_inclusive_and_silent(tmp_path: Path) -> None:
    _write(tmp_path, {"exact.md": b"x" * 64, "over.md": b"x" * 65})
    scanner = DocumentScanner.from_config(FilterConfig(max_file_size=64))

    result = scanner.scan(tmp_path)

    assert _paths(result) == ["exact.md"]
    assert result.errors == []


def test_documents_are_sorted_and_carry_metadata(tmp_path: Path) -> None:
    _write(
        tmp_path,
        {
            "zeta.md": "z",
            "docs/b.md": "bb",
            "docs/a.MD": "a",
            "LICENSE": "MIT",
        },
    )

    result = DocumentScanner().scan(tmp_path)

    assert _paths(result) == ["LICENSE", "docs/a.MD", "docs/b.md", "zeta.md"]
    license_doc, upper_doc = result.documents[0], result.documents[1]
    assert license_doc.extension == ""
    assert license_doc.is_extensionless_doc()
    assert upper_doc.extension == "md"
    assert upper_doc.filename == "a.MD"
    assert upper_doc.size == 1
    assert upper_doc.source_path == tmp_path / "docs" / "a.MD"


def test_depth_limit_prunes_deep_directories(tmp_path: Path) -> None:
    _write(
        tmp_path,
        {
            "top.md": "top",
            "one/level.md": "one",
            "one/two/deep.md": "two",
        },
    )
    scanner = DocumentScanner(FileFilter(FilterConfig()), max_depth=2)

    result = scanner.scan(tmp_path)

    assert _paths(result) == ["one/level.md", "top.md"]


def test_hidden_directories_are_skipped_except_allowed(tmp_path: Path) -> None:
    _write(
        tmp_path,
        {
            ".github/CONTRIBUTING.md": "contrib",
            ".secret/notes.md": "hidden",
            "build/output.md": "built",
            "docs/guide.md": "guide",
        },
    )

    result = DocumentScanner().scan(tmp_path)

    assert _paths(result) == [".github/CONTRIBUTING.md", "docs/guide.md"]


def test_symlinked_directories_are_not_followed(tmp_path: Path) -> None:
    outside = tmp_path / "outside"
    _write(outside, {"escape.md": "outside"})
    root = tmp_path / "root"
    _write(root, {"README.md": "inside"})
    os.symlink(outside, root / "linked", target_is_directory=True)

    result = DocumentScanner().scan(root)

    assert _paths(result) == ["README.md"]


def test_scan_without_documents_raises(tmp_path: Path) -> None:
    _write(tmp_path, {"main.py": "print()", "node_modules/readme.md": "vendored"})

    with pytest.raises(NoDocumentationFoundError) as excinfo:
        DocumentScanner.from_config(FilterConfig(extensions=["md"])).scan(tmp_path)

    assert excinfo.value.searched_extensions == ["md"]
    assert excinfo.value.exit_code == 6


def test_scan_rejects_missing_root(tmp_path: Path) -> None:
    with pytest.raises(InvalidPathError):
        DocumentScanner().scan(tmp_path / "missing")


def test_scan_rejects_file_root(tmp_path: Path) -> None:
    target = tmp_path / "README.md"
    target.write_text("x", encoding="utf-8")

    with pytest.raises(InvalidPathError):
        DocumentScanner().scan(target)


def test_scan_honours_cancelled_token(tmp_path: Path) -> None:
    _write(tmp_path, {"README.md": "x"})
    token = CancellationToken()
    token.cancel()

    with pytest.raises(CancelledError):
        DocumentScanner().scan(tmp_path, cancel_token=token)


def _walk_with_one_error(monkeypatch: pytest.MonkeyPatch, locked: Path) -> None:
    real_walk = os.walk
    calls: list[str] = []

    def failing_walk(top, *args, **kwargs):
        if not calls:
            calls.append(str(top))
            kwargs["onerror"](PermissionError(13, "Permission denied", str(locked)))
        yield from real_walk(top, *args, **kwargs)

    monkeypatch.setattr("repodocs.scanner.document_scanner.os.walk", failing_walk)


def test_walk_errors_are_recorded_without_aborting(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _write(tmp_path, {"README.md": "x"})
    _walk_with_one_error(monkeypatch, tmp_path / "locked")

    result = DocumentScanner().scan(tmp_path)

    assert _paths(result) == ["README.md"]
    assert result.errors == [f"Permission denied: {tmp_path / 'locked'}"]


def test_scan_where_every_entry_errored_is_permission_denied(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    root = tmp_path / "root"
    root.mkdir()
    _walk_with_one_error(monkeypatch, root / "locked")

    with pytest.raises(PermissionDeniedError) as excinfo:
        DocumentScanner().scan(root)

    assert excinfo.value.exit_code == 7


def test_readable_non_doc_files_keep_error_scan_non_fatal(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    root = tmp_path / "root"
    _write(root, {"app.js": "console.log(1)"})
    _walk_with_one_error(monkeypatch, root / "locked")

    with pytest.raises(NoDocumentationFoundError):
        DocumentScanner().scan(root)


def test_statistics_summarise_documents(tmp_path: Path) -> None:
    _write(tmp_path, {"a.md": "aaaa", "b.md": "b", "c.txt": "cc", "LICENSE": "l"})
    result = DocumentScanner().scan(tmp_path)

    stats = DocumentScanner.statistics(result)

    assert stats.total_files == 4
    assert stats.total_size == 8
    assert stats.files_by_extension == {"md": 2, "txt": 1, "no_extension": 1}
    assert stats.largest_file_path == "a.md"
    assert stats.largest_file_size == 4
