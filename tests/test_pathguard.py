"""Tests for repodocs.pathguard."""

from __future__ import annotations

from pathlib import PurePosixPath

import pytest

from repodocs.errors import InvalidUrlError, PathValidationError
from repodocs.pathguard import (
    LEGACY_MAX_PATH,
    check_path_length,
    is_reserved_name,
    parse_repository_url,
    relative_is_safe,
    sanitize_name,
    sanitize_repo_name,
    validate_destination,
    validate_repository_url,
)


@pytest.mark.parametrize(
    "url",
    [
        "https://github.com/acme/widgets",
        "https://github.com/acme/widgets.git",
        "https://github.com/acme/widgets/",
        "ssh://git@github.com/acme/widgets.git",
        "git://github.com/acme/widgets",
    ],
)
def test_validate_repository_url_is_idempotent(url: str) -> None:
    first = validate_repository_url(url)
    second = validate_repository_url(first.url)

    assert second == first
    assert first.owner == "acme"
    assert first.name == "widgets"
    assert not first.url.endswith(".git")


def test_git_suffix_does_not_change_owner_and_name() -> None:
    plain = parse_repository_url("https://github.com/acme/widgets")
    suffixed = parse_repository_url("https://github.com/acme/widgets.git")

    assert plain == suffixed == ("acme", "widgets")


def test_validate_repository_url_records_protocol_and_host() -> None:
    source = validate_repository_url("ssh://git@GitHub.com/acme/widgets.git")

    assert source.protocol == "ssh"
    assert source.host == "github.com"
    assert source.branch is None


@pytest.mark.parametrize(
    "url",
    [
        "",
        "   ",
        "http://github.com/acme/widgets",
        "ftp://github.com/acme/widgets",
        "https://gitlab.com/acme/widgets",
        "https://github.com.evil.example/acme/widgets",
        "https://github.com/acme",
        "https://github.com/acme/widgets/tree/main",
        "https://github.com/acme/widgets?tab=readme",
        "https://github.com/acme/widgets#readme",
        "https://github.com/../widgets",
        "https://github.com/acme/.hidden",
        "https://github.com/acme/wid gets",
        "github.com/acme/widgets",
    ],
)
def test_validate_repository_url_rejects_disallowed_urls(url: str) -> None:
    with pytest.raises(InvalidUrlError):
        validate_repository_url(url)


def test_validate_repository_url_rejects_overlong_segments() -> None:
    with pytest.raises(InvalidUrlError) as excinfo:
        validate_repository_url(f"https://github.com/acme/{'a' * 101}")

    assert "exceeds" in str(excinfo.value)


def test_validate_repository_url_accepts_custom_trusted_host() -> None:
    source = validate_repository_url("https://git.example.org/team/tool", trusted_host="git.example.org")

    assert (source.owner, source.name) == ("team", "tool")


def test_invalid_url_error_offers_suggestion() -> None:
    with pytest.raises(InvalidUrlError) as excinfo:
        validate_repository_url("http://github.com/acme/widgets")

    assert excinfo.value.exit_code == 2
    assert "github.com/owner/repo" in (excinfo.value.suggestion() or "")


@pytest.mark.parametrize(
    "path",
    ["out/../secret.md", "..", "docs/..\\evil.md", "a/b/../../c"],
)
def test_validate_destination_rejects_traversal(path: str) -> None:
    with pytest.raises(PathValidationError) as excinfo:
        validate_destination(path)

    assert excinfo.value.reason == PathValidationError.TRAVERSAL


def test_validate_destination_rejects_long_paths() -> None:
    path = "out/" + "a" * LEGACY_MAX_PATH

    validate_destination(path)
    with pytest.raises(PathValidationError) as excinfo:
        validate_destination(path, max_length=LEGACY_MAX_PATH)

    assert excinfo.value.reason == PathValidationError.TOO_LONG


@pytest.mark.parametrize("name", ["bad:name.md", "what?.md", "pipe|file.txt", "tab\tname.md"])
def test_validate_destination_rejects_illegal_characters(name: str) -> None:
    with pytest.raises(PathValidationError) as excinfo:
        validate_destination(f"out/{name}")

    assert excinfo.value.reason == PathValidationError.ILLEGAL_CHARACTERS


def test_validate_destination_rejects_reserved_names_only_when_cross_platform() -> None:
    with pytest.raises(PathValidationError) as excinfo:
        validate_destination("out/CON.md")

    assert excinfo.value.reason == PathValidationError.RESERVED_NAME
    validate_destination("out/CON.md", cross_platform=False)


@pytest.mark.parametrize("name", ["notes.", "notes "])
def test_validate_destination_rejects_trailing_dot_or_space(name: str) -> None:
    with pytest.raises(PathValidationError) as excinfo:
        validate_destination(f"out/{name}")

    assert excinfo.value.reason == PathValidationError.TRAILING_DOT_OR_SPACE


def test_validate_destination_accepts_ordinary_paths() -> None:
    validate_destination("out/docs/guide.md")
    validate_destination("out/.github/CONTRIBUTING.md")


def test_check_path_length_uses_limit() -> None:
    check_path_length("abc", 3)
    with pytest.raises(PathValidationError):
        check_path_length("abcd", 3)


@pytest.mark.parametrize(
    ("name", "expected"),
    [("CON", True), ("con.txt", True), ("LPT9.md", True), ("COM0", False), ("console.md", False)],
)
def test_is_reserved_name(name: str, expected: bool) -> None:
    assert is_reserved_name(name) is expected


def test_sanitize_name_strips_separators_and_reserved_characters() -> None:
    cleaned = sanitize_name("repo/with:bad*chars")

    assert cleaned
    assert not set("/:*") & set(cleaned)
    assert cleaned == "repo_with_bad_chars"


def test_sanitize_name_falls_back_when_empty() -> None:
    assert sanitize_name("") == "unnamed_file"
    assert sanitize_name(". . .") == "unnamed_file"
    assert sanitize_name("notes.md...") == "notes.md"


def test_sanitize_repo_name() -> None:
    assert sanitize_repo_name("my repo!") == "my_repo"
    assert sanitize_repo_name("...") == "unnamed_repo"
    assert len(sanitize_repo_name("x" * 300)) == 100


def test_relative_is_safe() -> None:
    assert relative_is_safe(PurePosixPath("docs/guide.md"))
    assert relative_is_safe("README.md")
    assert not relative_is_safe("../README.md")
    assert not relative_is_safe("/etc/passwd")
