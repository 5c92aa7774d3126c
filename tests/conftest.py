from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture(autouse=True)
def reset_repodocs_logger() -> Iterator[None]:
    """Drop handlers installed by the CLI so later tests never write to closed capture streams."""
    yield
    logger = logging.getLogger("repodocs")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def docs_repo(repo_builder: RepoBuilder) -> RepoBuilder:
    """A committed repository with a handful of documentation files and noise."""
    repo_builder.write(
        {
            "README.md": "# Widgets\n",
            "LICENSE": "MIT\n",
            "docs/guide.md": "# Guide\n",
            "docs/api/reference.rst": "Reference\n=========\n",
            "src/main.py": "print('hi')\n",
            "node_modules/pkg/README.md": "# vendored\n",
        }
    )
    repo_builder.commit()
    return repo_builder
