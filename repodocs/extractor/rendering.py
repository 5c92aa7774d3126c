"""Jinja2 environment for the index and report templates."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from jinja2 import Environment, FileSystemLoader

TEMPLATES_DIR = Path(__file__).with_name("templates")


def create_environment(templates_dir: Path | None = None) -> Environment:
    directories = []
    if templates_dir:
        directories.append(str(templates_dir))
    directories.append(str(TEMPLATES_DIR))
    # ensure uniqueness preserving order
    ordered = list(dict.fromkeys(directories))
    loader = FileSystemLoader(ordered)
    return Environment(loader=loader, autoescape=False, trim_blocks=True, lstrip_blocks=True)


@lru_cache(maxsize=1)
def _default_environment() -> Environment:
    return create_environment()


def render_template(name: str, environment: Environment | None = None, **context: Any) -> str:
    """Render ``name`` and guarantee a single trailing newline."""
    env = environment or _default_environment()
    rendered = env.get_template(name).render(**context)
    return rendered.rstrip("\n") + "\n"


__all__ = ["TEMPLATES_DIR", "create_environment", "render_template"]
