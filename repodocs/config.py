"""Configuration loading for repodocs (repodocs.yml / repodocs.toml)."""

from __future__ import annotations

import copy
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .errors import ConfigError

DEFAULT_EXTENSIONS: List[str] = [
    "md",
    "markdown",
    "mdown",
    "rst",
    "rest",
    "adoc",
    "asciidoc",
    "asc",
    "txt",
    "text",
    "org",
    "wiki",
    "tex",
    "latex",
]

DEFAULT_EXCLUDE_DIRS: List[str] = [
    "node_modules",
    ".git",
    "target",
    "build",
    "dist",
    "vendor",
    ".vscode",
    ".idea",
]

DEFAULT_EXCLUDE_PATTERNS: List[str] = [
    r".*\.min\..*",
    r".*\.lock",
    r"package-lock\.json",
    r"yarn\.lock",
]

DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
DEFAULT_MAX_DEPTH = 10
DEFAULT_TIMEOUT = 300

CONFIG_SEARCH_NAMES = ("repodocs.yml", ".repodocs.yml", "repodocs.toml", ".repodocs.toml")


@dataclass
class FilterConfig:
    """Rules deciding which files and directories are eligible for extraction."""

    extensions: List[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    max_file_size: int = DEFAULT_MAX_FILE_SIZE
    exclude_dirs: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))
    exclude_patterns: List[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    max_depth: int = DEFAULT_MAX_DEPTH


@dataclass
class OutputConfig:
    """Where and how extracted documents are written."""

    preserve_structure: bool = True
    create_index: bool = True
    generate_report: bool = True
    base_directory: Path = field(default_factory=Path.cwd)


@dataclass
class GitConfig:
    """Clone settings."""

    clone_depth: Optional[int] = None
    timeout: int = DEFAULT_TIMEOUT
    branch: Optional[str] = None
    token_env: str = "GITHUB_TOKEN"
    ssh_key_path: Optional[Path] = None
    allow_invalid_certs: bool = False


@dataclass
class Config:
    """Represents the settings defined in repodocs.yml or repodocs.toml."""

    filters: FilterConfig = field(default_factory=FilterConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    git: GitConfig = field(default_factory=GitConfig)
    source: Optional[Path] = None


@dataclass
class CliOverrides:
    """Values supplied on the command line that take precedence over the file."""

    formats: Optional[str] = None
    exclude: Optional[List[str]] = None
    max_file_size: Optional[int] = None
    output_dir: Optional[Path] = None
    preserve_structure: Optional[bool] = None
    timeout: Optional[int] = None
    branch: Optional[str] = None
    create_index: Optional[bool] = None


def load_config(config_path: Path | None = None, *, search_dir: Path | None = None) -> Config:
    """Load configuration from disk, falling back to defaults when no file is found."""
    if config_path is not None:
        config_file = Path(config_path).expanduser()
        if not config_file.exists():
            raise ConfigError(f"Configuration file not found: {config_file}")
    else:
        config_file = _find_config(search_dir or Path.cwd())
        if config_file is None:
            return Config()

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    config = Config(source=config_file.resolve())

    filter_data = _as_dict(data.get("filters"))
    if filter_data:
        filters = config.filters
        if "extensions" in filter_data:
            filters.extensions = [ext.lower().lstrip(".") for ext in _as_str_list(filter_data["extensions"])]
        if "max_file_size" in filter_data:
            filters.max_file_size = _require_int(filter_data, "max_file_size")
        if "exclude_dirs" in filter_data:
            filters.exclude_dirs = _as_str_list(filter_data["exclude_dirs"])
        if "exclude_patterns" in filter_data:
            filters.exclude_patterns = _as_str_list(filter_data["exclude_patterns"])
        if "max_depth" in filter_data:
            filters.max_depth = _require_int(filter_data, "max_depth")

    output_data = _as_dict(data.get("output"))
    if output_data:
        output = config.output
        for key in ("preserve_structure", "create_index", "generate_report"):
            value = _as_bool(output_data.get(key))
            if value is not None:
                setattr(output, key, value)
        base_directory = _as_str(output_data.get("base_directory"))
        if base_directory:
            candidate = Path(base_directory).expanduser()
            if not candidate.is_absolute():
                candidate = config_file.parent / candidate
            output.base_directory = candidate

    git_data = _as_dict(data.get("git"))
    if git_data:
        git = config.git
        git.clone_depth = _as_int(git_data.get("clone_depth"))
        if "timeout" in git_data:
            git.timeout = _require_int(git_data, "timeout")
        git.branch = _as_str(git_data.get("branch"))
        token_env = _as_str(git_data.get("token_env"))
        if token_env:
            git.token_env = token_env
        ssh_key = _as_str(git_data.get("ssh_key_path"))
        git.ssh_key_path = Path(ssh_key).expanduser() if ssh_key else None
        git.allow_invalid_certs = bool(_as_bool(git_data.get("allow_invalid_certs")))

    return config


def merge_overrides(config: Config, overrides: CliOverrides) -> Config:
    """Return a copy of ``config`` with command-line overrides applied."""
    merged = copy.deepcopy(config)
    if overrides.formats is not None:
        merged.filters.extensions = [
            part.strip().lower().lstrip(".")
            for part in overrides.formats.split(",")
            if part.strip()
        ]
    if overrides.exclude:
        for directory in overrides.exclude:
            if directory not in merged.filters.exclude_dirs:
                merged.filters.exclude_dirs.append(directory)
    if overrides.max_file_size is not None:
        merged.filters.max_file_size = overrides.max_file_size
    if overrides.output_dir is not None:
        merged.output.base_directory = Path(overrides.output_dir).expanduser()
    if overrides.preserve_structure is not None:
        merged.output.preserve_structure = overrides.preserve_structure
    if overrides.timeout is not None:
        merged.git.timeout = overrides.timeout
    if overrides.branch is not None:
        merged.git.branch = overrides.branch
    if overrides.create_index is not None:
        merged.output.create_index = overrides.create_index
    return merged


def validate(config: Config) -> None:
    """Raise ConfigError when settings cannot produce a meaningful run."""
    if not config.filters.extensions:
        raise ConfigError("At least one file extension must be specified")
    if config.filters.max_file_size <= 0:
        raise ConfigError("Maximum file size must be greater than 0")
    if config.git.timeout <= 0:
        raise ConfigError("Git timeout must be greater than 0")
    if config.filters.max_depth <= 0:
        raise ConfigError("Maximum directory depth must be greater than 0")
    parent = Path(config.output.base_directory).expanduser().absolute().parent
    if not parent.exists():
        raise ConfigError(f"Parent directory does not exist: {parent}")


def config_to_dict(config: Config) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "filters": asdict(config.filters),
        "output": asdict(config.output),
        "git": asdict(config.git),
    }
    payload["output"]["base_directory"] = str(config.output.base_directory)
    ssh_key = config.git.ssh_key_path
    payload["git"]["ssh_key_path"] = str(ssh_key) if ssh_key else None
    return payload


def sample_config_text() -> str:
    """Render the default configuration as YAML."""
    payload = config_to_dict(Config())
    payload["output"]["base_directory"] = "."
    return yaml.safe_dump(payload, sort_keys=False, default_flow_style=False)


def save_config(path: Path) -> Path:
    """Write the sample configuration to ``path``."""
    path = Path(path)
    if path.suffix.lower() not in {".yml", ".yaml"}:
        raise ConfigError(f"Generated configuration must be YAML (.yml/.yaml): {path.name}")
    try:
        path.write_text(sample_config_text(), encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to write config file {path}: {exc}") from exc
    return path


def _find_config(directory: Path) -> Path | None:
    for name in CONFIG_SEARCH_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read config file {path}: {exc}") from exc
    if not text.strip():
        return {}

    if path.suffix.lower() == ".toml":
        try:
            return tomllib.loads(text)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc

    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _require_int(data: Dict[str, Any], key: str) -> int:
    value = _as_int(data.get(key))
    if value is None:
        raise ConfigError(f"'{key}' must be an integer")
    return value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return str(value)


def _as_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1", "on"}:
            return True
        if lowered in {"false", "no", "0", "off"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    if isinstance(value, (list, tuple)):
        result: List[str] = []
        for item in value:
            text = _as_str(item)
            if text:
                result.append(text)
        return result
    return []


__all__ = [
    "CliOverrides",
    "Config",
    "ConfigError",
    "FilterConfig",
    "GitConfig",
    "OutputConfig",
    "config_to_dict",
    "load_config",
    "merge_overrides",
    "sample_config_text",
    "save_config",
    "validate",
]
