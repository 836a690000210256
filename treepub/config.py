"""
config.py

Responsibility: Load publish settings into a typed, validated model.

Sources, lowest precedence first:
- built-in defaults
- an optional YAML file (a plain mapping, or YAML frontmatter at the top of a
  markdown file)
- environment variables (GitHub Actions conventions)

CLI flags are applied on top by `cli.py` via `dataclasses.replace`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml

from treepub.message import DEFAULT_COMMIT_MESSAGE
from treepub.store import CommitAuthor


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class PublishConfig:
    """Everything needed to publish one directory to one branch."""

    repository: str = ""
    token: str = field(default="", repr=False)
    branch: str = "gh-pages"
    base_branch: str | None = None
    source_dir: str = "dist"
    author: CommitAuthor = field(default_factory=CommitAuthor)
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    source_sha: str = ""
    max_workers: int = 8
    upload_attempts: int = 3
    allow_partial: bool = False
    force: bool = True
    api_base: str = "https://api.github.com"

    @property
    def owner(self) -> str:
        return split_repository(self.repository)[0]

    @property
    def repo_name(self) -> str:
        return split_repository(self.repository)[1]


def split_repository(value: str) -> tuple[str, str]:
    owner, sep, name = value.strip().partition("/")
    if not sep or not owner or not name or "/" in name:
        raise ConfigError(f"Repository must look like `owner/name`, got: {value!r}")
    return owner, name


def _parse_yaml_frontmatter(text: str) -> tuple[dict[str, Any] | None, str]:
    """
    If the markdown begins with YAML frontmatter delimited by '---', parse it.
    Returns (frontmatter_dict_or_none, remaining_markdown_text).
    """
    if not text.startswith("---\n"):
        return None, text

    end = text.find("\n---\n", 4)
    if end == -1:
        raise ConfigError("YAML frontmatter starts with '---' but no closing '---' was found.")

    fm_text = text[4:end]
    rest = text[end + len("\n---\n") :]
    try:
        data = yaml.safe_load(fm_text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML frontmatter: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("YAML frontmatter must be a mapping/object at the top level.")
    return data, rest


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.is_file():
        raise ConfigError(f"Config file does not exist or is not a file: {path}")
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e

    frontmatter, _rest = _parse_yaml_frontmatter(text)
    if frontmatter is not None:
        return frontmatter
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("Config file must be a mapping/object at the top level.")
    return data


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off", ""):
        return False
    raise ConfigError(f"`{key}` must be a boolean, got: {value!r}")


def _as_positive_int(value: Any, key: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"`{key}` must be an integer, got: {value!r}") from e
    if number < 1:
        raise ConfigError(f"`{key}` must be at least 1, got: {number}")
    return number


_ENV_KEYS = {
    "GITHUB_TOKEN": "token",
    "GITHUB_REPOSITORY": "repository",
    "PAGES_BRANCH": "branch",
    "BASE_BRANCH": "base_branch",
    "PUBLISH_DIR": "source_dir",
    "GITHUB_SHA": "source_sha",
    "GITHUB_API_URL": "api_base",
}


def load_config(path: str | Path | None = None, env: Mapping[str, str] | None = None) -> PublishConfig:
    """
    Build a `PublishConfig` from an optional config file and the environment.

    Recognised file keys: repository, branch, base_branch, source_dir,
    author.name, author.email, commit_message, max_workers, upload_attempts,
    allow_partial, force, api_base.
    """
    env = os.environ if env is None else env
    data: dict[str, Any] = _read_config_file(Path(path)) if path is not None else {}

    author_raw = data.get("author") or {}
    if not isinstance(author_raw, dict):
        raise ConfigError("`author` must be an object/mapping when provided.")

    values: dict[str, Any] = {
        key: data[key]
        for key in ("repository", "branch", "base_branch", "source_dir", "commit_message", "api_base")
        if data.get(key) is not None
    }
    for env_key, key in _ENV_KEYS.items():
        if env.get(env_key):
            values[key] = env[env_key]

    defaults = CommitAuthor()
    author = CommitAuthor(
        name=str(env.get("GIT_AUTHOR_NAME") or author_raw.get("name") or defaults.name).strip(),
        email=str(env.get("GIT_AUTHOR_EMAIL") or author_raw.get("email") or defaults.email).strip(),
    )

    config = PublishConfig(
        repository=str(values.get("repository", "")).strip(),
        token=str(values.get("token", "")),
        branch=str(values.get("branch", "gh-pages")).strip(),
        base_branch=(str(values["base_branch"]).strip() or None) if "base_branch" in values else None,
        source_dir=str(values.get("source_dir", "dist")),
        author=author,
        commit_message=str(values.get("commit_message", DEFAULT_COMMIT_MESSAGE)),
        source_sha=str(values.get("source_sha", "")),
        max_workers=_as_positive_int(data.get("max_workers", 8), "max_workers"),
        upload_attempts=_as_positive_int(data.get("upload_attempts", 3), "upload_attempts"),
        allow_partial=_as_bool(data.get("allow_partial", False), "allow_partial"),
        force=_as_bool(data.get("force", True), "force"),
        api_base=str(values.get("api_base", "https://api.github.com")),
    )
    validate_config(config)
    return config


def validate_config(config: PublishConfig) -> None:
    if not config.branch:
        raise ConfigError("`branch` must not be empty.")
    if config.repository:
        split_repository(config.repository)
    if config.max_workers < 1:
        raise ConfigError("`max_workers` must be at least 1.")
    if config.upload_attempts < 1:
        raise ConfigError("`upload_attempts` must be at least 1.")
