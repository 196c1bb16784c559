from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from packx.config import CONFIG_SECTIONS, DEFAULT_CONFIG_TEMPLATE
from packx.exceptions import ConfigFileError, ConfigTemplateExistsError
from packx.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable

CONFIG_TEMPLATE = """\
# Pack configuration file
# Search for specific strings in your codebase
# Lines starting with # are comments
# Empty lines are ignored

[search]
# Add search strings here, one per line
# Examples:
# console.log
# TODO
# FIXME

[extensions]
# File extensions to include (without dots)
# Leave empty to search all common code files
# Examples:
# ts
# tsx
# py

[exclude]
# Patterns to exclude (matched from end of filename)
# Examples:
# d.ts
# test.ts
# spec.ts
# .min.js

[exclude-strings]
# Files containing any of these strings are dropped
# Examples:
# @generated
"""


class SearchConfig(BaseModel):
    """Search options read from a config file; merged with CLI values afterwards."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    search_terms: list[str] = Field(default_factory=list, description="Literal search strings")
    extensions: list[str] = Field(default_factory=list, description="Extensions to include")
    exclude_extensions: list[str] = Field(default_factory=list, description="Suffixes to exclude")
    exclude_strings: list[str] = Field(default_factory=list, description="Literals that drop a file")

    @field_validator("search_terms", "extensions", "exclude_extensions", "exclude_strings", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> list[str]:  # noqa: ANN401
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [str(v).strip() for v in value if v is not None and str(v).strip()]
        msg = f"expected a string or a list of strings, got {type(value).__name__}"
        raise ValueError(msg)


def parse_sectioned_text(lines: Iterable[str]) -> SearchConfig:
    """Parse the `[section]`-per-line format.

    Blank lines and `#` comments are skipped, values before the first known
    header are ignored, and unknown headers stop collection until the next known one.

    Args:
        lines (Iterable[str]): the file lines

    Returns:
        SearchConfig: the collected values
    """
    values: dict[str, list[str]] = {name: [] for name in set(CONFIG_SECTIONS.values())}
    current: str | None = None
    for raw in lines:
        s = raw.strip()
        if not s or s.startswith("#"):
            continue
        if s.startswith("[") and s.endswith("]"):
            current = CONFIG_SECTIONS.get(s[1:-1].strip().lower())
            if current is None:
                logger.warning("Ignoring unknown config section %s", s)
            continue
        if current is not None:
            values[current].append(s)
    return SearchConfig(**values)


def parse_yaml(text: str) -> SearchConfig:
    """Parse a YAML mapping using the same section names as the text format.

    Raises:
        ValueError: if the document is not a mapping or a key is unknown
    """
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        msg = "YAML config must be a mapping"
        raise ValueError(msg)  # noqa: TRY004
    values: dict[str, Any] = {}
    for key, val in data.items():
        field = CONFIG_SECTIONS.get(str(key).strip().lower())
        if field is None:
            msg = f"unknown config key: {key}"
            raise ValueError(msg)
        values[field] = val
    return SearchConfig(**values)


def load_search_config(path: Path) -> SearchConfig:
    """Read a search-config file (sectioned text, or YAML for `.yaml`/`.yml`).

    Args:
        path (Path): the config file

    Raises:
        ConfigFileError: if the file cannot be read or parsed

    Returns:
        SearchConfig: the parsed configuration
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigFileError(path=path, message=f"Error reading config file ({e.strerror or e})") from e
    try:
        if path.suffix.lower() in {".yaml", ".yml"}:
            return parse_yaml(text)
        return parse_sectioned_text(text.splitlines())
    except (yaml.YAMLError, ValidationError, ValueError) as e:
        raise ConfigFileError(path=path, message=f"Malformed config file ({e})") from e


def write_config_template(filename: str | Path = DEFAULT_CONFIG_TEMPLATE) -> Path:
    """Create a commented config template, refusing to overwrite.

    Raises:
        ConfigTemplateExistsError: if the target already exists

    Returns:
        Path: the created file
    """
    target = Path(filename)
    if target.exists():
        raise ConfigTemplateExistsError(path=target)
    target.write_text(CONFIG_TEMPLATE, encoding="utf-8")
    return target
