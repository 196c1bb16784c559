from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field

from packx.config import DEFAULT_OUTPUT_STEM, OutputStyle

ENV_FILE = find_dotenv(usecwd=True)


def resolve_packx_bin() -> str:
    """Return `PACKX_BIN` from the environment or the nearest `.env` file ("" when unset)."""
    if ENV_FILE:
        load_dotenv(ENV_FILE, override=False)
    return os.environ.get("PACKX_BIN", "").strip()


class Settings(BaseModel):
    """Configuration settings for a packing run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    roots: list[Path] = Field(default_factory=lambda: [Path()], description="Directories to search.")
    strings: list[str] = Field(default_factory=list, description="Search strings.")
    extensions: list[str] = Field(default_factory=list, description="Extensions to include.")
    exclude_extensions: list[str] = Field(default_factory=list, description="Extensions to exclude.")
    exclude_strings: list[str] = Field(default_factory=list, description="Drop files containing these strings.")
    file: Path | None = Field(default=None, description="Search-config file.")
    context: int | None = Field(default=None, ge=0, description="Context lines around matches.")
    case_sensitive: bool = Field(default=False, description="Case-sensitive matching.")
    extensions_only: bool = Field(default=False, description="Pack every candidate, no string match.")
    preview: bool = Field(default=False, description="Only list matched files.")
    no_git: bool = Field(default=False, description="Do not use git ls-files.")
    output: Path | None = Field(default=None, description="Output file.")
    style: OutputStyle | None = Field(default=None, description="Output style.")
    log_file: str = Field(default="", description="Log file path.")
    meta: dict[str, Any] | None = Field(default=None, description="Metadata embedded in the bundle header.")

    def resolved_style(self) -> OutputStyle:
        """Explicit style, else markdown for a `.md` output, else XML."""
        if self.style is not None:
            return self.style
        if self.output is not None and self.output.suffix.lower() in {".md", ".markdown"}:
            return OutputStyle.MARKDOWN
        return OutputStyle.XML

    def resolved_output(self) -> Path:
        if self.output is not None:
            return self.output
        suffix = ".md" if self.resolved_style() == OutputStyle.MARKDOWN else ".xml"
        return Path(DEFAULT_OUTPUT_STEM + suffix)


class ConceptSettings(BaseModel):
    """Configuration settings for `packx concept`."""

    model_config = ConfigDict(frozen=True)

    query: str = Field(default="", description="Natural-language query.")
    keywords: int = Field(default=4, ge=1, description="Keywords to derive.")
    top_files: int = Field(default=8, ge=1, description="Working-set size.")
    max_tokens: int = Field(default=50_000, ge=0, description="Token budget (0 disables tuning).")
    preview: bool = Field(default=False, description="Print the derived parameters only.")
    log_file: str = Field(default="", description="Log file path.")
    pack_args: list[str] = Field(default_factory=list, description="Arguments after `--`.")
