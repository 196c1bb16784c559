from __future__ import annotations

from collections import Counter
from functools import cached_property
from pathlib import Path
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

from packx.tokenizer import tokenize_content


class SearchSpec(BaseModel):
    """Immutable per-run search configuration.

    Attributes:
        include_patterns: Literal strings; a file is kept when it contains at least one.
        exclude_patterns: Literal strings; a file containing any of them is dropped.
        case_sensitive: Whether literals are matched case-sensitively.
        context_lines: Lines kept around each match; None keeps the whole file.
        extensions_only: Pass-through mode, every candidate matches.
    """

    model_config = ConfigDict(frozen=True)

    include_patterns: tuple[str, ...] = Field(default=(), description="Search literals")
    exclude_patterns: tuple[str, ...] = Field(default=(), description="Exclude literals")
    case_sensitive: bool = Field(default=False, description="Case-sensitive matching")
    context_lines: int | None = Field(default=None, ge=0, description="Context radius")
    extensions_only: bool = Field(default=False, description="Skip content matching")

    @model_validator(mode="after")
    def _require_patterns(self) -> Self:
        if not self.extensions_only and not any(self.include_patterns):
            msg = "At least one search string is required."
            raise ValueError(msg)
        return self


class Candidate(BaseModel):
    """A discovered file, before content filtering."""

    model_config = ConfigDict(frozen=True)

    path: Path = Field(..., description="Absolute file path")
    rel: str = Field(..., description="Display path (relative to the working directory when possible)")
    size: int = Field(..., ge=0, description="File size in bytes")

    @computed_field
    @property
    def extension(self) -> str:
        """Lowercased suffix without the dot (empty when the file has none)."""
        return self.path.suffix.lower().lstrip(".")


class MatchPosition(BaseModel):
    """One occurrence of a search literal."""

    model_config = ConfigDict(frozen=True)

    line: int = Field(..., ge=1, description="1-based line number")
    column: int = Field(..., ge=0, description="0-based column")
    match: str = Field(..., description="Matched text as it appears in the file")


class ContextWindow(BaseModel):
    """A contiguous, inclusive line range kept around one or more matches."""

    model_config = ConfigDict(frozen=True)

    start_line: int = Field(..., ge=1)
    end_line: int = Field(..., ge=1)
    lines: tuple[str, ...] = ()
    matches: tuple[MatchPosition, ...] = ()

    @model_validator(mode="after")
    def _check_bounds(self) -> Self:
        if self.start_line > self.end_line:
            msg = f"start_line {self.start_line} is after end_line {self.end_line}"
            raise ValueError(msg)
        for m in self.matches:
            if not self.start_line <= m.line <= self.end_line:
                msg = f"match on line {m.line} outside window [{self.start_line}, {self.end_line}]"
                raise ValueError(msg)
        return self


class IndexedDocument(BaseModel):
    """A file loaded for the concept ranker (content capped at load time)."""

    model_config = ConfigDict(frozen=True, ignored_types=(cached_property,))

    id: str = Field(..., description="Relative POSIX path, also the index key")
    path: Path = Field(..., description="Absolute file path")
    content: str = Field(default="", description="File content, possibly truncated")

    @cached_property
    def tokens(self) -> Counter[str]:
        """Token multiset of the content (camelCase/snake_case aware)."""
        return Counter(tokenize_content(self.content))


class KeywordScore(BaseModel):
    """A candidate keyword with its relevance score."""

    model_config = ConfigDict(frozen=True)

    term: str
    score: float


class PackedFile(BaseModel):
    """A matched file and what will be emitted for it."""

    model_config = ConfigDict(frozen=True)

    path: Path
    rel: str
    content: str
    windows: tuple[ContextWindow, ...] | None = Field(
        default=None,
        description="Context windows, or None to emit the whole file",
    )

    @property
    def match_count(self) -> int:
        return sum(len(w.matches) for w in self.windows or ())


class RunStats(BaseModel):
    """Counters accumulated during one packing run."""

    model_config = ConfigDict(frozen=True)

    candidates: int = 0
    matched: int = 0
    oversized: int = 0
    unreadable: int = 0
    total_matches: int = 0
    total_windows: int = 0


class RunResult(BaseModel):
    """Everything the output formatter needs; built once per run."""

    model_config = ConfigDict(frozen=True)

    files: tuple[PackedFile, ...] = ()
    stats: RunStats = Field(default_factory=RunStats)
    context_lines: int | None = None

    @property
    def matched_paths(self) -> list[Path]:
        return [f.path for f in self.files]
