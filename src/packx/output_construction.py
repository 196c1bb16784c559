from __future__ import annotations

import io
import json
import math
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from packx.config import OutputStyle

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from packx.models import ContextWindow, PackedFile, RunResult

WINDOW_SEPARATOR = "\n  ...\n"


def estimate_tokens(text: str) -> int:
    """Approximate token count: `ceil(len(text) / 4)`. Not a real tokenizer."""
    return math.ceil(len(text) / 4)


def format_context_windows(windows: Sequence[ContextWindow]) -> str:
    """Render windows as line-numbered text, separating windows with an ellipsis line.

    Args:
        windows (Sequence[ContextWindow]): merged windows of one file

    Returns:
        str: the rendered text (each line newline-terminated), or "" when there are no windows
    """
    out = io.StringIO()
    for idx, window in enumerate(windows):
        if idx:
            out.write(WINDOW_SEPARATOR)
        for offset, line in enumerate(window.lines):
            out.write(f"{window.start_line + offset:>6}│ {line}\n")
    return out.getvalue()


def _render_meta(meta: Mapping[str, object] | None) -> str:
    if not meta:
        return ""
    return json.dumps(meta, ensure_ascii=False, sort_keys=True)


def _xml_file_section(rec: PackedFile) -> str:
    if rec.windows is None:
        return f'<file path="{rec.rel}">\n{rec.content}\n</file>\n\n'
    return (
        f'<file path="{rec.rel}" matches="{rec.match_count}" windows="{len(rec.windows)}">\n'
        f"{format_context_windows(rec.windows)}</file>\n\n"
    )


def _markdown_file_section(rec: PackedFile) -> str:
    lang = PurePosixPath(rec.rel).suffix.lstrip(".") or "txt"
    if rec.windows is None:
        return f"### {rec.rel}\n\n```{lang}\n{rec.content}\n```\n\n"
    return (
        f"### {rec.rel}\n\n"
        f"**Matches:** {rec.match_count} | **Context windows:** {len(rec.windows)}\n\n"
        f"```{lang}\n{format_context_windows(rec.windows)}```\n\n"
    )


def render_file_section(rec: PackedFile, style: OutputStyle) -> str:
    """Render one file section in the requested style."""
    if style == OutputStyle.MARKDOWN:
        return _markdown_file_section(rec)
    return _xml_file_section(rec)


def build_xml(result: RunResult, *, meta: Mapping[str, object] | None = None) -> str:
    """Build the XML-like bundle.

    The bundle starts with a summary (file count, context radius, concept metadata
    when present), then a directory listing and one `<file>` element per matched file.

    Args:
        result (RunResult): the packing result
        meta (Mapping[str, object] | None): optional reproducibility metadata

    Returns:
        str: the bundle text
    """
    out = io.StringIO()
    out.write(
        "This file is a merged representation of the filtered codebase, "
        "combined into a single document by packx.\n\n",
    )
    out.write("<file_summary>\nThis section contains a summary of this file.\n\n")
    out.write(
        "<purpose>\nThis file contains a packed representation of filtered repository contents.\n"
        "It is designed to be easily consumable by AI systems for analysis, code review,\n"
        "or other automated processes.\n</purpose>\n\n",
    )
    out.write(
        "<usage_guidelines>\n- Treat this file as a snapshot of the repository's state\n"
        "- Be aware that this file may contain sensitive information\n</usage_guidelines>\n\n",
    )
    out.write("<notes>\n- Files were filtered by packx based on content and extension matching\n")
    out.write(f"- Total files included: {len(result.files)}")
    if result.context_lines is not None:
        out.write(f"\n- Context lines: {result.context_lines} lines around each match")
    out.write("\n</notes>\n")
    if meta:
        out.write(f"\n<pack_meta>\n{_render_meta(meta)}\n</pack_meta>\n")
    out.write("</file_summary>\n\n")

    out.write("<directory_structure>\n")
    out.write("\n".join(f.rel for f in result.files))
    out.write("\n</directory_structure>\n\n")

    out.write("<files>\nThis section contains the contents of the repository's files.\n\n")
    for rec in result.files:
        out.write(_xml_file_section(rec))
    out.write("</files>")
    return out.getvalue()


def build_markdown(result: RunResult, *, meta: Mapping[str, object] | None = None) -> str:
    """Build the Markdown bundle.

    Args:
        result (RunResult): the packing result
        meta (Mapping[str, object] | None): optional reproducibility metadata

    Returns:
        str: the bundle text
    """
    out = io.StringIO()
    out.write("# Packx Output\n\n")
    out.write(f"This file contains {len(result.files)} filtered files from the repository.")
    if result.context_lines is not None:
        out.write(f"\n\n**Context:** {result.context_lines} lines around each match")
    out.write("\n\n")
    if meta:
        out.write(f"## Pack metadata\n\n```json\n{_render_meta(meta)}\n```\n\n")
    out.write("## Directory structure\n\n```text\n")
    out.write("\n".join(f.rel for f in result.files))
    out.write("\n```\n\n## Files\n\n")
    for rec in result.files:
        out.write(_markdown_file_section(rec))
    return out.getvalue()


def build_output(result: RunResult, style: OutputStyle, *, meta: Mapping[str, object] | None = None) -> str:
    if style == OutputStyle.MARKDOWN:
        return build_markdown(result, meta=meta)
    return build_xml(result, meta=meta)


class FileSize(BaseModel):
    """Estimated size of one file's section in the bundle."""

    model_config = ConfigDict(frozen=True)

    rel: str
    chars: int
    tokens: int


class PackSummary(BaseModel):
    """Final statistics printed after a bundle is written."""

    model_config = ConfigDict(frozen=True)

    total_files: int
    total_chars: int
    total_tokens: int
    context_lines: int | None = None
    total_matches: int = 0
    total_windows: int = 0
    top_files: tuple[FileSize, ...] = Field(default=(), description="Largest sections first")


def summarize(output: str, result: RunResult, style: OutputStyle, *, top_n: int = 5) -> PackSummary:
    """Compute bundle statistics, including the `top_n` largest file sections.

    Args:
        output (str): the rendered bundle
        result (RunResult): the result it was rendered from
        style (OutputStyle): the style used (section sizes depend on it)
        top_n (int): how many files to rank

    Returns:
        PackSummary: totals and the size ranking
    """
    sizes = []
    for rec in result.files:
        section = render_file_section(rec, style)
        sizes.append(FileSize(rel=rec.rel, chars=len(section), tokens=estimate_tokens(section)))
    ranked = sorted(sizes, key=lambda s: s.chars, reverse=True)[: max(top_n, 0)]
    return PackSummary(
        total_files=len(result.files),
        total_chars=len(output),
        total_tokens=estimate_tokens(output),
        context_lines=result.context_lines,
        total_matches=result.stats.total_matches,
        total_windows=result.stats.total_windows,
        top_files=tuple(ranked),
    )


def render_summary(summary: PackSummary, output_path: str) -> str:
    """Human-readable summary block for the console."""
    lines = ["", "Pack Summary:", "─" * 16, f"  Total Files: {summary.total_files} files"]
    if summary.context_lines is not None:
        lines.append(f"  Context Lines: {summary.context_lines} around each match")
        lines.append(f"  Total Matches: {summary.total_matches} matches")
        lines.append(f"  Context Windows: {summary.total_windows} windows")
    lines.append(f"  Total Tokens: ~{summary.total_tokens:,} tokens")
    lines.append(f"  Total Chars: {summary.total_chars:,} chars")
    lines.append(f"       Output: {output_path}")
    if summary.top_files:
        lines.append("")
        lines.append(f"Top {len(summary.top_files)} files by estimated size:")
        lines.extend(
            f"  {idx}. {fs.rel} (~{fs.tokens:,} tokens, {fs.chars:,} chars)"
            for idx, fs in enumerate(summary.top_files, start=1)
        )
    return "\n".join(lines)
