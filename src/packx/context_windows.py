"""Match scanning and context-window extraction.

A window is built per match (`radius` lines on each side, clipped to the file),
then windows are swept in order and merged whenever the next one starts on or
before the line right after the current one ends. Two windows separated by a
single untouched line therefore stay apart, while touching windows fuse.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from packx.models import ContextWindow, MatchPosition

if TYPE_CHECKING:
    from collections.abc import Sequence

    from packx.patterns import LiteralMatcher


def split_lines(content: str) -> list[str]:
    """Split content on `\\n` only, keeping a trailing empty line if present."""
    return content.split("\n")


def find_all_matches(content: str, matcher: LiteralMatcher) -> list[MatchPosition]:
    """Enumerate every match of `matcher`, ordered by line then column.

    Args:
        content (str): the file content
        matcher (LiteralMatcher): compiled include literals

    Returns:
        list[MatchPosition]: one entry per non-overlapping occurrence
    """
    if not content:
        return []
    matches: list[MatchPosition] = []
    for lineno, line in enumerate(split_lines(content), start=1):
        matches.extend(MatchPosition(line=lineno, column=m.start(), match=m.group(0)) for m in matcher.finditer(line))
    return matches


def merge_windows(windows: Sequence[ContextWindow], lines: Sequence[str]) -> list[ContextWindow]:
    """Merge touching or overlapping windows into a non-adjacent cover.

    Args:
        windows (Sequence[ContextWindow]): windows over `lines`, in any order
        lines (Sequence[str]): the file lines the windows refer to

    Returns:
        list[ContextWindow]: windows sorted by start line, pairwise separated by at least one line
    """
    merged: list[ContextWindow] = []
    start = end = 0
    acc: list[MatchPosition] = []
    current = False
    for w in sorted(windows, key=lambda win: win.start_line):
        if current and w.start_line <= end + 1:
            end = max(end, w.end_line)
            acc.extend(w.matches)
            continue
        if current:
            merged.append(_window(lines, start, end, acc))
        start, end, acc, current = w.start_line, w.end_line, list(w.matches), True
    if current:
        merged.append(_window(lines, start, end, acc))
    return merged


def build_context_windows(
    lines: Sequence[str],
    matches: Sequence[MatchPosition],
    radius: int,
) -> list[ContextWindow]:
    """Build merged context windows for `matches` over `lines`.

    Args:
        lines (Sequence[str]): the file split into lines (line 1 is `lines[0]`)
        matches (Sequence[MatchPosition]): matches ordered by line
        radius (int): lines of context on each side of a match

    Raises:
        ValueError: if `radius` is negative

    Returns:
        list[ContextWindow]: merged windows; empty when there are no matches
    """
    if radius < 0:
        msg = f"context radius must be non-negative, got {radius}"
        raise ValueError(msg)
    if not matches:
        return []
    last = len(lines)
    candidates = [
        _window(lines, max(1, m.line - radius), min(last, m.line + radius), [m])
        for m in matches
    ]
    return merge_windows(candidates, lines)


def extract_context_windows(content: str, matcher: LiteralMatcher, radius: int) -> list[ContextWindow]:
    """Scan `content` and return the merged windows around every match."""
    lines = split_lines(content)
    return build_context_windows(lines, find_all_matches(content, matcher), radius)


def _window(lines: Sequence[str], start: int, end: int, matches: Sequence[MatchPosition]) -> ContextWindow:
    return ContextWindow(
        start_line=start,
        end_line=end,
        lines=tuple(lines[start - 1 : end]),
        matches=tuple(matches),
    )
