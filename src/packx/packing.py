from __future__ import annotations

from typing import TYPE_CHECKING

from packx.config import MAX_FILE_BYTES
from packx.context_windows import extract_context_windows
from packx.exceptions import NoMatchesError
from packx.file_manipulation import read_candidate
from packx.logging import logger
from packx.models import PackedFile, RunResult, RunStats
from packx.patterns import compile_literals

if TYPE_CHECKING:
    from collections.abc import Sequence

    from packx.models import Candidate, SearchSpec


def collect_matches(
    candidates: Sequence[Candidate],
    spec: SearchSpec,
    *,
    max_bytes: int = MAX_FILE_BYTES,
) -> RunResult:
    """Read each candidate once and keep the ones matching `spec`.

    A file is kept when it contains an include literal (always, in extensions-only
    mode) and no exclude literal. When `spec.context_lines` is set the kept content
    is narrowed to merged context windows.

    Args:
        candidates (Sequence[Candidate]): discovered files, in output order
        spec (SearchSpec): the search configuration
        max_bytes (int): files above this size are skipped without a warning

    Raises:
        NoMatchesError: if no candidate matched

    Returns:
        RunResult: the matched files in candidate order plus run statistics
    """
    include = compile_literals(spec.include_patterns, case_sensitive=spec.case_sensitive)
    exclude = compile_literals(spec.exclude_patterns, case_sensitive=spec.case_sensitive)

    files: list[PackedFile] = []
    oversized = unreadable = total_matches = total_windows = 0
    for cand in candidates:
        if cand.size > max_bytes:
            oversized += 1
            continue
        content = read_candidate(cand, max_bytes=max_bytes)
        if content is None:
            unreadable += 1
            continue
        if not spec.extensions_only and include is not None and not include.search(content):
            continue
        if exclude is not None and exclude.search(content):
            logger.debug("Excluded %s: contains an exclude string", cand.rel)
            continue

        windows = None
        if spec.context_lines is not None and include is not None:
            windows = tuple(extract_context_windows(content, include, spec.context_lines)) or None
            total_windows += len(windows or ())
            total_matches += sum(len(w.matches) for w in windows or ())
        files.append(PackedFile(path=cand.path, rel=cand.rel, content=content, windows=windows))

    stats = RunStats(
        candidates=len(candidates),
        matched=len(files),
        oversized=oversized,
        unreadable=unreadable,
        total_matches=total_matches,
        total_windows=total_windows,
    )
    if not files:
        raise NoMatchesError(candidates=len(candidates))
    logger.info("Matched %s of %s candidate file(s)", len(files), len(candidates))
    return RunResult(files=tuple(files), stats=stats, context_lines=spec.context_lines)
