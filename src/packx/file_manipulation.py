from __future__ import annotations

import fnmatch
import os
import stat
import subprocess  # noqa: S404
from pathlib import Path
from typing import TYPE_CHECKING

from packx.config import DEFAULT_EXTENSIONS, IGNORED_DIRS, IGNORED_FILE_GLOBS, MAX_FILE_BYTES
from packx.exceptions import NoCandidatesError
from packx.logging import logger
from packx.models import Candidate

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence


def relpath(path: Path, root: Path) -> str:
    """Send the relative path of path from root.

    Args:
        path (Path): the path to "relativise"
        root (Path): the root to relativise from

    Returns:
        str: the relative path from root to path, with POSIX separators.
            If path is not under root, returns the original path as a string.
    """
    try:
        return str(path.relative_to(root)).replace("\\", "/")
    except ValueError:
        return str(path)


def parse_csv(values: Iterable[str] | str | None) -> list[str]:
    """Flatten comma-separated values, trimming blanks.

    Args:
        values (Iterable[str] | str | None): one CSV string or several (e.g. repeated CLI flags)

    Returns:
        list[str]: the non-empty items in order
    """
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    return [item.strip() for v in values for item in v.split(",") if item.strip()]


def normalize_extensions(exts: Iterable[str]) -> list[str]:
    """Lowercase extensions and give each a leading dot, keeping first-seen order.

    Args:
        exts (Iterable[str]): extensions such as `ts`, `.tsx` or `d.ts`

    Returns:
        list[str]: de-duplicated dotted extensions, e.g. `[".ts", ".tsx", ".d.ts"]`
    """
    out: dict[str, None] = {}
    for e in exts:
        e2 = e.strip().lower()
        if not e2:
            continue
        out[e2 if e2.startswith(".") else f".{e2}"] = None
    return list(out)


def is_regular_file(path: Path) -> bool:
    """Check if a file is regular.

    Args:
        path (Path): path to test.

    Returns:
        bool: True if the file is regular, False otherwise.
    """
    try:
        st = path.stat()
        return stat.S_ISREG(st.st_mode)
    except OSError:
        return False


def is_ignored(rel: str) -> bool:
    """Tell whether a root-relative path falls under the default ignore rules.

    Hidden entries, well-known build/cache directories and log-like files are ignored.

    Args:
        rel (str): POSIX path relative to the search root

    Returns:
        bool: True when the path must not become a candidate
    """
    parts = rel.split("/")
    if any(p.startswith(".") or p in IGNORED_DIRS for p in parts[:-1]):
        return True
    name = parts[-1]
    if name.startswith("."):
        return True
    return any(fnmatch.fnmatch(name, g) for g in IGNORED_FILE_GLOBS)


def git_ls_files(repo: Path) -> list[Path]:
    """List files git would consider under `repo`: tracked plus untracked, minus ignored.

    Args:
        repo (Path): a directory inside a git work tree

    Raises:
        FileNotFoundError: if `repo` is not inside a git work tree.
        subprocess.CalledProcessError: if `git` invocation fails.

    Returns:
        list[Path]: absolute file paths under `repo`
    """
    inside = subprocess.run(
        ["git", "rev-parse", "--is-inside-work-tree"],  # noqa: S607
        cwd=str(repo),
        text=True,
        capture_output=True,
        check=False,
    )
    if inside.returncode != 0 or inside.stdout.strip() != "true":
        msg = f"not a git work tree: {repo}"
        raise FileNotFoundError(msg)
    out = subprocess.run(
        ["git", "ls-files", "--cached", "--others", "--exclude-standard"],  # noqa: S607
        cwd=str(repo),
        text=True,
        capture_output=True,
        check=True,
    )
    files: list[Path] = []
    for line in out.stdout.splitlines():
        line = line.strip()  # noqa: PLW2901
        if not line:
            continue
        files.append((repo / line).resolve())
    return files


def walk_files(repo: Path) -> list[Path]:
    """Walk the directory tree rooted at `repo` and return a list of all files.

    Ignored and hidden directories are pruned during the walk.

    Args:
        repo (Path): the root directory to walk

    Returns:
        list[Path]: a list of all files found
    """
    results: list[Path] = []
    for root, dirs, files in os.walk(repo):
        dirs[:] = [d for d in dirs if d not in IGNORED_DIRS and not d.startswith(".")]
        for f in files:
            p = (Path(root) / f).resolve()
            if p.is_file():
                results.append(p)
    return results


def list_root_files(root: Path, *, use_git: bool = True) -> list[Path]:
    """List the files under one root, preferring git so `.gitignore` is honoured.

    Args:
        root (Path): an absolute directory
        use_git (bool): try `git ls-files` first when True

    Returns:
        list[Path]: absolute file paths
    """
    if use_git:
        try:
            return git_ls_files(root)
        except (OSError, subprocess.CalledProcessError) as e:
            logger.info("Falling back to filesystem walk: %s", e)
    return walk_files(root)


def has_extension(name: str, extensions: Sequence[str]) -> bool:
    """Suffix test that also accepts compound extensions such as `.d.ts`."""
    low = name.lower()
    return any(low.endswith(ext) for ext in extensions)


def discover_candidates(
    roots: Sequence[Path],
    *,
    extensions: Sequence[str] = (),
    exclude_extensions: Sequence[str] = (),
    ignore_globs: Sequence[str] = (),
    use_git: bool = True,
    cwd: Path | None = None,
) -> list[Candidate]:
    """Find candidate files under `roots` filtered by extension.

    Args:
        roots (Sequence[Path]): directories to search
        extensions (Sequence[str]): allowed extensions; defaults to common code/text files
        exclude_extensions (Sequence[str]): suffixes that disqualify a file (e.g. `d.ts`)
        ignore_globs (Sequence[str]): extra file-name globs to skip
        use_git (bool): use `git ls-files` when the root is a work tree
        cwd (Path | None): base for display paths, defaults to the current directory

    Raises:
        NoCandidatesError: if no file survives the filters

    Returns:
        list[Candidate]: candidates ordered by root, then relative path
    """
    base = (cwd or Path.cwd()).resolve()
    exts = normalize_extensions(extensions or DEFAULT_EXTENSIONS)
    excl = normalize_extensions(exclude_extensions)
    seen: set[Path] = set()
    out: list[Candidate] = []
    for root in roots:
        abs_root = Path(root).resolve()
        if not abs_root.is_dir():
            logger.warning("Skipping root %s: not a directory", abs_root)
            continue
        found: list[tuple[str, Path]] = []
        for f in list_root_files(abs_root, use_git=use_git):
            rel = relpath(f, abs_root)
            if is_ignored(rel) or any(fnmatch.fnmatch(f.name, g) for g in ignore_globs):
                continue
            if not has_extension(f.name, exts) or has_extension(f.name, excl):
                continue
            found.append((rel, f))
        for _rel, f in sorted(found, key=lambda item: item[0].lower()):
            if f in seen or not is_regular_file(f):
                continue
            try:
                size = f.stat().st_size
            except OSError as e:
                logger.warning("Skipping %s: %s", f, e)
                continue
            seen.add(f)
            out.append(Candidate(path=f, rel=relpath(f, base), size=size))
    if not out:
        raise NoCandidatesError
    logger.info("Discovered %s candidate file(s)", len(out))
    return out


def read_candidate(candidate: Candidate, max_bytes: int = MAX_FILE_BYTES) -> str | None:
    """Read a candidate's text, or None when it must be skipped.

    Oversized files are skipped silently. Read failures (deleted file, permission
    denied) are logged as warnings and never abort the run.

    Args:
        candidate (Candidate): the file to read
        max_bytes (int): size ceiling in bytes

    Returns:
        str | None: the decoded content, or None if skipped
    """
    if candidate.size > max_bytes:
        logger.debug("Skipping oversized file %s (%s bytes)", candidate.rel, candidate.size)
        return None
    try:
        return candidate.path.read_text(encoding="utf-8", errors="ignore")
    except OSError as e:
        logger.warning("Could not read file %s: %s", candidate.rel, e)
        return None


def read_text_capped(path: Path, max_chars: int) -> str:
    """Read `path` as UTF-8 and truncate to `max_chars`; unreadable files give an empty string."""
    try:
        with path.open(encoding="utf-8", errors="ignore") as fh:
            return fh.read(max_chars)
    except OSError as e:
        logger.warning("Could not read file %s: %s", path, e)
        return ""
