"""packx: filter a repository by extension and substring match, then bundle the matches.

Usage
-----
Run `packx --help` for the full option list. Common examples:
    - Bundle every file mentioning TODO or FIXME:
        packx -s TODO -s FIXME
    - Only TypeScript, skipping declaration files, 10 lines of context:
        packx -s useState -e ts,tsx -x d.ts -c 10 -o hooks.md
    - Read search options from a config file:
        packx init my-search.txt && packx -f my-search.txt
    - Let packx derive the search strings from a question:
        packx concept "error handling" --max-tokens 20000 -- -o errors.xml
"""

from __future__ import annotations

import argparse
import base64
import binascii
import json
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, NoReturn

from pydantic import ValidationError

from packx import __version__
from packx.concept import ConceptRanker
from packx.config import (
    CONCEPT_DEFAULT_EXCLUDES,
    CONCEPT_EXTENSIONS,
    CONCEPT_IGNORED_FILE_GLOBS,
    DEFAULT_CONFIG_TEMPLATE,
    OutputStyle,
)
from packx.exceptions import ExitCode, InvalidInputError, NoCandidatesError, NoMatchesError, PackxError
from packx.file_manipulation import discover_candidates, parse_csv
from packx.logging import logger, setup_logging
from packx.models import SearchSpec
from packx.output_construction import build_output, render_summary, summarize
from packx.packing import collect_matches
from packx.runner import SubprocessRunner, build_command, quote_command
from packx.search_config import SearchConfig, load_search_config, write_config_template
from packx.settings import ConceptSettings, Settings, resolve_packx_bin

if TYPE_CHECKING:
    from collections.abc import Sequence

    from packx.concept import ConceptResult
    from packx.runner import ProcessRunner

EPILOG = """\
commands:
  init [filename]     create a config file template (default: pack-config.txt)
  concept <query>     derive search strings from a query, then pack (see `packx concept -h`)

config file format:
  [search]            one search string per line
  [extensions]        extensions to include, without dots
  [exclude]           suffixes to exclude (e.g. d.ts)
  [exclude-strings]   files containing any of these strings are dropped
  Lines starting with # are comments; empty lines are ignored.
  A .yaml/.yml file with the same keys is accepted too.

exit status:
  0 success, 1 invalid input, 2 no candidate files, 3 no matching files
"""


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser reporting usage errors as `InvalidInputError` (exit status 1)."""

    def error(self, message: str) -> NoReturn:
        raise InvalidInputError(message=f"{self.prog}: error: {message}")


def now_iso() -> str:
    """Return the current date and time in ISO 8601 format with timezone.

    Returns:
        str: the current date and time in ISO 8601 format with timezone
    """
    return datetime.now(UTC).astimezone().isoformat(timespec="seconds")


def split_args_on_dash_dash(args: Sequence[str]) -> tuple[list[str], list[str]]:
    """Split `args` at the first `--` into (own args, pass-through args)."""
    args = list(args)
    if "--" not in args:
        return args, []
    idx = args.index("--")
    return args[:idx], args[idx + 1 :]


def encode_meta(meta: dict[str, object]) -> str:
    return base64.b64encode(json.dumps(meta, ensure_ascii=False).encode("utf-8")).decode("ascii")


def decode_meta(value: str) -> dict[str, object]:
    """Decode a `--meta-header` value (base64 of a JSON object).

    Raises:
        InvalidInputError: if the value is not base64-encoded JSON
    """
    try:
        data = json.loads(base64.b64decode(value, validate=True).decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidInputError(message=f"Invalid --meta-header value: {e}") from e
    if not isinstance(data, dict):
        raise InvalidInputError(message="Invalid --meta-header value: expected a JSON object")
    return data


def build_parser() -> argparse.ArgumentParser:
    p = _ArgumentParser(
        prog="packx",
        description="Filter your repo by extension + substring match, then bundle the matches for an LLM.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    p.add_argument("roots", nargs="*", type=Path, default=[Path()], help="Directories to search (default: .).")
    p.add_argument(
        "-s",
        "--strings",
        action="append",
        default=[],
        help="Search string (repeatable); any characters are matched literally.",
    )
    p.add_argument(
        "-e",
        "--extensions",
        action="append",
        default=[],
        help="Extensions to include (repeatable or comma-separated; defaults to common code files).",
    )
    p.add_argument(
        "-x",
        "--exclude-extensions",
        action="append",
        default=[],
        help="Suffixes to exclude, matched from the end of the file name (e.g. d.ts).",
    )
    p.add_argument(
        "-X",
        "--exclude-strings",
        action="append",
        default=[],
        help="Drop files containing this string (repeatable).",
    )
    p.add_argument("-f", "--file", type=Path, default=None, help="Read search options from a config file.")
    p.add_argument(
        "-c",
        "--context",
        "-l",
        "--lines",
        dest="context",
        type=int,
        default=None,
        help="Lines of context around matches (default: whole file).",
    )
    p.add_argument("--case-sensitive", action="store_true", help="Match search strings case-sensitively.")
    p.add_argument(
        "--extensions-only",
        action="store_true",
        help="Pack every file with a matching extension, without string matching.",
    )
    p.add_argument("--preview", action="store_true", help="Only list matched files (no packing).")
    p.add_argument("--no-git", action="store_true", help="Do not use git ls-files for discovery.")
    p.add_argument("-o", "--output", type=Path, default=None, help="Output file.")
    p.add_argument(
        "--style",
        choices=[s.value for s in OutputStyle],
        default=None,
        help="Output style (default: markdown for .md outputs, else xml).",
    )
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    p.add_argument("--meta-header", type=str, default="", help=argparse.SUPPRESS)
    p.add_argument("-v", "--version", action="version", version=f"packx v{__version__}")
    return p


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse pack arguments into validated `Settings`.

    Raises:
        InvalidInputError: on usage errors or invalid values
    """
    args = build_parser().parse_args(argv)
    values = vars(args)
    meta_header = values.pop("meta_header")
    try:
        settings = Settings(**values)
    except ValidationError as e:
        raise InvalidInputError(message=f"Invalid arguments: {e.errors()[0]['msg']}") from e
    if meta_header:
        return settings.model_copy(update={"meta": decode_meta(meta_header)})
    return settings


def build_concept_parser() -> argparse.ArgumentParser:
    p = _ArgumentParser(
        prog="packx concept",
        description="Derive search strings from a natural-language query, then pack the matches.",
        epilog="Arguments after `--` are passed to the pack step (e.g. -- -o out.md --style markdown).",
    )
    p.add_argument("query", nargs="*", help="Search query (words are joined with spaces).")
    p.add_argument("-k", "--keywords", type=int, default=4, help="Number of keywords to search for.")
    p.add_argument("-t", "--top-files", type=int, default=8, help="Number of top-ranked files to learn from.")
    p.add_argument(
        "-m",
        "--max-tokens",
        type=int,
        default=50_000,
        help="Approximate token budget for auto-tuning (0 disables).",
    )
    p.add_argument("--preview", action="store_true", help="Print derived parameters without packing.")
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    return p


def parse_concept_args(argv: Sequence[str]) -> ConceptSettings:
    """Parse `packx concept` arguments; everything after `--` is kept for the pack step.

    Raises:
        InvalidInputError: on usage errors or invalid values
    """
    own, pack_args = split_args_on_dash_dash(argv)
    args = build_concept_parser().parse_args(own)
    try:
        return ConceptSettings(
            query=" ".join(args.query).strip(),
            keywords=args.keywords,
            top_files=args.top_files,
            max_tokens=args.max_tokens,
            preview=args.preview,
            log_file=args.log_file,
            pack_args=pack_args,
        )
    except ValidationError as e:
        raise InvalidInputError(message=f"Invalid arguments: {e.errors()[0]['msg']}") from e


def resolve_search(settings: Settings) -> tuple[SearchSpec, list[str], list[str]]:
    """Merge config-file and CLI values into a `SearchSpec` and the extension filters.

    Config values come first and CLI values are appended; provenance does not
    change behavior.

    Raises:
        InvalidInputError: if no search string is given outside extensions-only mode
        ConfigFileError: if the config file cannot be read or parsed

    Returns:
        tuple[SearchSpec, list[str], list[str]]: the spec, included and excluded extensions
    """
    config = load_search_config(settings.file) if settings.file else SearchConfig()
    strings = [s for s in [*config.search_terms, *settings.strings] if s]
    if not strings and not settings.extensions_only:
        raise InvalidInputError(
            message=(
                "At least one search string is required.\n"
                "   Example: packx -s 'foo' -s 'bar'\n"
                "   Or use a config file: packx init my-search.txt"
            ),
        )
    spec = SearchSpec(
        include_patterns=tuple(dict.fromkeys(strings)),
        exclude_patterns=tuple(dict.fromkeys(s for s in [*config.exclude_strings, *settings.exclude_strings] if s)),
        case_sensitive=settings.case_sensitive,
        context_lines=settings.context,
        extensions_only=settings.extensions_only,
    )
    extensions = parse_csv([*config.extensions, *settings.extensions])
    exclude_extensions = parse_csv([*config.exclude_extensions, *settings.exclude_extensions])
    return spec, extensions, exclude_extensions


def run_pack(settings: Settings) -> int:
    """Discover, filter, window and write the bundle.

    Raises:
        InvalidInputError: if the search options are unusable
        NoCandidatesError: if no file has a selected extension
        NoMatchesError: if no candidate matches

    Returns:
        int: the exit status (0)
    """
    spec, extensions, exclude_extensions = resolve_search(settings)
    candidates = discover_candidates(
        settings.roots,
        extensions=extensions,
        exclude_extensions=exclude_extensions,
        use_git=not settings.no_git,
    )
    result = collect_matches(candidates, spec)

    if settings.preview:
        print("Matched files:")
        for path in result.matched_paths:
            print(path)
        print(f"\nTotal: {len(result.files)} file(s).")
        return ExitCode.OK

    style = settings.resolved_style()
    out_path = settings.resolved_output()
    print(f"Packing {len(result.files)} file(s)...")
    if spec.context_lines is not None:
        print(f"Extracting {spec.context_lines} lines of context around matches...")

    content = build_output(result, style, meta=settings.meta)
    out_path.write_text(content, encoding="utf-8")
    print(f"\nSuccessfully packed {len(result.files)} file(s) to {out_path}")
    print(render_summary(summarize(content, result, style), str(out_path)))
    logger.info("Wrote bundle", output=str(out_path), style=str(style), files=len(result.files))
    return ExitCode.OK


def concept_pack_args(result: ConceptResult, pack: Settings, pack_args: Sequence[str]) -> list[str]:
    """Build pack arguments from a concept result, keeping user-supplied options.

    Derived `-e`, `-x` and `-c` values are only added when the pass-through
    arguments do not already set them.
    """
    args: list[str] = []
    for kw in result.keywords:
        args.append(f"--strings={kw}")
    if not pack.extensions and result.inferred_extensions:
        args.extend(["-e", ",".join(result.inferred_extensions)])
    if not pack.exclude_extensions:
        args.extend(["-x", ",".join(CONCEPT_DEFAULT_EXCLUDES)])
    if pack.context is None:
        args.extend(["-c", str(result.tuned.lines)])
    return [*args, *pack_args]


def print_concept_preview(result: ConceptResult, pack: Settings, concept: ConceptSettings) -> None:
    print("\nPreview (no bundling performed)")
    print("Keywords:", ", ".join(result.keywords))
    print("Top files:")
    for doc in result.documents:
        print(f" - {doc.id}")
    if result.inferred_extensions:
        print("Inferred extensions:", ", ".join(result.inferred_extensions))
    if concept.pack_args:
        print("Pack flags passthrough:", " ".join(concept.pack_args))
    if not pack.extensions and result.inferred_extensions:
        print("Note: No -e/--extensions provided; inferred extensions would be applied.")
    if not pack.exclude_extensions:
        excludes = ",".join(CONCEPT_DEFAULT_EXCLUDES)
        print(f'Note: No -x/--exclude-extensions provided; default exclude "{excludes}" would be applied.')
    if pack.context is None:
        print(f'Note: No -c/--context provided; default lines "{result.tuned.lines}" would be applied.')
    if concept.max_tokens > 0:
        t = result.tuned
        print(
            f"Auto-tune target: <= {concept.max_tokens} tokens "
            f"(lines={t.lines}, keywords={t.keywords}, top_files={t.top_files})",
        )


def run_concept(concept: ConceptSettings, *, runner: ProcessRunner | None = None) -> int:
    """Run concept mode: rank, derive pack arguments, then pack in-process or via `PACKX_BIN`.

    Raises:
        InvalidInputError: if the query is empty or the pass-through arguments are invalid
        NoMatchesError: if the corpus yields no keywords

    Returns:
        int: the exit status of the pack step
    """
    if not concept.query:
        raise InvalidInputError(
            message=(
                "Please provide a search string for concept mode.\n"
                "Usage: packx concept <search string> [--keywords N] [--top-files M] [--preview] -- [pack flags]"
            ),
        )
    pack = parse_args(concept.pack_args)
    print(f'Extracting concepts related to: "{concept.query}"')
    try:
        candidates = discover_candidates(
            pack.roots,
            extensions=CONCEPT_EXTENSIONS,
            ignore_globs=CONCEPT_IGNORED_FILE_GLOBS,
            use_git=not pack.no_git,
        )
    except NoCandidatesError:
        candidates = []
    print(f"Found {len(candidates)} files to index")

    ranker = ConceptRanker(
        keywords=concept.keywords,
        top_files=concept.top_files,
        max_tokens=concept.max_tokens,
        lines=pack.context or 2,
    )
    result = ranker.run(concept.query, candidates)

    if concept.preview:
        print_concept_preview(result, pack, concept)
        return ExitCode.OK
    if not result.keywords:
        raise NoMatchesError(candidates=len(candidates), message="No files matched the concept query.")

    args = concept_pack_args(result, pack, concept.pack_args)
    meta = {
        **result.meta(inferred_applied=not pack.extensions),
        "pack_args": list(concept.pack_args),
        "cwd": str(Path.cwd()),
        "timestamp": now_iso(),
    }

    binary = resolve_packx_bin()
    if binary:
        argv = build_command(binary, args)
        meta["exact_command"] = quote_command(argv)
        argv = [*argv, f"--meta-header={encode_meta(meta)}"]
        print(f"Running (PACKX_BIN): {meta['exact_command']}")
        return (runner or SubprocessRunner()).run(argv)

    meta["exact_command"] = quote_command(["packx", *args])
    print(f"Running: {meta['exact_command']}")
    settings = parse_args([*args, f"--meta-header={encode_meta(meta)}"])
    return run_pack(settings)


def run_init(argv: Sequence[str]) -> int:
    """Write a config template (`packx init [filename]`)."""
    filename = argv[0] if argv else DEFAULT_CONFIG_TEMPLATE
    target = write_config_template(filename)
    print(f"Created config template: {target}")
    print("\nEdit the file and then run:")
    print(f"  packx -f {target}")
    return ExitCode.OK


def main(argv: Sequence[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        if args and args[0] == "init":
            return run_init(args[1:])
        if args and args[0] == "concept":
            concept = parse_concept_args(args[1:])
            if concept.log_file:
                setup_logging(concept.log_file)
            return run_concept(concept)
        settings = parse_args(args)
        if settings.log_file:
            setup_logging(settings.log_file)
        return run_pack(settings)
    except PackxError as e:
        logger.warning("Run stopped", reason=str(e), exit_code=int(e.exit_code))
        print(str(e), file=sys.stderr)
        return int(e.exit_code)
    except Exception:
        logger.exception("Unexpected error")
        return ExitCode.UNEXPECTED


if __name__ == "__main__":
    raise SystemExit(main())
