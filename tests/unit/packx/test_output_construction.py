from pathlib import Path

import pytest

from packx.config import OutputStyle
from packx.models import ContextWindow, MatchPosition, PackedFile, RunResult, RunStats
from packx.output_construction import (
    build_markdown,
    build_output,
    build_xml,
    estimate_tokens,
    format_context_windows,
    render_summary,
    summarize,
)


def _windowed_result() -> RunResult:
    windows = (
        ContextWindow(
            start_line=3,
            end_line=4,
            lines=("before", "foo()"),
            matches=(MatchPosition(line=4, column=0, match="foo"),),
        ),
        ContextWindow(
            start_line=9,
            end_line=9,
            lines=("foo again",),
            matches=(MatchPosition(line=9, column=0, match="foo"),),
        ),
    )
    rec = PackedFile(path=Path("/repo/src/app.py"), rel="src/app.py", content="unused", windows=windows)
    return RunResult(files=(rec,), stats=RunStats(total_matches=2, total_windows=2), context_lines=1)


def _whole_file_result() -> RunResult:
    rec = PackedFile(path=Path("/repo/a.ts"), rel="a.ts", content="const foo = 1;")
    return RunResult(files=(rec,))


@pytest.mark.unit
@pytest.mark.parametrize(("text", "tokens"), [("", 0), ("abc", 1), ("abcd", 1), ("abcde", 2)])
def test_estimate_tokens_is_ceil_of_quarter_length(text: str, tokens: int) -> None:
    assert estimate_tokens(text) == tokens


@pytest.mark.unit
def test_format_context_windows_numbers_lines_and_separates_windows() -> None:
    rendered = format_context_windows(_windowed_result().files[0].windows or ())

    assert rendered == "     3│ before\n     4│ foo()\n\n  ...\n     9│ foo again\n"


@pytest.mark.unit
def test_xml_bundle_lists_files_and_window_counts() -> None:
    out = build_xml(_windowed_result())

    assert "- Context lines: 1 lines around each match" in out
    assert "<directory_structure>\nsrc/app.py\n</directory_structure>" in out
    assert '<file path="src/app.py" matches="2" windows="2">' in out
    assert out.endswith("</files>")
    assert "<pack_meta>" not in out


@pytest.mark.unit
def test_xml_bundle_embeds_whole_file_and_meta() -> None:
    out = build_xml(_whole_file_result(), meta={"mode": "concept", "keywords_used": ["foo"]})

    assert '<file path="a.ts">\nconst foo = 1;\n</file>' in out
    assert '<pack_meta>\n{"keywords_used": ["foo"], "mode": "concept"}\n</pack_meta>' in out
    assert "Context lines" not in out


@pytest.mark.unit
def test_markdown_bundle_uses_fenced_blocks() -> None:
    out = build_markdown(_windowed_result())

    assert out.startswith("# Packx Output\n")
    assert "**Context:** 1 lines around each match" in out
    assert "### src/app.py" in out
    assert "**Matches:** 2 | **Context windows:** 2" in out
    assert "```py\n     3│ before" in out


@pytest.mark.unit
def test_build_output_dispatches_on_style() -> None:
    result = _whole_file_result()

    assert build_output(result, OutputStyle.MARKDOWN).startswith("# Packx Output")
    assert build_output(result, OutputStyle.XML).startswith("This file is a merged representation")


@pytest.mark.unit
def test_summary_ranks_largest_sections() -> None:
    small = PackedFile(path=Path("/r/s.py"), rel="s.py", content="x")
    big = PackedFile(path=Path("/r/b.py"), rel="b.py", content="y" * 400)
    result = RunResult(files=(small, big))
    output = build_output(result, OutputStyle.XML)

    summary = summarize(output, result, OutputStyle.XML, top_n=1)
    text = render_summary(summary, "out.xml")

    assert summary.total_files == 2
    assert summary.total_tokens == estimate_tokens(output)
    assert [f.rel for f in summary.top_files] == ["b.py"]
    assert "Pack Summary:" in text
    assert "Top 1 files by estimated size:" in text
    assert "1. b.py" in text
    assert "Context Lines" not in text
