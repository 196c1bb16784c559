from pathlib import Path

import pytest

from packx.exceptions import NoMatchesError
from packx.models import Candidate, SearchSpec
from packx.packing import collect_matches


def _candidates(root: Path, files: dict[str, str]) -> list[Candidate]:
    out = []
    for rel, content in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
        out.append(Candidate(path=p, rel=rel, size=p.stat().st_size))
    return out


@pytest.mark.unit
def test_collect_matches_keeps_matching_files_in_order(tmp_path: Path) -> None:
    candidates = _candidates(
        tmp_path,
        {"a.ts": "const x = useState(0)", "b.ts": "nothing here", "c.ts": "USESTATE"},
    )

    result = collect_matches(candidates, SearchSpec(include_patterns=("useState",)))

    assert [f.rel for f in result.files] == ["a.ts", "c.ts"]
    assert all(f.windows is None for f in result.files)
    assert result.stats.candidates == 3
    assert result.stats.matched == 2


@pytest.mark.unit
def test_collect_matches_honours_case_sensitivity(tmp_path: Path) -> None:
    candidates = _candidates(tmp_path, {"a.ts": "useState", "c.ts": "USESTATE"})

    result = collect_matches(candidates, SearchSpec(include_patterns=("useState",), case_sensitive=True))

    assert [f.rel for f in result.files] == ["a.ts"]


@pytest.mark.unit
def test_collect_matches_drops_files_with_exclude_strings(tmp_path: Path) -> None:
    candidates = _candidates(tmp_path, {"gen.ts": "// @generated\nfoo", "src.ts": "foo"})

    result = collect_matches(candidates, SearchSpec(include_patterns=("foo",), exclude_patterns=("@generated",)))

    assert [f.rel for f in result.files] == ["src.ts"]


@pytest.mark.unit
def test_collect_matches_builds_windows_and_counts(tmp_path: Path) -> None:
    content = "\n".join("foo" if i in {5, 11} else f"line {i}" for i in range(1, 21))
    candidates = _candidates(tmp_path, {"a.py": content})

    result = collect_matches(candidates, SearchSpec(include_patterns=("foo",), context_lines=2))

    windows = result.files[0].windows or ()
    assert [(w.start_line, w.end_line) for w in windows] == [(3, 7), (9, 13)]
    assert result.stats.total_windows == 2
    assert result.stats.total_matches == 2
    assert result.context_lines == 2


@pytest.mark.unit
def test_collect_matches_extensions_only_keeps_everything(tmp_path: Path) -> None:
    candidates = _candidates(tmp_path, {"a.ts": "alpha", "b.ts": "beta"})

    result = collect_matches(candidates, SearchSpec(extensions_only=True, context_lines=3))

    assert [f.rel for f in result.files] == ["a.ts", "b.ts"]
    assert all(f.windows is None for f in result.files)


@pytest.mark.unit
def test_collect_matches_skips_oversized_files(tmp_path: Path) -> None:
    candidates = _candidates(tmp_path, {"big.ts": "foo" * 10, "small.ts": "foo"})

    result = collect_matches(candidates, SearchSpec(include_patterns=("foo",)), max_bytes=5)

    assert [f.rel for f in result.files] == ["small.ts"]
    assert result.stats.oversized == 1


@pytest.mark.unit
def test_collect_matches_raises_when_nothing_matches(tmp_path: Path) -> None:
    candidates = _candidates(tmp_path, {"a.ts": "alpha"})

    with pytest.raises(NoMatchesError) as excinfo:
        collect_matches(candidates, SearchSpec(include_patterns=("zzz",)))

    assert excinfo.value.candidates == 1
    assert excinfo.value.exit_code == 3


@pytest.mark.unit
def test_search_spec_requires_patterns_unless_extensions_only() -> None:
    with pytest.raises(ValueError, match="search string"):
        SearchSpec()
    assert SearchSpec(extensions_only=True).include_patterns == ()


@pytest.mark.unit
def test_extensions_only_with_context_keeps_unmatched_files_whole(tmp_path: Path) -> None:
    candidates = _candidates(tmp_path, {"a.py": "nothing here\n", "b.py": "x\nneedle\ny\nz\n"})

    result = collect_matches(
        candidates,
        SearchSpec(include_patterns=("needle",), extensions_only=True, context_lines=1),
    )

    whole, windowed = result.files
    assert whole.windows is None
    assert whole.content == "nothing here\n"
    assert [(w.start_line, w.end_line) for w in windowed.windows or ()] == [(1, 3)]
    assert result.stats.total_windows == 1
