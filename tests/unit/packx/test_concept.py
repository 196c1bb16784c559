from pathlib import Path

import pytest

from packx.concept import (
    ConceptRanker,
    KeywordScorer,
    auto_tune,
    estimate_tokens,
    file_weight,
    infer_extensions,
    seed_terms,
    select_keywords,
)
from packx.exceptions import InvalidInputError
from packx.models import Candidate, IndexedDocument, KeywordScore


def _doc(doc_id: str, content: str) -> IndexedDocument:
    return IndexedDocument(id=doc_id, path=Path("/repo") / doc_id, content=content)


def _candidates(root: Path, files: dict[str, str]) -> list[Candidate]:
    out = []
    for rel, content in files.items():
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
        out.append(Candidate(path=p, rel=rel, size=p.stat().st_size))
    return out


@pytest.mark.unit
def test_seed_terms_drop_single_characters() -> None:
    assert seed_terms("Error a Handling") == ["error", "handling"]


@pytest.mark.unit
@pytest.mark.parametrize(
    ("doc_id", "weight"),
    [
        ("src/app.ts", 1.0),
        ("docs/readme.md", 0.5),
        ("config/settings.yaml", 0.6),
        ("types/index.d.ts", 0.7),
        ("src/app.test.ts", 0.6),
        ("tests/test_app.py", 0.6),
    ],
)
def test_file_weight(doc_id: str, weight: float) -> None:
    assert file_weight(doc_id) == pytest.approx(weight)


@pytest.mark.unit
def test_select_keywords_puts_seeds_first_without_duplicates() -> None:
    ranked = [KeywordScore(term="error", score=9.0), KeywordScore(term="retry", score=5.0)]

    assert select_keywords(["error", "handling"], ranked, 3) == ["error", "handling", "retry"]


@pytest.mark.unit
def test_infer_extensions_counts_code_files_only() -> None:
    docs = [_doc("a.ts", ""), _doc("b.ts", ""), _doc("c.py", ""), _doc("d.md", "")]

    assert infer_extensions(docs) == ["ts", "py"]


@pytest.mark.unit
def test_scorer_boosts_query_related_terms() -> None:
    docs = [
        _doc("src/errors.ts", "function handleError(err) { reportError(err) }\nconst widget = 1"),
        _doc("src/other.ts", "const widget = 2"),
    ]

    ranked = [k.term for k in KeywordScorer().score(docs, ["error"])]

    assert ranked.index("error") < ranked.index("widget")


@pytest.mark.unit
def test_estimate_tokens_counts_clusters() -> None:
    doc = _doc("a.ts", "error\nok\nok\nok\nok\nok\nerror")

    assert estimate_tokens([doc], ["error"], 1) == 2 * 3 * 5
    assert estimate_tokens([doc], ["er"], 1) == 0


@pytest.mark.unit
def test_auto_tune_shrinks_to_floors_when_budget_is_tiny() -> None:
    content = "\n".join("error here" if i % 10 == 0 else "filler line" for i in range(200))
    docs = [_doc(f"f{i}.ts", content) for i in range(6)]

    tuned = auto_tune(docs, ["error", "here", "filler", "line"], max_tokens=10, lines=3, keyword_count=4, top_files=6)

    assert (tuned.lines, tuned.keywords, tuned.top_files) == (1, 2, 3)
    assert tuned.estimate > 8


@pytest.mark.unit
def test_auto_tune_keeps_parameters_within_budget() -> None:
    docs = [_doc("a.ts", "error\nok")]

    tuned = auto_tune(docs, ["error"], max_tokens=50_000, lines=2, keyword_count=4, top_files=8)
    disabled = auto_tune(docs, ["error"], max_tokens=0, lines=2, keyword_count=4, top_files=8)

    assert (tuned.lines, tuned.keywords, tuned.top_files) == (2, 4, 8)
    assert (disabled.lines, disabled.keywords, disabled.top_files, disabled.max_tokens) == (2, 4, 8, 0)


@pytest.mark.unit
def test_concept_ranker_prefers_query_related_files_and_terms(tmp_path: Path) -> None:
    candidates = _candidates(
        tmp_path,
        {
            "src/errors.ts": "// handle the error and log it\nexport function handleError(err) { logError(err) }\n",
            "src/boundary.tsx": "// error boundary for render failures\nclass ErrorBoundary extends Component {}\n",
            "src/api.ts": "export async function fetchData(url) { return fetch(url) }\n",
        },
    )

    result = ConceptRanker(keywords=4, top_files=2).run("error handling", candidates)

    assert result.keywords[:2] == ("error", "handling")
    assert "fetch" not in result.keywords
    assert "data" not in result.keywords
    assert {d.id for d in result.documents} == {"src/errors.ts", "src/boundary.tsx"}
    assert set(result.inferred_extensions) == {"ts", "tsx"}
    assert result.meta()["keywords_used"] == list(result.keywords)
    assert result.meta(inferred_applied=False)["inferred_extensions"] == []


@pytest.mark.unit
def test_concept_ranker_on_empty_corpus_returns_no_keywords() -> None:
    result = ConceptRanker().run("error handling", [])

    assert result.keywords == ()
    assert result.documents == ()
    assert result.seed_terms == ("error", "handling")


@pytest.mark.unit
def test_concept_ranker_rejects_blank_query() -> None:
    with pytest.raises(InvalidInputError):
        ConceptRanker().run("   ", [])


@pytest.mark.unit
def test_estimate_tokens_splits_only_on_newlines() -> None:
    trailing = _doc("a.ts", "error a b c d e f g h i j\n")
    form_feed = _doc("b.ts", "error a b c d e f g h i j\x0cnext")

    assert estimate_tokens([trailing], ["error"], 0) == 6
    assert estimate_tokens([form_feed], ["error"], 0) == 12
