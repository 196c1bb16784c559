from pathlib import Path

import pytest

from packx.models import IndexedDocument
from packx.search_index import FUZZY_WEIGHT, LexicalIndex, index_terms, levenshtein_distance, max_edit_distance


def _doc(doc_id: str, content: str) -> IndexedDocument:
    return IndexedDocument(id=doc_id, path=Path("/repo") / doc_id, content=content)


@pytest.mark.unit
def test_index_terms_split_on_punctuation() -> None:
    assert index_terms("Retry-policy: handle_error(x)") == ["retry", "policy", "handle", "error", "x"]


@pytest.mark.unit
def test_levenshtein_distance() -> None:
    assert levenshtein_distance("kitten", "sitting") == 3
    assert levenshtein_distance("", "abc") == 3
    assert levenshtein_distance("same", "same") == 0
    assert levenshtein_distance("abcdef", "uvwxyz", max_distance=2) == 3


@pytest.mark.unit
def test_max_edit_distance_rounds_half_up() -> None:
    assert max_edit_distance("auth", 0.2) == 1
    assert max_edit_distance("retries", 0.2) == 1
    assert max_edit_distance("token", 0.2) == 1
    assert max_edit_distance("ab", 0.2) == 0
    assert max_edit_distance("anything", 0) == 0


@pytest.mark.unit
def test_search_ranks_by_term_frequency() -> None:
    index = LexicalIndex()
    index.add_all(
        [
            _doc("a.py", "auth auth auth login"),
            _doc("b.py", "auth render"),
            _doc("c.py", "render view"),
        ],
    )

    hits = index.search("auth")

    assert [h.doc_id for h in hits] == ["a.py", "b.py"]
    assert hits[0].score > hits[1].score
    assert hits[0].terms == ("auth",)


@pytest.mark.unit
def test_fuzzy_expansion_matches_typos_with_lower_weight() -> None:
    index = LexicalIndex()
    index.add_all([_doc("exact.py", "token"), _doc("typo.py", "tokan")])

    expanded = dict(index.expand_term("token", 0.2))
    hits = index.search("token")

    assert expanded["token"] == 1.0
    assert expanded["tokan"] == pytest.approx(FUZZY_WEIGHT * 5 / 6)
    assert [h.doc_id for h in hits] == ["exact.py", "typo.py"]
    assert [h.doc_id for h in index.search("token", fuzzy=0)] == ["exact.py"]


@pytest.mark.unit
def test_search_limit_and_tie_order() -> None:
    index = LexicalIndex()
    index.add_all([_doc("first.py", "cache"), _doc("second.py", "cache"), _doc("third.py", "cache")])

    hits = index.search("cache", limit=2)

    assert [h.doc_id for h in hits] == ["first.py", "second.py"]


@pytest.mark.unit
def test_duplicate_ids_are_rejected() -> None:
    index = LexicalIndex()
    index.add(_doc("a.py", "x"))

    with pytest.raises(ValueError, match="duplicate"):
        index.add(_doc("a.py", "y"))


@pytest.mark.unit
def test_empty_index_returns_no_hits() -> None:
    assert LexicalIndex().search("anything") == []
    assert len(LexicalIndex()) == 0
