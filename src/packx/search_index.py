"""In-memory lexical index used to pick the working set for concept mode.

Documents are indexed on a single `content` field. Terms come from splitting on
whitespace and punctuation and lowercasing; identifiers are not broken apart
here (that is the keyword tokenizer's job). Ranking is BM25+ with optional
typo-tolerant term expansion:

- a query term of length `n` also matches vocabulary terms within
  `round(fuzzy * n)` edits,
- fuzzy hits are discounted by `FUZZY_WEIGHT * n / (n + distance)`,
- the field score is multiplied by the field boost.
"""

from __future__ import annotations

import math
import re
from collections import Counter, defaultdict
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from packx.models import IndexedDocument

FUZZY_WEIGHT = 0.45

_TERM_SPLIT = re.compile(r"[\s\W_]+", re.UNICODE)


def index_terms(text: str) -> list[str]:
    """Split `text` into lowercase index terms."""
    return [t for t in _TERM_SPLIT.split(text.lower()) if t]


def levenshtein_distance(s1: str, s2: str, max_distance: int | None = None) -> int:
    """Calculate the Levenshtein (edit) distance between two strings.

    Args:
        s1: First string.
        s2: Second string.
        max_distance: If provided, return max_distance+1 as soon as the distance
            is guaranteed to exceed it.

    Returns:
        The minimum number of single-character insertions, deletions or
        substitutions turning s1 into s2 (capped at max_distance+1).

    Examples:
        >>> levenshtein_distance("kitten", "sitting")
        3
        >>> levenshtein_distance("", "abc")
        3
    """
    if not s1:
        return len(s2)
    if not s2:
        return len(s1)
    if len(s1) > len(s2):
        s1, s2 = s2, s1
    m, n = len(s1), len(s2)
    if max_distance is not None and n - m > max_distance:
        return max_distance + 1

    prev_row = list(range(m + 1))
    curr_row = [0] * (m + 1)
    for j in range(1, n + 1):
        curr_row[0] = j
        row_min = j
        for i in range(1, m + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            curr_row[i] = min(prev_row[i] + 1, curr_row[i - 1] + 1, prev_row[i - 1] + cost)
            row_min = min(row_min, curr_row[i])
        if max_distance is not None and row_min > max_distance:
            return max_distance + 1
        prev_row, curr_row = curr_row, prev_row
    return prev_row[m]


def max_edit_distance(term: str, fuzzy: float) -> int:
    """Edit budget for a term: `fuzzy * len(term)` rounded half up."""
    return math.floor(fuzzy * len(term) + 0.5) if fuzzy > 0 else 0


@dataclass(frozen=True)
class SearchHit:
    """A scored document returned by `LexicalIndex.search`."""

    doc_id: str
    score: float
    terms: tuple[str, ...]


class LexicalIndex:
    """BM25+ full-text index over document content."""

    def __init__(self, *, k1: float = 1.2, b: float = 0.7, delta: float = 0.5) -> None:
        self.k1 = k1
        self.b = b
        self.delta = delta
        self._postings: dict[str, dict[str, int]] = defaultdict(dict)
        self._lengths: dict[str, int] = {}
        self._order: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._lengths)

    @property
    def average_length(self) -> float:
        if not self._lengths:
            return 0.0
        return sum(self._lengths.values()) / len(self._lengths)

    def add(self, doc: IndexedDocument) -> None:
        """Index one document; re-adding an id raises `ValueError`."""
        if doc.id in self._lengths:
            msg = f"duplicate document id: {doc.id}"
            raise ValueError(msg)
        terms = index_terms(doc.content)
        self._order[doc.id] = len(self._order)
        self._lengths[doc.id] = len(terms)
        for term, freq in Counter(terms).items():
            self._postings[term][doc.id] = freq

    def add_all(self, docs: Iterable[IndexedDocument]) -> None:
        for doc in docs:
            self.add(doc)

    def expand_term(self, term: str, fuzzy: float) -> list[tuple[str, float]]:
        """Vocabulary terms matching `term`, each with its weight (1.0 for exact)."""
        out: list[tuple[str, float]] = []
        if term in self._postings:
            out.append((term, 1.0))
        budget = max_edit_distance(term, fuzzy)
        if budget == 0:
            return out
        for candidate in self._postings:
            if candidate == term or abs(len(candidate) - len(term)) > budget:
                continue
            distance = levenshtein_distance(term, candidate, budget)
            if distance <= budget:
                out.append((candidate, FUZZY_WEIGHT * len(term) / (len(term) + distance)))
        return out

    def search(
        self,
        query: str,
        *,
        fuzzy: float = 0.2,
        boost: float = 2.0,
        limit: int | None = None,
    ) -> list[SearchHit]:
        """Rank documents against `query`.

        Args:
            query (str): free text; terms are OR-combined
            fuzzy (float): edit tolerance as a fraction of the term length (0 disables)
            boost (float): multiplier applied to the content field score
            limit (int | None): keep at most this many hits

        Returns:
            list[SearchHit]: hits by descending score, insertion order on ties
        """
        total_docs = len(self._lengths)
        if not total_docs:
            return []
        avg_length = max(self.average_length, 1e-9)
        scores: dict[str, float] = defaultdict(float)
        matched: dict[str, dict[str, None]] = defaultdict(dict)

        for query_term in dict.fromkeys(index_terms(query)):
            for term, weight in self.expand_term(query_term, fuzzy):
                postings = self._postings[term]
                df = len(postings)
                idf = math.log(1 + (total_docs - df + 0.5) / (df + 0.5))
                for doc_id, tf in postings.items():
                    norm = 1 - self.b + self.b * self._lengths[doc_id] / avg_length
                    tf_part = tf * (self.k1 + 1) / (tf + self.k1 * norm) + self.delta
                    scores[doc_id] += weight * idf * tf_part * boost
                    matched[doc_id][query_term] = None

        ranked = sorted(scores.items(), key=lambda item: (-item[1], self._order[item[0]]))
        if limit is not None:
            ranked = ranked[: max(limit, 0)]
        return [SearchHit(doc_id=doc_id, score=score, terms=tuple(matched[doc_id])) for doc_id, score in ranked]
