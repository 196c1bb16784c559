"""Concept mode: derive search strings from a natural-language query.

The ranker indexes a corpus, keeps the best matching files as a working set,
scores candidate keywords over that working set and, when a token budget is
given, shrinks the context radius, keyword count and working-set size until
the estimated bundle fits.
"""

from __future__ import annotations

import math
import re
from collections import Counter, defaultdict
from pathlib import PurePosixPath
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from packx.config import CODE_EXTENSIONS, CONCEPT_MAX_DOC_BYTES
from packx.exceptions import InvalidInputError
from packx.file_manipulation import read_text_capped
from packx.logging import logger
from packx.models import IndexedDocument, KeywordScore
from packx.search_index import LexicalIndex
from packx.tokenizer import TokenFilter, extract_comment_tokens, make_ngrams, normalize_token, tokenize_content

if TYPE_CHECKING:
    from collections.abc import Sequence

    from packx.models import Candidate

_TEST_DIR = re.compile(r"(^|/)tests?/")
_TEST_SUFFIX = re.compile(r"\.(test|spec)\.[a-z]+$")
_PY_TEST_FILE = re.compile(r"(^|/)test_[^/]+\.py$")
_LINE_BREAK = re.compile(r"\r?\n")

SEED_BOOST = 1.5
FILENAME_BOOST = 1.3
NGRAM_WEIGHT = 0.5
NGRAM_SEED_BOOST = 1.2
BUDGET_MARGIN = 0.8
MIN_LINES = 1
MIN_KEYWORDS = 2
MIN_TOP_FILES = 3


class TuneResult(BaseModel):
    """Parameters chosen by `auto_tune` and the estimate they produce."""

    model_config = ConfigDict(frozen=True)

    lines: int
    keywords: int
    top_files: int
    max_tokens: int = 0
    estimate: int = 0


class ConceptResult(BaseModel):
    """Everything concept mode hands to the packing pipeline."""

    model_config = ConfigDict(frozen=True)

    query: str
    seed_terms: tuple[str, ...] = ()
    keywords: tuple[str, ...] = Field(default=(), description="Keywords after tuning")
    documents: tuple[IndexedDocument, ...] = Field(default=(), description="Working set after tuning")
    inferred_extensions: tuple[str, ...] = ()
    tuned: TuneResult

    def meta(self, *, inferred_applied: bool = True) -> dict[str, object]:
        """Reproducibility header embedded in the bundle."""
        return {
            "mode": "concept",
            "concept_query": self.query,
            "seed_terms": list(self.seed_terms),
            "keywords_used": list(self.keywords),
            "inferred_extensions": list(self.inferred_extensions) if inferred_applied else [],
            "tuned": self.tuned.model_dump(),
        }


def seed_terms(query: str) -> list[str]:
    """Lowercased query words longer than one character."""
    return [w for w in query.lower().split() if len(w) > 1]


def load_documents(candidates: Sequence[Candidate], max_bytes: int = CONCEPT_MAX_DOC_BYTES) -> list[IndexedDocument]:
    """Load candidates as index documents, truncating each to `max_bytes` characters.

    Unreadable files are kept with empty content so discovery order is preserved.
    """
    return [
        IndexedDocument(id=c.rel.replace("\\", "/"), path=c.path, content=read_text_capped(c.path, max_bytes))
        for c in candidates
    ]


def retrieve(documents: Sequence[IndexedDocument], query: str, top_files: int) -> list[IndexedDocument]:
    """Index `documents` and return the `top_files` best matches for `query`."""
    index = LexicalIndex()
    index.add_all(documents)
    by_id = {d.id: d for d in documents}
    hits = index.search(query, fuzzy=0.2, boost=2.0, limit=top_files)
    return [by_id[h.doc_id] for h in hits]


def file_weight(doc_id: str) -> float:
    """Down-weight documentation, structured config, type declarations and tests.

    Args:
        doc_id (str): POSIX path of the document

    Returns:
        float: the product of the applicable factors (1.0 for plain code)
    """
    low = doc_id.lower()
    ext = PurePosixPath(low).suffix
    weight = 1.0
    if ext == ".md":
        weight *= 0.5
    if ext in {".json", ".yaml", ".yml"}:
        weight *= 0.6
    if low.endswith(".d.ts"):
        weight *= 0.7
    if _TEST_DIR.search(low) or _TEST_SUFFIX.search(low) or _PY_TEST_FILE.search(low):
        weight *= 0.6
    return weight


class KeywordScorer:
    """TF-IDF-like keyword scoring with query and filename affinity boosts."""

    def __init__(self, token_filter: TokenFilter | None = None) -> None:
        self.token_filter = token_filter or TokenFilter()

    def filename_tokens(self, doc_id: str) -> set[str]:
        base = PurePosixPath(doc_id).name
        rules = self.token_filter
        return {t for t in normalize_token(base) if len(t) >= rules.min_length and t not in rules.stop_words}

    def term_scores(self, docs: Sequence[IndexedDocument], seeds: Sequence[str]) -> dict[str, float]:
        """Sum `tf * log(1 + N / (1 + df)) * weight` per term across `docs`."""
        doc_count = len(docs) or 1
        per_doc: list[tuple[IndexedDocument, Counter[str]]] = []
        df: Counter[str] = Counter()
        for d in docs:
            counts = Counter(self.token_filter.keep(tokenize_content(d.content)))
            per_doc.append((d, counts))
            df.update(counts.keys())

        scores: dict[str, float] = defaultdict(float)
        for d, counts in per_doc:
            weight = file_weight(d.id)
            fname = self.filename_tokens(d.id)
            for term, tf in counts.items():
                score = tf * math.log(1 + doc_count / (1 + df[term])) * weight
                if any(s in term for s in seeds):
                    score *= SEED_BOOST
                if term in fname:
                    score *= FILENAME_BOOST
                scores[term] += score
        return scores

    def ngram_scores(self, docs: Sequence[IndexedDocument], seeds: Sequence[str]) -> dict[str, float]:
        """Score 2- and 3-grams from comment lines by frequency."""
        counts: Counter[str] = Counter()
        for d in docs:
            toks = extract_comment_tokens(d.content, self.token_filter)
            counts.update(make_ngrams(toks, 2))
            counts.update(make_ngrams(toks, 3))
        out: dict[str, float] = {}
        for gram, c in counts.items():
            s = c * NGRAM_WEIGHT
            if any(seed in gram for seed in seeds):
                s *= NGRAM_SEED_BOOST
            out[gram] = s
        return out

    def score(self, docs: Sequence[IndexedDocument], seeds: Sequence[str]) -> list[KeywordScore]:
        """Rank terms and comment phrases of `docs`, best first.

        Args:
            docs (Sequence[IndexedDocument]): the working set
            seeds (Sequence[str]): lowercase query words

        Returns:
            list[KeywordScore]: merged term and n-gram scores in descending order
        """
        seed_list = [s.lower() for s in seeds]
        merged: dict[str, float] = defaultdict(float)
        for term, s in self.term_scores(docs, seed_list).items():
            merged[term] += s
        for gram, s in self.ngram_scores(docs, seed_list).items():
            merged[gram] += s
        ranked = sorted(merged.items(), key=lambda item: item[1], reverse=True)
        return [KeywordScore(term=t, score=s) for t, s in ranked]


def select_keywords(seeds: Sequence[str], ranked: Sequence[KeywordScore], count: int) -> list[str]:
    """Seeds first, then ranked terms, de-duplicated and truncated to `count`."""
    merged = dict.fromkeys([*seeds, *(k.term for k in ranked)])
    return list(merged)[: max(count, 0)]


def infer_extensions(docs: Sequence[IndexedDocument], limit: int = 4) -> list[str]:
    """Most frequent code extensions in the working set, without the dot."""
    counts: Counter[str] = Counter()
    for d in docs:
        ext = PurePosixPath(d.id.lower()).suffix
        if ext in CODE_EXTENSIONS:
            counts[ext] += 1
    return [ext.lstrip(".") for ext, _ in counts.most_common(limit)]


def estimate_tokens(docs: Sequence[IndexedDocument], keywords: Sequence[str], lines: int) -> int:
    """Approximate bundle size for `keywords` at a context radius of `lines`.

    Matching lines are grouped into clusters (a gap larger than `lines` starts a
    new cluster); each cluster costs `(2 * lines + 1) * avg_tokens_per_line`.

    Args:
        docs (Sequence[IndexedDocument]): documents to estimate over
        keywords (Sequence[str]): keywords; those shorter than 3 characters are ignored
        lines (int): context radius

    Returns:
        int: estimated token count
    """
    kws = [k.lower() for k in keywords if len(k) >= 3]  # noqa: PLR2004
    total = 0
    for d in docs:
        parts = _LINE_BREAK.split(d.content.lower())
        hits = [i for i, ln in enumerate(parts) if any(k in ln for k in kws)]
        if not hits:
            continue
        clusters = 0
        last: int | None = None
        for i in hits:
            if last is None or i - last > lines:
                clusters += 1
            last = i
        avg = max(5, math.floor(sum(d.tokens.values()) / max(1, len(parts)) + 0.5))
        total += clusters * (2 * lines + 1) * avg
    return total


def auto_tune(
    docs: Sequence[IndexedDocument],
    keywords: Sequence[str],
    *,
    max_tokens: int,
    lines: int,
    keyword_count: int,
    top_files: int,
) -> TuneResult:
    """Shrink radius, then keyword count, then working-set size until under budget.

    The budget is `floor(0.8 * max_tokens)`. Floors are 1 line, 2 keywords and 3
    files; the loop stops when the estimate fits or every floor is reached, so
    the result is best-effort. A non-positive `max_tokens` disables tuning.

    Returns:
        TuneResult: the chosen parameters and the last estimate
    """
    if max_tokens <= 0:
        est = estimate_tokens(docs[:top_files], keywords[:keyword_count], lines)
        return TuneResult(lines=lines, keywords=keyword_count, top_files=top_files, estimate=est)

    budget = math.floor(max_tokens * BUDGET_MARGIN)
    while True:
        est = estimate_tokens(docs[:top_files], keywords[:keyword_count], lines)
        if est <= budget:
            break
        if lines > MIN_LINES:
            lines -= 1
        elif keyword_count > MIN_KEYWORDS:
            keyword_count -= 1
        elif top_files > MIN_TOP_FILES:
            top_files -= 1
        else:
            break
    logger.info(
        "Auto-tuned concept parameters",
        lines=lines,
        keywords=keyword_count,
        top_files=top_files,
        estimate=est,
        budget=budget,
    )
    return TuneResult(lines=lines, keywords=keyword_count, top_files=top_files, max_tokens=max_tokens, estimate=est)


class ConceptRanker:
    """Runs the whole concept pass over a candidate corpus."""

    def __init__(
        self,
        *,
        keywords: int = 4,
        top_files: int = 8,
        max_tokens: int = 50_000,
        lines: int = 2,
        scorer: KeywordScorer | None = None,
    ) -> None:
        self.keywords = keywords
        self.top_files = top_files
        self.max_tokens = max_tokens
        self.lines = lines
        self.scorer = scorer or KeywordScorer()

    def run(self, query: str, candidates: Sequence[Candidate]) -> ConceptResult:
        """Derive keywords, working set and tuning for `query`.

        Raises:
            InvalidInputError: if `query` is blank

        Returns:
            ConceptResult: possibly empty when the corpus is empty or nothing matched
        """
        query = query.strip()
        if not query:
            raise InvalidInputError(message="Please provide a search string for concept mode.")

        documents = load_documents(candidates)
        logger.info("Indexed %s file(s) for concept query", len(documents))
        top_docs = retrieve(documents, query, self.top_files)
        seeds = seed_terms(query)
        if not top_docs:
            logger.info("No indexed file matched the concept query")
            return ConceptResult(
                query=query,
                seed_terms=tuple(seeds),
                tuned=TuneResult(lines=self.lines, keywords=0, top_files=0, max_tokens=self.max_tokens),
            )
        ranked = self.scorer.score(top_docs, seeds)
        keywords = select_keywords(seeds, ranked, self.keywords)
        tuned = auto_tune(
            top_docs,
            keywords,
            max_tokens=self.max_tokens,
            lines=self.lines,
            keyword_count=self.keywords,
            top_files=self.top_files,
        )
        return ConceptResult(
            query=query,
            seed_terms=tuple(seeds),
            keywords=tuple(keywords[: tuned.keywords]),
            documents=tuple(top_docs[: tuned.top_files]),
            inferred_extensions=tuple(infer_extensions(top_docs)),
            tuned=tuned,
        )
