"""Identifier-aware tokenization used by the concept ranker.

Tokens are lowercase alphanumeric runs. Identifiers are split on camelCase
boundaries and on `.`, `_` and `-` separators, so `handleError`, `handle_error`
and `handle.error` all yield `handle` and `error`.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from packx.config import DEFAULT_STOP_WORDS

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Sequence

_CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
_SEPARATORS = re.compile(r"[._-]+")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_DIGITS_ONLY = re.compile(r"^\d+$")
_SHA_LIKE = re.compile(r"^sha\d+$", re.IGNORECASE)
_HEX_LIKE = re.compile(r"^[a-f0-9]{6,}$", re.IGNORECASE)
_COMMENT_LINE = re.compile(r"^\s*(?://|#|\*)|/\*|\*/")


def normalize_token(raw: str) -> list[str]:
    """Split one raw word into lowercase alphanumeric sub-tokens.

    Args:
        raw (str): a whitespace-free chunk of text, e.g. `fooBar_baz.qux`

    Returns:
        list[str]: the sub-tokens, e.g. `["foo", "bar", "baz", "qux"]`
    """
    spaced = _CAMEL_BOUNDARY.sub(r"\1 \2", raw)
    spaced = _SEPARATORS.sub(" ", spaced)
    return [t for t in _NON_ALNUM.split(spaced.lower()) if t]


def tokenize_content(content: str) -> Iterator[str]:
    """Lazily tokenize a text: whitespace split, then `normalize_token` on each piece.

    Args:
        content (str): the text to tokenize

    Yields:
        str: lowercase tokens in document order
    """
    for rough in content.replace("\r", "\n").split():
        yield from normalize_token(rough)


def is_noisy_token(token: str) -> bool:
    """Tell whether a token looks like a number, hash or digit-dominated id.

    Args:
        token (str): a lowercase token

    Returns:
        bool: True for pure digits, tokens with at least as many digits as letters,
            `sha<digits>` tokens and hex-like runs of 6+ characters
    """
    if _DIGITS_ONLY.match(token):
        return True
    digits = sum(ch.isdigit() for ch in token)
    letters = sum("a" <= ch <= "z" for ch in token)
    if digits > 0 and digits >= letters:
        return True
    if _SHA_LIKE.match(token):
        return True
    return bool(_HEX_LIKE.match(token))


class TokenFilter(BaseModel):
    """Length, stop-word and noise rules applied to candidate keywords."""

    model_config = ConfigDict(frozen=True)

    stop_words: frozenset[str] = Field(default=DEFAULT_STOP_WORDS, description="Terms never kept")
    min_length: int = Field(default=3, ge=1)
    max_length: int = Field(default=30, ge=1)

    def accepts(self, token: str) -> bool:
        """Return True when `token` is worth scoring as a keyword."""
        if not self.min_length <= len(token) <= self.max_length:
            return False
        if token in self.stop_words:
            return False
        return not is_noisy_token(token)

    def keep(self, tokens: Iterable[str]) -> list[str]:
        return [t for t in tokens if self.accepts(t)]


def extract_comment_tokens(content: str, token_filter: TokenFilter | None = None) -> list[str]:
    """Collect tokens from comment-like lines (`//`, `#`, `*`, `/*`, `*/`).

    Only the minimum length and stop-word rules apply here; noisy tokens are kept
    so that phrases stay contiguous.

    Args:
        content (str): the document text
        token_filter (TokenFilter | None): rules to apply, defaults to `TokenFilter()`

    Returns:
        list[str]: comment tokens in document order
    """
    rules = token_filter or TokenFilter()
    out: list[str] = []
    for line in content.splitlines():
        if not _COMMENT_LINE.search(line):
            continue
        out.extend(t for t in tokenize_content(line) if len(t) >= rules.min_length and t not in rules.stop_words)
    return out


def make_ngrams(tokens: Sequence[str], n: int) -> list[str]:
    """Return the space-joined `n`-grams of `tokens` (empty when too short)."""
    return [" ".join(tokens[i : i + n]) for i in range(len(tokens) - n + 1)]
