from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator


class LiteralMatcher:
    """Matches any of a set of literal strings, never as a pattern language.

    Literals are escaped and joined into one alternation. Longer literals are
    tried first, so at a given position the longest literal wins.
    """

    def __init__(self, literals: Iterable[str], *, case_sensitive: bool = False) -> None:
        self.literals: tuple[str, ...] = tuple(dict.fromkeys(lit for lit in literals if lit))
        if not self.literals:
            msg = "LiteralMatcher needs at least one non-empty literal"
            raise ValueError(msg)
        self.case_sensitive = case_sensitive
        ordered = sorted(self.literals, key=len, reverse=True)
        flags = 0 if case_sensitive else re.IGNORECASE
        self.pattern = re.compile("|".join(re.escape(lit) for lit in ordered), flags)

    def __repr__(self) -> str:
        return f"LiteralMatcher({list(self.literals)!r}, case_sensitive={self.case_sensitive})"

    def search(self, text: str) -> bool:
        """Return True when `text` contains at least one literal."""
        return self.pattern.search(text) is not None

    def finditer(self, text: str) -> Iterator[re.Match[str]]:
        """Yield non-overlapping matches, leftmost first, resuming after each match."""
        return self.pattern.finditer(text)


def compile_literals(literals: Iterable[str], *, case_sensitive: bool = False) -> LiteralMatcher | None:
    """Compile literal search strings into a matcher.

    Args:
        literals (Iterable[str]): the strings to look for; empty strings are ignored
        case_sensitive (bool): match case-sensitively when True

    Returns:
        LiteralMatcher | None: the matcher, or None when no usable literal was given
    """
    cleaned = [lit for lit in literals if lit]
    if not cleaned:
        return None
    return LiteralMatcher(cleaned, case_sensitive=case_sensitive)
