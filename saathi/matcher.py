"""Lexical intent matcher.

Scores the user's message against every matchable term of every catalog
entry (name, description, each keyword) and returns the best entry.  The
metric is the Sørensen–Dice coefficient over character bigrams with
whitespace removed, compared case-insensitively.

The matcher is a pure function of ``(catalog, message)``: no module state,
no I/O, safe to call from any number of request threads.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Sequence
from typing import NamedTuple

from saathi.catalog import Service

DEFAULT_THRESHOLD = 0.4

_WHITESPACE_RE = re.compile(r"\s+")


class MatchResult(NamedTuple):
    service: Service | None
    score: float

    def accepted(self, threshold: float = DEFAULT_THRESHOLD) -> bool:
        """True only when a service won with a score strictly above *threshold*."""
        return self.service is not None and self.score > threshold


NO_MATCH = MatchResult(None, 0.0)


def _bigrams(text: str) -> Counter[str]:
    return Counter(text[i : i + 2] for i in range(len(text) - 1))


def similarity(first: str, second: str) -> float:
    """Dice coefficient of the two strings' bigram multisets, in ``[0, 1]``.

    >>> similarity("healed", "sealed")
    0.8
    """
    first = _WHITESPACE_RE.sub("", first.lower())
    second = _WHITESPACE_RE.sub("", second.lower())

    if first == second:
        return 1.0
    if len(first) < 2 or len(second) < 2:
        return 0.0

    overlap = sum((_bigrams(first) & _bigrams(second)).values())
    return (2.0 * overlap) / (len(first) + len(second) - 2)


def best_match(message: str, catalog: Sequence[Service]) -> MatchResult:
    """Return the highest-scoring service for *message*.

    Ties go to the service that appears first in *catalog*.  Blank
    messages and empty catalogs yield ``NO_MATCH``.
    """
    if not message or not message.strip():
        return NO_MATCH

    best_service: Service | None = None
    best_score = 0.0
    for service in catalog:
        for term in service.matchable_terms():
            if not term or not term.strip():
                continue
            score = similarity(message, term)
            # Strict ">" keeps the earliest service on ties
            if best_service is None or score > best_score:
                best_service, best_score = service, score

    if best_service is None:
        return NO_MATCH
    return MatchResult(best_service, best_score)
