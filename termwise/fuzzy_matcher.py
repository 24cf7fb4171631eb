# termwise/fuzzy_matcher.py

import logging
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

PREFIX_SCORE = 100
SUBSTRING_SCORE = 50
SUBSEQUENCE_BASE_SCORE = 25
# Subsequence matches must stay strictly below substring matches.
SUBSEQUENCE_MAX_SCORE = SUBSTRING_SCORE - 1
NO_MATCH_SCORE = 0


def _subsequence_span(query: str, candidate: str) -> Optional[Tuple[int, int]]:
    """Returns (start, end) of the greedy left-to-right subsequence match, or None."""
    start = -1
    pos = 0
    for ch in query:
        idx = candidate.find(ch, pos)
        if idx == -1:
            return None
        if start == -1:
            start = idx
        pos = idx + 1
    return start, pos


def score(query: str, candidate: str) -> int:
    """Scores candidate against query.

    Returns 100 for a prefix match, 50 for a substring match, 25-49 for an
    ordered subsequence match (denser matches score higher) and 0 otherwise.
    Matching is case-insensitive; an empty query matches nothing.
    """
    if not query or not candidate:
        return NO_MATCH_SCORE

    q = query.lower()
    c = candidate.lower()

    if c.startswith(q):
        return PREFIX_SCORE
    if q in c:
        return SUBSTRING_SCORE

    span = _subsequence_span(q, c)
    if span is None:
        return NO_MATCH_SCORE

    start, end = span
    density = len(q) / (end - start)
    bonus = int((SUBSEQUENCE_MAX_SCORE - SUBSEQUENCE_BASE_SCORE) * density)
    return min(SUBSEQUENCE_BASE_SCORE + bonus, SUBSEQUENCE_MAX_SCORE)
