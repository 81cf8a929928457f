# SPDX-License-Identifier: MIT
"""Lexical pre-filter that narrows a watchlist before semantic matching.

Semantic confirmation is expensive (one LLM call per pair), so each watchlist
is first reduced to the few entries that look lexically similar to the query.
The similarity computed here is a gate, never a verdict.
"""

import re
from collections.abc import Iterable
from typing import Any, NamedTuple

from .constants import (
    DEFAULT_PREFILTER_TOP_N,
    PREFILTER_EXACT_SIMILARITY,
    PREFILTER_MIN_SIMILARITY,
    PREFILTER_SUBSTRING_SIMILARITY,
    PREFILTER_WORD_OVERLAP_SCALE,
)


_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


class Candidate(NamedTuple):
    """A watchlist item that survived the pre-filter."""

    item: Any
    similarity: float


def normalize_for_prefilter(text: str) -> str:
    """Lowercase and drop every character outside ``[a-z0-9\\s]``."""
    return _NON_ALNUM.sub("", text.lower())


def lexical_similarity(query: str, candidate: str) -> float:
    """
    Score two names on a 0-100 scale.

    - 100 when the normalized strings are equal
    - 80 when one contains the other
    - otherwise Jaccard word overlap scaled to 70

    Examples:
        >>> lexical_similarity("Journal of X", "journal of x")
        100
        >>> lexical_similarity("OMICS", "OMICS Publishing Group")
        80
    """
    normalized_query = normalize_for_prefilter(query)
    normalized_candidate = normalize_for_prefilter(candidate)

    if normalized_query == normalized_candidate:
        return PREFILTER_EXACT_SIMILARITY
    if normalized_candidate in normalized_query or normalized_query in normalized_candidate:
        return PREFILTER_SUBSTRING_SIMILARITY

    query_words = set(normalized_query.split())
    candidate_words = set(normalized_candidate.split())
    union = query_words | candidate_words
    if not union:
        return 0.0

    intersection = query_words & candidate_words
    return PREFILTER_WORD_OVERLAP_SCALE * len(intersection) / len(union)


def prefilter_candidates(
    query: str, candidates: Iterable[Any], top_n: int = DEFAULT_PREFILTER_TOP_N
) -> list[Candidate]:
    """Return the ``top_n`` candidates most lexically similar to ``query``.

    Candidates scoring 50 or less are discarded. Ties keep their input order.
    Names that normalize to nothing are skipped on either side, since an empty
    string is a substring of everything.

    Args:
        query: Name taken from the reference (publisher or journal title)
        candidates: Watchlist items exposing a ``name`` attribute
        top_n: Maximum number of candidates returned

    Returns:
        Candidates ordered by descending similarity
    """
    if not normalize_for_prefilter(query).strip():
        return []

    scored = [
        Candidate(item, lexical_similarity(query, item.name))
        for item in candidates
        if normalize_for_prefilter(item.name).strip()
    ]
    kept = [c for c in scored if c.similarity > PREFILTER_MIN_SIMILARITY]
    kept.sort(key=lambda c: c.similarity, reverse=True)
    return kept[:top_n]
