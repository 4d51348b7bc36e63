"""Fuzzy scorers used to resolve mod and archive names typed by the user.

The default :class:`SkimScorer` ranks ordered subsequence matches the way
interactive fuzzy finders do: consecutive runs and matches on word starts
score higher, gaps cost points.  :class:`JaroWinklerScorer` is an
alternative backed by jellyfish, selected with the ``matcher`` setting.
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import StrEnum
from typing import Protocol

import jellyfish

SCORE_MATCH = 16
BONUS_FIRST_CHAR = 8
BONUS_BOUNDARY = 8
BONUS_CONSECUTIVE = 8
PENALTY_GAP_START = 3
PENALTY_GAP_EXTENSION = 1

_SEPARATORS = frozenset(" _-./\\")


class Scorer(Protocol):
    def score(self, choice: str, query: str) -> int:
        """Return a positive score when *query* matches *choice*, else 0."""
        ...


def _boundary_bonus(choice: str, index: int) -> int:
    if index == 0:
        return BONUS_BOUNDARY + BONUS_FIRST_CHAR
    prev, cur = choice[index - 1], choice[index]
    if prev in _SEPARATORS:
        return BONUS_BOUNDARY
    if prev.islower() and cur.isupper():
        return BONUS_BOUNDARY
    if not prev.isdigit() and cur.isdigit():
        return BONUS_BOUNDARY // 2
    return 0


class SkimScorer:
    """Case-insensitive subsequence scorer.

    >>> SkimScorer().score("Alternate Start", "altst") > 0
    True
    >>> SkimScorer().score("SkyUI", "xyz")
    0
    """

    def score(self, choice: str, query: str) -> int:
        if not query or len(query) > len(choice):
            return 0

        lowered = choice.lower()
        pattern = query.lower()
        n = len(choice)
        bonuses = [_boundary_bonus(choice, j) for j in range(n)]

        # best[j]: best score with the current pattern char matched at choice[j]
        best: list[int | None] = [
            SCORE_MATCH + bonuses[j] if lowered[j] == pattern[0] else None for j in range(n)
        ]
        for ch in pattern[1:]:
            row: list[int | None] = [None] * n
            for j in range(n):
                if lowered[j] != ch:
                    continue
                candidate: int | None = None
                for k in range(j):
                    prev = best[k]
                    if prev is None:
                        continue
                    if k == j - 1:
                        value = prev + BONUS_CONSECUTIVE
                    else:
                        value = prev - PENALTY_GAP_START - PENALTY_GAP_EXTENSION * (j - k - 2)
                    if candidate is None or value > candidate:
                        candidate = value
                if candidate is not None:
                    row[j] = candidate + SCORE_MATCH + bonuses[j]
            best = row

        matched = [s for s in best if s is not None]
        if not matched:
            return 0
        return max(max(matched), 1)


class JaroWinklerScorer:
    """Similarity of the whole strings, scaled to 0-100."""

    def score(self, choice: str, query: str) -> int:
        if not query:
            return 0
        return round(jellyfish.jaro_winkler_similarity(choice.lower(), query.lower()) * 100)


def best_match(choices: Sequence[str], query: str, scorer: Scorer) -> int | None:
    """Index of the highest scoring choice; ties go to the earliest, ``None`` if nothing scores."""
    best_index: int | None = None
    best_score = 0
    for index, choice in enumerate(choices):
        value = scorer.score(choice, query)
        if value > best_score:
            best_index, best_score = index, value
    return best_index


class Matcher(StrEnum):
    SKIM = "skim"
    JARO_WINKLER = "jaro-winkler"


def make_scorer(matcher: Matcher) -> Scorer:
    if matcher == Matcher.JARO_WINKLER:
        return JaroWinklerScorer()
    return SkimScorer()
