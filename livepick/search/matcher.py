"""
Matcher - Scores and ranks result text against a live query.

Modes:
  fuzzy  → in-order subsequence match, scored by compactness and position
  regex  → pattern search, no gradation (matches keep arrival order)
  exact  → substring match, earlier occurrence ranks higher
  typo   → typo-tolerant rapidfuzz WRatio with a score cutoff

All modes are smart-case: case-insensitive unless the query contains an
uppercase character.
"""

import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Optional

from loguru import logger
from rapidfuzz import fuzz

# Characters after which a match counts as a word-boundary hit
BOUNDARY_CHARS = "/\\_-. :"

CONTIGUOUS_BONUS = 20
BOUNDARY_BONUS = 35
CASE_BONUS = 4
MAX_GAP_PENALTY = 40


class MatchMode(str, Enum):
    FUZZY = "fuzzy"
    REGEX = "regex"
    EXACT = "exact"
    TYPO = "typo"


@dataclass(frozen=True)
class Query:
    """Current filter string and how to apply it."""
    text: str = ""
    mode: MatchMode = MatchMode.FUZZY
    threshold: int = 50  # typo mode cutoff, 0-100

    def with_text(self, text: str) -> "Query":
        return Query(text=text, mode=self.mode, threshold=self.threshold)


def is_case_sensitive(query: str) -> bool:
    """Smart-case: only an uppercase character in the query makes it case sensitive."""
    return any(ch.isupper() for ch in query)


def _forward(text: str, query: str, start: int, fold) -> Optional[list[int]]:
    positions = []
    pos = start
    for q_char in query:
        needle = fold(q_char)
        while pos < len(text) and fold(text[pos]) != needle:
            pos += 1
        if pos >= len(text):
            return None
        positions.append(pos)
        pos += 1
    return positions


def _tighten(text: str, query: str, end: int, fold) -> list[int]:
    """Walk back from the last matched character to the shortest window."""
    positions = []
    pos = end
    for q_char in reversed(query):
        needle = fold(q_char)
        while fold(text[pos]) != needle:
            pos -= 1
        positions.append(pos)
        pos -= 1
    positions.reverse()
    return positions


def _score_positions(text: str, query: str, positions: list[int]) -> float:
    score = 0.0
    prev = -1
    run = 0
    for q_char, pos in zip(query, positions):
        if pos == prev + 1:
            run += 1
            score += CONTIGUOUS_BONUS + min(16, run * 4)
        else:
            run = 0
            score -= min(MAX_GAP_PENALTY, (pos - prev - 1) * 2)
        if pos == 0 or text[pos - 1] in BOUNDARY_CHARS:
            score += BOUNDARY_BONUS
        if text[pos] == q_char:
            score += CASE_BONUS
        prev = pos

    score -= min(MAX_GAP_PENALTY, positions[0])
    score -= len(text) // 5
    return score


def fuzzy_score(text: str, query: str) -> Optional[float]:
    """
    Score an in-order subsequence match of query within text.

    Contiguous runs, word-boundary hits, an early first match and exact-case
    hits raise the score; gaps and long candidates lower it. Every start
    position of the query's first character is tried, each alignment is
    tightened to its shortest window, and the best one is scored, so a
    contiguous run scores as a run wherever it sits in the text.

    Returns:
        Score (higher is better), or None when query is not a subsequence.
    """
    if not query:
        return 0.0

    fold = (lambda s: s) if is_case_sensitive(query) else str.lower

    best = None
    start = 0
    while True:
        positions = _forward(text, query, start, fold)
        if positions is None:
            break
        positions = _tighten(text, query, positions[-1], fold)
        candidate = _score_positions(text, query, positions)
        if best is None or candidate > best:
            best = candidate
        start = positions[0] + 1
    return best


def _pattern_has_upper(pattern: str) -> bool:
    # \S, \W, \D and friends are classes, not literal uppercase letters
    return is_case_sensitive(re.sub(r"\\.", "", pattern))


@lru_cache(maxsize=64)
def _compile(pattern: str) -> Optional[re.Pattern]:
    flags = 0 if _pattern_has_upper(pattern) else re.IGNORECASE
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        # Half-typed patterns are normal while the user is still typing
        logger.debug(f"Invalid regex {pattern!r}: {e}")
        return None


def regex_score(text: str, query: str) -> Optional[float]:
    if not query:
        return 0.0
    compiled = _compile(query)
    if compiled is None or compiled.search(text) is None:
        return None
    return 0.0


def exact_score(text: str, query: str) -> Optional[float]:
    if not query:
        return 0.0
    if is_case_sensitive(query):
        idx = text.find(query)
    else:
        idx = text.lower().find(query.lower())
    if idx < 0:
        return None
    return float(-idx)


def typo_score(text: str, query: str, threshold: int = 50) -> Optional[float]:
    """Typo-tolerant similarity using rapidfuzz weighted ratio."""
    if not query:
        return 0.0
    if not is_case_sensitive(query):
        text, query = text.lower(), query.lower()
    score = fuzz.WRatio(query, text, score_cutoff=threshold)
    if not score:
        return None
    return float(score)


def score(text: str, query: Query) -> Optional[float]:
    """Score one candidate. None means no match."""
    if query.mode == MatchMode.REGEX:
        return regex_score(text, query.text)
    if query.mode == MatchMode.EXACT:
        return exact_score(text, query.text)
    if query.mode == MatchMode.TYPO:
        return typo_score(text, query.text, query.threshold)
    return fuzzy_score(text, query.text)


def rank_texts(texts: list[str], query: Query) -> list[int]:
    """
    Rank candidate texts against a query.

    Returns:
        Indices of matching texts, best first. Ties keep original order
        (Python's sort is stable). An empty query returns every index in
        arrival order.
    """
    if not query.text:
        return list(range(len(texts)))

    scored = []
    for idx, text in enumerate(texts):
        s = score(text, query)
        if s is not None:
            scored.append((s, idx))

    scored.sort(key=lambda pair: -pair[0])
    return [idx for _s, idx in scored]
