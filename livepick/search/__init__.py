"""
Search package - Result streams and query matching.

Producers append ResultItems to a ResultStream; the matcher ranks the
stream against the consumer's current Query on every change.
"""

from .matcher import MatchMode, Query, score, rank_texts
from .stream import ResultItem, ResultStream, StreamView

__all__ = [
    "MatchMode",
    "Query",
    "ResultItem",
    "ResultStream",
    "StreamView",
    "rank_texts",
    "score",
]
