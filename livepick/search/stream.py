"""
Result Stream - Append-only, thread-safe collection of picker results.

Producers append from their own thread while the consumer ranks and
snapshots. The append-only list never reorders or mutates past entries;
only the ranked view (a list of indices) changes with the query.
"""

import threading
from dataclasses import dataclass, replace
from typing import Any, Iterator, Optional

from loguru import logger

from livepick.search.matcher import Query, rank_texts


@dataclass(frozen=True)
class ResultItem:
    """A single produced entry. Immutable once appended."""
    text: str
    value: Any = None
    path: Optional[str] = None
    lnum: Optional[int] = None
    col: Optional[int] = None
    index: int = -1  # assigned by ResultStream.append


class StreamView:
    """
    Lazy view over the stream prefix that existed when it was taken.

    Iterating twice yields the same items, even if the producer kept
    appending in between.
    """

    def __init__(self, items: list, length: int):
        self._items = items
        self._length = length

    def __len__(self) -> int:
        return self._length

    def __getitem__(self, index: int) -> ResultItem:
        if index < 0:
            index += self._length
        if not 0 <= index < self._length:
            raise IndexError(index)
        return self._items[index]

    def __iter__(self) -> Iterator[ResultItem]:
        for i in range(self._length):
            yield self._items[i]

    def texts(self) -> list[str]:
        return [item.text for item in self]


class ResultStream:
    """Append-only ordered results plus a ranked view and multi-selection."""

    def __init__(self, max_results: Optional[int] = None):
        self.max_results = max_results
        self.truncated = False
        self._items: list[ResultItem] = []
        self._selected: set[int] = set()
        self._sealed = False
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def append(self, item: ResultItem) -> bool:
        """
        Append an item, stamping its insertion index.

        Returns:
            True if stored; False if the stream is sealed or full.
        """
        with self._lock:
            if self._sealed:
                return False
            if self.max_results is not None and len(self._items) >= self.max_results:
                if not self.truncated:
                    logger.debug(f"Result stream truncated at {self.max_results} items")
                self.truncated = True
                return False
            self._items.append(replace(item, index=len(self._items)))
            return True

    def seal(self) -> None:
        """Refuse all further appends."""
        with self._lock:
            self._sealed = True

    def snapshot(self) -> StreamView:
        with self._lock:
            return StreamView(self._items, len(self._items))

    def rank(self, query: Query) -> list[int]:
        """
        Rank the current contents against a query.

        Args:
            query: Current query text and match mode

        Returns:
            Indices into the append-only sequence, best match first.
            Equal scores keep arrival order.
        """
        view = self.snapshot()
        return rank_texts(view.texts(), query)

    def ranked_items(self, query: Query) -> list[ResultItem]:
        view = self.snapshot()
        return [view[i] for i in rank_texts(view.texts(), query)]

    # Multi-selection

    def select(self, index: int, selected: bool = True) -> None:
        with self._lock:
            if not 0 <= index < len(self._items):
                raise IndexError(index)
            if selected:
                self._selected.add(index)
            else:
                self._selected.discard(index)

    def toggle_selection(self, index: int) -> bool:
        """Flip the selection state of an item. Returns the new state."""
        selected = not self.is_selected(index)
        self.select(index, selected)
        return selected

    def is_selected(self, index: int) -> bool:
        with self._lock:
            return index in self._selected

    def selected_indices(self) -> list[int]:
        with self._lock:
            return sorted(self._selected)

    def selected_items(self) -> list[ResultItem]:
        with self._lock:
            return [self._items[i] for i in sorted(self._selected)]

    def clear_selection(self) -> None:
        with self._lock:
            self._selected.clear()
