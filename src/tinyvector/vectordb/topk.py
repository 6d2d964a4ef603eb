"""Fixed-capacity top-k selection."""

from __future__ import annotations

import heapq
from typing import Any


class BoundedTopK:
    """Keep the *k* best ``(key, index, value)`` entries seen so far.

    Keys are on a lower-is-better scale (see
    :func:`tinyvector.vectordb.distance.ranking_key`).  Ties are broken by
    index, so the earlier-inserted embedding wins and selection is
    deterministic.  *value* rides along with its entry and is never
    compared, which lets callers keep the raw score next to its key.

    The heap root is always the worst retained entry, which makes each
    push ``O(log k)`` and a full pass over *N* scores ``O(N log k)`` in
    ``O(k)`` memory.
    """

    def __init__(self, k: int) -> None:
        self._k = max(k, 0)
        # Entries are negated so heapq's min-heap exposes the worst entry.
        self._heap: list[tuple[float, int, Any]] = []

    @property
    def capacity(self) -> int:
        return self._k

    def __len__(self) -> int:
        return len(self._heap)

    def push(self, key: float, index: int, value: Any = None) -> bool:
        """Offer an entry; return whether it was retained.

        Indexes must be unique across pushes.
        """
        if self._k == 0:
            return False
        entry = (-key, -index, value)
        if len(self._heap) < self._k:
            heapq.heappush(self._heap, entry)
            return True
        if entry[:2] > self._heap[0][:2]:
            heapq.heapreplace(self._heap, entry)
            return True
        return False

    def items(self) -> list[tuple[float, int, Any]]:
        """Return retained ``(key, index, value)`` entries, best first."""
        ordered = sorted(self._heap, key=lambda entry: entry[:2], reverse=True)
        return [(-key, -index, value) for key, index, value in ordered]
