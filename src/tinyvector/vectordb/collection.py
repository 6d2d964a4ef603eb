"""Collections of fixed-dimension embeddings and the similarity query.

A :class:`Collection` is append-only: embeddings are never removed
individually, so the first *n* entries of its list never change once
written.  :class:`CollectionSnapshot` relies on that to give readers an
immutable view without copying the embeddings.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np

from tinyvector.vectordb.distance import (
    as_vector,
    cache_value,
    normalize,
    ranking_key,
    score_matrix,
)
from tinyvector.vectordb.exceptions import AlreadyExistsError, DimensionMismatchError
from tinyvector.vectordb.models import CollectionConfig, Distance, SimilarityResult
from tinyvector.vectordb.topk import BoundedTopK

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 4096


@dataclass(frozen=True)
class Embedding:
    """A stored vector with its identifier and opaque payload."""

    id: str
    vector: np.ndarray
    payload: str = ""

    @property
    def dimension(self) -> int:
        return int(self.vector.shape[0])


class Collection:
    """An ordered set of embeddings sharing a dimension and distance metric.

    Not thread-safe on its own; concurrent access goes through
    :class:`tinyvector.vectordb.shared.SharedRegistry`.
    """

    def __init__(self, dimension: int, distance: Distance = Distance.COSINE) -> None:
        config = CollectionConfig(dimension=dimension, distance=distance)
        self._dimension = config.dimension
        self._distance = config.distance
        self._embeddings: list[Embedding] = []
        self._index: dict[str, int] = {}

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def distance(self) -> Distance:
        return self._distance

    def __len__(self) -> int:
        return len(self._embeddings)

    def __contains__(self, embedding_id: object) -> bool:
        return embedding_id in self._index

    def __iter__(self) -> Iterator[Embedding]:
        return iter(self._embeddings)

    def ids(self) -> list[str]:
        """Return embedding ids in insertion order."""
        return [embedding.id for embedding in self._embeddings]

    def get(self, embedding_id: str) -> Embedding | None:
        """Return the embedding stored under *embedding_id*, if any."""
        position = self._index.get(embedding_id)
        if position is None:
            return None
        return self._embeddings[position]

    def add(
        self,
        embedding_id: str,
        vector: Sequence[float] | np.ndarray,
        payload: str = "",
    ) -> Embedding:
        """Validate and append a new embedding.

        All checks run before the collection is touched, so a failed call
        leaves it exactly as it was.

        Args:
            embedding_id: Identifier, unique within this collection.
            vector: Values to store; must have length :attr:`dimension`.
            payload: Opaque string returned verbatim by queries.

        Returns:
            The stored :class:`Embedding`.

        Raises:
            DimensionMismatchError: If ``len(vector) != dimension``.
            AlreadyExistsError: If *embedding_id* is already present.
        """
        values = as_vector(vector)
        if values.shape[0] != self._dimension:
            raise DimensionMismatchError(self._dimension, int(values.shape[0]))
        if embedding_id in self._index:
            raise AlreadyExistsError(
                f"Embedding '{embedding_id}' already exists in collection"
            )

        if self._distance is Distance.COSINE:
            values = normalize(values)
        # Own the buffer so callers cannot mutate stored data.
        values = np.array(values, dtype=np.float32, copy=True)
        values.setflags(write=False)

        embedding = Embedding(id=embedding_id, vector=values, payload=payload)
        self._index[embedding_id] = len(self._embeddings)
        self._embeddings.append(embedding)
        return embedding

    def snapshot(self) -> CollectionSnapshot:
        """Return an immutable view of the current contents."""
        return CollectionSnapshot(
            dimension=self._dimension,
            distance=self._distance,
            embeddings=self._embeddings,
            size=len(self._embeddings),
        )

    def query(
        self,
        vector: Sequence[float] | np.ndarray,
        k: int,
        executor: Executor | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> list[SimilarityResult]:
        """Shortcut for ``snapshot().query(...)``."""
        return self.snapshot().query(vector, k, executor=executor, chunk_size=chunk_size)


class CollectionSnapshot:
    """Read-only view of the first :attr:`size` embeddings of a collection.

    Safe to query without holding any lock: later appends land beyond
    :attr:`size` and are never seen by this view.
    """

    def __init__(
        self,
        dimension: int,
        distance: Distance,
        embeddings: Sequence[Embedding],
        size: int,
    ) -> None:
        self._dimension = dimension
        self._distance = distance
        self._embeddings = embeddings
        self._size = size

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def distance(self) -> Distance:
        return self._distance

    @property
    def size(self) -> int:
        return self._size

    def __len__(self) -> int:
        return self._size

    def embeddings(self) -> list[Embedding]:
        """Return the embeddings covered by this view, in insertion order."""
        return [self._embeddings[i] for i in range(self._size)]

    def _score_range(self, bounds: tuple[int, int], query: np.ndarray, cache: float) -> np.ndarray:
        start, stop = bounds
        matrix = np.stack([self._embeddings[i].vector for i in range(start, stop)])
        return score_matrix(self._distance, matrix, query, cache)

    def query(
        self,
        vector: Sequence[float] | np.ndarray,
        k: int,
        executor: Executor | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> list[SimilarityResult]:
        """Return the *k* best matches for *vector*, best first.

        Scoring is split into contiguous chunks of *chunk_size* embeddings
        and mapped over *executor* when one is given and there is more than
        one chunk.  Selection keeps a bounded heap of *k* entries.

        Args:
            vector: Query vector of length :attr:`dimension`.
            k: Maximum number of results.
            executor: Optional pool for the scoring phase.
            chunk_size: Embeddings scored per task.

        Returns:
            At most ``min(k, size)`` results.  Euclidean scores are
            distances (ascending); cosine and dot product scores are
            similarities (descending).

        Raises:
            DimensionMismatchError: If the query length differs from
                :attr:`dimension`.
        """
        query = as_vector(vector)
        if query.shape[0] != self._dimension:
            raise DimensionMismatchError(self._dimension, int(query.shape[0]))
        if k <= 0 or self._size == 0:
            return []

        if self._distance is Distance.COSINE:
            query = normalize(query)
        cache = cache_value(self._distance, query)

        chunk_size = max(chunk_size, 1)
        ranges = [
            (start, min(start + chunk_size, self._size))
            for start in range(0, self._size, chunk_size)
        ]
        if executor is not None and len(ranges) > 1:
            logger.debug("Scoring %d embeddings in %d chunks", self._size, len(ranges))
            blocks = executor.map(lambda bounds: self._score_range(bounds, query, cache), ranges)
        else:
            blocks = (self._score_range(bounds, query, cache) for bounds in ranges)

        top = BoundedTopK(k)
        for (start, _stop), scores in zip(ranges, blocks):
            for offset, score in enumerate(scores.tolist()):
                top.push(ranking_key(self._distance, score), start + offset, score)

        results: list[SimilarityResult] = []
        for _key, index, score in top.items():
            embedding = self._embeddings[index]
            results.append(
                SimilarityResult(score=score, id=embedding.id, payload=embedding.payload)
            )
        return results
