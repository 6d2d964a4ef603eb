"""Text search over the shared registry.

:class:`SearchService` is what a serving layer calls: it turns query text
into a vector with an :class:`EmbeddingGenerator` and ranks the stored
embeddings of one collection.  It can also index new ``(id, text)`` pairs
the same way.
"""

from __future__ import annotations

import logging
import time
from typing import Iterable

from tinyvector.vectordb.embeddings import EmbeddingGenerator
from tinyvector.vectordb.exceptions import AlreadyExistsError, EmbeddingError
from tinyvector.vectordb.loader import DEFAULT_COLLECTION
from tinyvector.vectordb.models import SimilarityResult
from tinyvector.vectordb.shared import SharedRegistry

logger = logging.getLogger(__name__)


class SearchService:
    """Embed text and query one collection of a :class:`SharedRegistry`."""

    def __init__(
        self,
        registry: SharedRegistry,
        embedder: EmbeddingGenerator,
        collection: str = DEFAULT_COLLECTION,
        top_k: int = 10,
    ) -> None:
        if top_k < 1:
            raise ValueError("top_k must be at least 1")
        self._registry = registry
        self._embedder = embedder
        self._collection = collection
        self._top_k = top_k

    @property
    def collection(self) -> str:
        return self._collection

    def search(self, text: str, k: int | None = None) -> list[SimilarityResult]:
        """Return the best matches for *text*, best first.

        Args:
            text: Query text.
            k: Number of results; defaults to the service's ``top_k``.
                ``k <= 0`` returns no results.

        Raises:
            ValueError: If *text* is empty.
            EmbeddingError: If the query cannot be embedded.
            NotFoundError: If the collection does not exist.
        """
        started = time.monotonic()
        vector = self._embedder.embed(text)
        logger.info("Encoded query in %.3fs", time.monotonic() - started)

        started = time.monotonic()
        results = self._registry.query(
            self._collection, vector, self._top_k if k is None else k
        )
        logger.info(
            "Search over '%s' returned %d hits in %.3fs",
            self._collection,
            len(results),
            time.monotonic() - started,
        )
        return results

    def index(self, items: Iterable[tuple[str, str]]) -> int:
        """Embed ``(id, text)`` pairs and insert them.

        The text itself is stored as the payload.  The collection is
        created with the registry defaults if it does not exist yet.
        Items that fail to insert are logged and skipped.

        Returns:
            Number of embeddings inserted.
        """
        pairs = list(items)
        if not pairs:
            return 0

        vectors = self._embedder.embed_batch([text for _, text in pairs])
        if len(vectors) != len(pairs):
            raise EmbeddingError(
                f"Embedder returned {len(vectors)} vectors for {len(pairs)} texts"
            )

        if self._collection not in self._registry:
            try:
                self._registry.create_collection(self._collection)
            except AlreadyExistsError:
                # Created by a concurrent caller.
                pass

        return self._registry.insert_many(
            self._collection,
            ((item_id, vector, text) for (item_id, text), vector in zip(pairs, vectors)),
            skip_errors=True,
        )
