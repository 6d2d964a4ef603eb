"""Registry – name-keyed store of collections.

The registry owns collection lifecycle and routes inserts and queries to
the right :class:`~tinyvector.vectordb.collection.Collection`.  It holds
no persisted state; a new process starts with an empty registry that an
external loader rebuilds (see :mod:`tinyvector.vectordb.loader`).

This class performs no locking.  Code shared between threads should use
:class:`tinyvector.vectordb.shared.SharedRegistry` instead.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from tinyvector.vectordb.collection import Collection
from tinyvector.vectordb.exceptions import AlreadyExistsError, NotFoundError
from tinyvector.vectordb.models import CollectionConfig, CollectionInfo, Distance

logger = logging.getLogger(__name__)


class Registry:
    """Mapping of collection name to :class:`Collection`.

    Example::

        registry = Registry()
        registry.create_collection("default")
        registry.insert("default", "doc-1", vector, "payload text")
        results = registry.get_collection("default").query(query_vector, k=10)
    """

    def __init__(self, defaults: CollectionConfig | None = None) -> None:
        """Create an empty registry.

        Args:
            defaults: Dimension and metric used when
                :meth:`create_collection` is called without them. Defaults
                to 384-dimensional cosine collections.
        """
        self._defaults = defaults or CollectionConfig()
        self._collections: dict[str, Collection] = {}

    @property
    def defaults(self) -> CollectionConfig:
        """Return the default collection configuration."""
        return self._defaults

    def __len__(self) -> int:
        return len(self._collections)

    def __contains__(self, name: object) -> bool:
        return name in self._collections

    # ------------------------------------------------------------------
    # Collection lifecycle
    # ------------------------------------------------------------------

    def create_collection(
        self,
        name: str,
        dimension: int | None = None,
        distance: Distance | str | None = None,
    ) -> Collection:
        """Register a new, empty collection.

        Args:
            name: Process-wide unique collection name.
            dimension: Vector length; defaults to the registry default.
            distance: Distance metric; defaults to the registry default.

        Returns:
            The new :class:`Collection`.

        Raises:
            AlreadyExistsError: If *name* is already registered.
        """
        if name in self._collections:
            raise AlreadyExistsError(f"Collection '{name}' already exists")

        collection = Collection(
            dimension=dimension if dimension is not None else self._defaults.dimension,
            distance=Distance(distance) if distance is not None else self._defaults.distance,
        )
        self._collections[name] = collection
        logger.info(
            "Created collection '%s' (dimension=%d, distance=%s)",
            name,
            collection.dimension,
            collection.distance.value,
        )
        return collection

    def delete_collection(self, name: str) -> None:
        """Remove a collection and all its embeddings.

        Raises:
            NotFoundError: If *name* is not registered.
        """
        if name not in self._collections:
            raise NotFoundError(f"Collection '{name}' does not exist")
        del self._collections[name]
        logger.info("Deleted collection '%s'", name)

    def get_collection(self, name: str) -> Collection | None:
        """Return the collection registered under *name*, or ``None``."""
        return self._collections.get(name)

    def list_collections(self) -> list[CollectionInfo]:
        """Return a summary of every collection, sorted by name."""
        return [
            CollectionInfo(
                name=name,
                dimension=collection.dimension,
                distance=collection.distance,
                size=len(collection),
            )
            for name, collection in sorted(self._collections.items())
        ]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert(
        self,
        name: str,
        embedding_id: str,
        vector: Sequence[float] | np.ndarray,
        payload: str = "",
    ) -> None:
        """Insert one embedding into collection *name*.

        Cosine collections store the L2-normalized vector.

        Raises:
            NotFoundError: If the collection does not exist.
            DimensionMismatchError: If the vector length is wrong.
            AlreadyExistsError: If *embedding_id* is already in the collection.
        """
        collection = self._collections.get(name)
        if collection is None:
            raise NotFoundError(f"Collection '{name}' does not exist")
        collection.add(embedding_id, vector, payload)
