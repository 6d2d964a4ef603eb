"""TinyVector VectorDB – in-memory exact nearest-neighbour search.

This package provides:

- :class:`Registry` – name-keyed store of collections
- :class:`SharedRegistry` – reader-writer guarded registry for concurrent use
- :class:`Collection` / :class:`CollectionSnapshot` – embeddings and top-k queries
- :class:`Distance` – Euclidean, cosine and dot product metrics
- :func:`load_records` – replay stored embeddings into a collection
- :class:`EmbeddingGenerator` – sentence-transformer embedding generation
- :class:`SearchService` – text search over one collection
"""

from tinyvector.vectordb.collection import Collection, CollectionSnapshot, Embedding
from tinyvector.vectordb.embeddings import EmbeddingGenerator
from tinyvector.vectordb.exceptions import (
    AlreadyExistsError,
    DimensionMismatchError,
    EmbeddingError,
    LoaderError,
    NotFoundError,
    VectorStoreError,
)
from tinyvector.vectordb.loader import EmbeddingRecord, LoadReport, load_records, read_records
from tinyvector.vectordb.models import (
    CollectionConfig,
    CollectionInfo,
    Distance,
    SimilarityResult,
)
from tinyvector.vectordb.registry import Registry
from tinyvector.vectordb.service import SearchService
from tinyvector.vectordb.shared import ReadWriteLock, SharedRegistry

__all__ = [
    "AlreadyExistsError",
    "Collection",
    "CollectionConfig",
    "CollectionInfo",
    "CollectionSnapshot",
    "DimensionMismatchError",
    "Distance",
    "Embedding",
    "EmbeddingError",
    "EmbeddingGenerator",
    "EmbeddingRecord",
    "LoadReport",
    "LoaderError",
    "NotFoundError",
    "ReadWriteLock",
    "Registry",
    "SearchService",
    "SharedRegistry",
    "SimilarityResult",
    "VectorStoreError",
    "load_records",
    "read_records",
]
