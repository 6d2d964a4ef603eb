"""Shared, thread-safe access to a :class:`Registry`.

:class:`SharedRegistry` is the single entry point the serving layer uses.
Reads (lookups and queries) run concurrently; writes (create, delete,
insert) are exclusive.  Queries take a snapshot under the read lock and
score it outside the lock, so lock hold time does not grow with
collection size.
"""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from typing import Generator, Iterable, Sequence

import numpy as np

from tinyvector.vectordb.collection import DEFAULT_CHUNK_SIZE, CollectionSnapshot
from tinyvector.vectordb.exceptions import NotFoundError, VectorStoreError
from tinyvector.vectordb.models import CollectionInfo, Distance, SimilarityResult
from tinyvector.vectordb.registry import Registry

logger = logging.getLogger(__name__)

InsertItem = tuple[str, Sequence[float] | np.ndarray, str]


class ReadWriteLock:
    """Writer-preferring reader-writer lock.

    Any number of readers may hold the lock together; a writer holds it
    alone.  Once a writer is waiting, new readers queue behind it.  The
    lock is not reentrant: a thread holding it for reading must not ask
    for it again for writing.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() called without a matching acquire")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() called without a matching acquire")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self) -> Generator[None, None, None]:
        """Hold the lock for reading inside a ``with`` block."""
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self) -> Generator[None, None, None]:
        """Hold the lock exclusively inside a ``with`` block."""
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


class SharedRegistry:
    """Reader-writer guarded registry with a parallel scoring pool.

    Construct one instance at startup and pass it to whatever needs it.
    It never hands out the underlying :class:`Collection`; lookups return
    a :class:`CollectionSnapshot`.

    Example::

        with SharedRegistry() as shared:
            shared.create_collection("default")
            shared.insert("default", "doc-1", vector, "text")
            hits = shared.query("default", query_vector, k=5)
    """

    def __init__(
        self,
        registry: Registry | None = None,
        *,
        scoring_workers: int | None = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """Wrap *registry* (a new empty one by default).

        Args:
            registry: Registry to guard.  Callers must not keep using it
                directly once wrapped.
            scoring_workers: Threads used to score large collections.
                Defaults to the CPU count.
            chunk_size: Embeddings scored per task.
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be at least 1")
        self._registry = registry if registry is not None else Registry()
        self._lock = ReadWriteLock()
        self._scoring_workers = scoring_workers or os.cpu_count() or 1
        self._chunk_size = chunk_size
        self._executor: ThreadPoolExecutor | None = None
        self._executor_lock = threading.Lock()

    @property
    def scoring_workers(self) -> int:
        return self._scoring_workers

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    def _get_executor(self) -> ThreadPoolExecutor | None:
        if self._scoring_workers <= 1:
            return None
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(
                    max_workers=self._scoring_workers,
                    thread_name_prefix="tinyvector-score",
                )
            return self._executor

    def close(self) -> None:
        """Shut down the scoring pool.  Stored data is unaffected."""
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=True)
                self._executor = None

    def __enter__(self) -> SharedRegistry:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_collection(self, name: str) -> CollectionSnapshot | None:
        """Return a read-only snapshot of collection *name*, or ``None``."""
        with self._lock.read_locked():
            collection = self._registry.get_collection(name)
            return collection.snapshot() if collection is not None else None

    def list_collections(self) -> list[CollectionInfo]:
        """Return a summary of every collection."""
        with self._lock.read_locked():
            return self._registry.list_collections()

    def __contains__(self, name: object) -> bool:
        with self._lock.read_locked():
            return name in self._registry

    def query(
        self,
        name: str,
        vector: Sequence[float] | np.ndarray,
        k: int,
    ) -> list[SimilarityResult]:
        """Return the *k* best matches for *vector* in collection *name*.

        Raises:
            NotFoundError: If the collection does not exist.
            DimensionMismatchError: If the query length is wrong.
        """
        snapshot = self.get_collection(name)
        if snapshot is None:
            raise NotFoundError(f"Collection '{name}' does not exist")
        return snapshot.query(
            vector,
            k,
            executor=self._get_executor(),
            chunk_size=self._chunk_size,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_collection(
        self,
        name: str,
        dimension: int | None = None,
        distance: Distance | str | None = None,
    ) -> CollectionSnapshot:
        """Create collection *name*; see :meth:`Registry.create_collection`."""
        with self._lock.write_locked():
            return self._registry.create_collection(name, dimension, distance).snapshot()

    def delete_collection(self, name: str) -> None:
        """Delete collection *name*; see :meth:`Registry.delete_collection`."""
        with self._lock.write_locked():
            self._registry.delete_collection(name)

    def insert(
        self,
        name: str,
        embedding_id: str,
        vector: Sequence[float] | np.ndarray,
        payload: str = "",
    ) -> None:
        """Insert one embedding; see :meth:`Registry.insert`."""
        with self._lock.write_locked():
            self._registry.insert(name, embedding_id, vector, payload)

    def insert_many(
        self,
        name: str,
        items: Iterable[InsertItem],
        *,
        skip_errors: bool = False,
    ) -> int:
        """Insert ``(id, vector, payload)`` items under one exclusive hold.

        Each item is atomic on its own; there is no rollback across items.
        With *skip_errors* the failing items are logged and skipped,
        otherwise the first failure is raised and earlier items stay
        committed.

        Returns:
            Number of embeddings inserted.

        Raises:
            NotFoundError: If the collection does not exist.
        """
        inserted = 0
        with self._lock.write_locked():
            if name not in self._registry:
                raise NotFoundError(f"Collection '{name}' does not exist")
            for embedding_id, vector, payload in items:
                try:
                    self._registry.insert(name, embedding_id, vector, payload)
                except VectorStoreError as exc:
                    if not skip_errors:
                        raise
                    logger.warning("Skipped embedding '%s': %s", embedding_id, exc)
                    continue
                inserted += 1
        return inserted
