"""Unit tests for ReadWriteLock and SharedRegistry."""

from __future__ import annotations

import threading
import time
from typing import Iterator

import numpy as np
import pytest

from tinyvector.vectordb.collection import CollectionSnapshot
from tinyvector.vectordb.exceptions import (
    AlreadyExistsError,
    DimensionMismatchError,
    NotFoundError,
)
from tinyvector.vectordb.models import CollectionConfig, Distance
from tinyvector.vectordb.registry import Registry
from tinyvector.vectordb.shared import ReadWriteLock, SharedRegistry


# ---------------------------------------------------------------------------
# ReadWriteLock
# ---------------------------------------------------------------------------


class TestReadWriteLock:
    def test_readers_share_the_lock(self) -> None:
        lock = ReadWriteLock()
        inside = threading.Barrier(3, timeout=5)

        def reader() -> None:
            with lock.read_locked():
                # All three readers must be inside at once to pass.
                inside.wait()

        threads = [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)
        assert not inside.broken

    def test_writer_excludes_readers(self) -> None:
        lock = ReadWriteLock()
        events: list[str] = []
        lock.acquire_write()

        def reader() -> None:
            with lock.read_locked():
                events.append("read")

        t = threading.Thread(target=reader)
        t.start()
        time.sleep(0.05)
        events.append("write-done")
        lock.release_write()
        t.join(timeout=5)
        assert events == ["write-done", "read"]

    def test_writer_waits_for_readers(self) -> None:
        lock = ReadWriteLock()
        events: list[str] = []
        lock.acquire_read()

        def writer() -> None:
            with lock.write_locked():
                events.append("write")

        t = threading.Thread(target=writer)
        t.start()
        time.sleep(0.05)
        events.append("read-done")
        lock.release_read()
        t.join(timeout=5)
        assert events == ["read-done", "write"]

    def test_waiting_writer_blocks_new_readers(self) -> None:
        lock = ReadWriteLock()
        events: list[str] = []
        lock.acquire_read()

        def writer() -> None:
            with lock.write_locked():
                events.append("write")

        def late_reader() -> None:
            with lock.read_locked():
                events.append("late-read")

        w = threading.Thread(target=writer)
        w.start()
        time.sleep(0.05)
        r = threading.Thread(target=late_reader)
        r.start()
        time.sleep(0.05)
        lock.release_read()
        w.join(timeout=5)
        r.join(timeout=5)
        assert events == ["write", "late-read"]

    def test_unbalanced_release_raises(self) -> None:
        lock = ReadWriteLock()
        with pytest.raises(RuntimeError):
            lock.release_read()
        with pytest.raises(RuntimeError):
            lock.release_write()

    def test_released_after_exception(self) -> None:
        lock = ReadWriteLock()
        with pytest.raises(ValueError):
            with lock.write_locked():
                raise ValueError("boom")
        # Would block forever if the write hold leaked.
        with lock.read_locked():
            pass


# ---------------------------------------------------------------------------
# SharedRegistry
# ---------------------------------------------------------------------------


@pytest.fixture
def shared() -> Iterator[SharedRegistry]:
    registry = Registry(CollectionConfig(dimension=3, distance=Distance.EUCLIDEAN))
    with SharedRegistry(registry, scoring_workers=2, chunk_size=8) as shared:
        yield shared


class TestSharedRegistryConstruction:
    def test_defaults(self) -> None:
        shared = SharedRegistry()
        assert shared.scoring_workers >= 1
        assert shared.chunk_size > 0
        snap = shared.create_collection("default")
        assert snap.dimension == 384
        assert snap.distance is Distance.COSINE

    def test_chunk_size_validated(self) -> None:
        with pytest.raises(ValueError):
            SharedRegistry(chunk_size=0)

    def test_close_is_idempotent(self) -> None:
        shared = SharedRegistry(scoring_workers=2)
        shared.close()
        shared.close()


class TestSharedRegistryOperations:
    def test_create_returns_snapshot(self, shared: SharedRegistry) -> None:
        snap = shared.create_collection("docs")
        assert isinstance(snap, CollectionSnapshot)
        assert snap.size == 0

    def test_get_collection_returns_snapshot(self, shared: SharedRegistry) -> None:
        shared.create_collection("docs")
        shared.insert("docs", "a", [1, 0, 0], "A")
        snap = shared.get_collection("docs")
        assert isinstance(snap, CollectionSnapshot)
        assert snap.size == 1

    def test_get_missing_returns_none(self, shared: SharedRegistry) -> None:
        assert shared.get_collection("missing") is None

    def test_snapshot_unaffected_by_later_writes(self, shared: SharedRegistry) -> None:
        shared.create_collection("docs")
        shared.insert("docs", "a", [1, 0, 0])
        snap = shared.get_collection("docs")
        shared.insert("docs", "b", [0, 1, 0])
        assert snap.size == 1
        assert shared.get_collection("docs").size == 2

    def test_errors_propagate(self, shared: SharedRegistry) -> None:
        shared.create_collection("docs")
        with pytest.raises(AlreadyExistsError):
            shared.create_collection("docs")
        with pytest.raises(NotFoundError):
            shared.delete_collection("missing")
        with pytest.raises(NotFoundError):
            shared.insert("missing", "a", [1, 0, 0])
        with pytest.raises(DimensionMismatchError):
            shared.insert("docs", "a", [1, 0])

    def test_query(self, shared: SharedRegistry) -> None:
        shared.create_collection("e")
        shared.insert("e", "a", [1, 0, 0])
        shared.insert("e", "b", [0, 1, 0])
        shared.insert("e", "c", [2, 0, 0])
        results = shared.query("e", [1, 0, 0], 2)
        assert [r.id for r in results] == ["a", "c"]

    def test_query_missing_collection(self, shared: SharedRegistry) -> None:
        with pytest.raises(NotFoundError):
            shared.query("missing", [1, 0, 0], 3)

    def test_query_uses_parallel_chunks(self, shared: SharedRegistry) -> None:
        rng = np.random.default_rng(1)
        shared.create_collection("big")
        vectors = rng.normal(size=(100, 3)).astype(np.float32)
        for i, vec in enumerate(vectors):
            shared.insert("big", str(i), vec)
        query = np.zeros(3, dtype=np.float32)
        expected = np.argsort(np.linalg.norm(vectors, axis=1), kind="stable")[:5]
        assert [int(r.id) for r in shared.query("big", query, 5)] == expected.tolist()

    def test_delete(self, shared: SharedRegistry) -> None:
        shared.create_collection("docs")
        shared.delete_collection("docs")
        assert "docs" not in shared

    def test_list_collections(self, shared: SharedRegistry) -> None:
        shared.create_collection("b")
        shared.create_collection("a")
        assert [i.name for i in shared.list_collections()] == ["a", "b"]


class TestInsertMany:
    def test_inserts_all(self, shared: SharedRegistry) -> None:
        shared.create_collection("docs")
        count = shared.insert_many(
            "docs", [("a", [1, 0, 0], "A"), ("b", [0, 1, 0], "B")]
        )
        assert count == 2
        assert shared.get_collection("docs").size == 2

    def test_missing_collection(self, shared: SharedRegistry) -> None:
        with pytest.raises(NotFoundError):
            shared.insert_many("missing", [("a", [1, 0, 0], "")])

    def test_failure_keeps_earlier_items(self, shared: SharedRegistry) -> None:
        shared.create_collection("docs")
        items = [("a", [1, 0, 0], ""), ("bad", [1, 0], ""), ("c", [0, 0, 1], "")]
        with pytest.raises(DimensionMismatchError):
            shared.insert_many("docs", items)
        snap = shared.get_collection("docs")
        assert [e.id for e in snap.embeddings()] == ["a"]

    def test_skip_errors(self, shared: SharedRegistry) -> None:
        shared.create_collection("docs")
        items = [
            ("a", [1, 0, 0], ""),
            ("bad", [1, 0], ""),
            ("a", [0, 1, 0], ""),
            ("c", [0, 0, 1], ""),
        ]
        assert shared.insert_many("docs", items, skip_errors=True) == 2
        assert [e.id for e in shared.get_collection("docs").embeddings()] == ["a", "c"]


class TestConcurrency:
    def test_concurrent_inserts_and_queries(self) -> None:
        shared = SharedRegistry(
            Registry(CollectionConfig(dimension=4, distance=Distance.DOT_PRODUCT)),
            scoring_workers=4,
            chunk_size=16,
        )
        shared.create_collection("docs")
        errors: list[BaseException] = []
        writers, per_writer = 4, 50

        def writer(worker: int) -> None:
            try:
                for i in range(per_writer):
                    shared.insert("docs", f"w{worker}-{i}", [1.0, worker, i, 0.0])
            except BaseException as exc:  # noqa: BLE001
                errors.append(exc)

        def reader() -> None:
            try:
                for _ in range(50):
                    results = shared.query("docs", [1.0, 0.0, 0.0, 0.0], 5)
                    assert len(results) <= 5
                    assert all(r.score == pytest.approx(1.0) for r in results)
            except BaseException as exc:  # noqa: BLE001
                errors.append(exc)

        threads = [threading.Thread(target=writer, args=(w,)) for w in range(writers)]
        threads += [threading.Thread(target=reader) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=30)
        shared.close()

        assert errors == []
        snap = shared.get_collection("docs")
        assert snap.size == writers * per_writer
        assert len({e.id for e in snap.embeddings()}) == writers * per_writer

    def test_concurrent_duplicate_creates(self) -> None:
        shared = SharedRegistry()
        outcomes: list[str] = []
        lock = threading.Lock()

        def create() -> None:
            try:
                shared.create_collection("only-once")
                result = "created"
            except AlreadyExistsError:
                result = "exists"
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=create) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=5)
        assert outcomes.count("created") == 1
        assert outcomes.count("exists") == 7
