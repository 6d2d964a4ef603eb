"""Bulk loading of previously computed embeddings.

The registry is never persisted.  At startup an external dump of
``(id, vector, payload)`` records is replayed into a single well-known
collection, one insert at a time (or in batches when asked).  A record
that fails to insert is logged and skipped; records loaded before it stay
committed.

Dumps are JSON Lines, one record per line::

    {"id": "src/main.rs", "vector": [0.1, 0.2, ...], "payload": "fn main() {...}"}
"""

from __future__ import annotations

import json
import logging
import time
from itertools import islice
from pathlib import Path
from typing import Iterable, Iterator

from pydantic import BaseModel, Field, ValidationError

from tinyvector.vectordb.exceptions import LoaderError, VectorStoreError
from tinyvector.vectordb.models import Distance
from tinyvector.vectordb.shared import SharedRegistry

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "default"


class EmbeddingRecord(BaseModel):
    """One stored embedding as produced by the ingestion pipeline."""

    id: str = Field(..., min_length=1)
    vector: list[float] = Field(..., min_length=1)
    payload: str = ""


class LoadReport(BaseModel):
    """Outcome of a bulk load."""

    collection: str
    total: int = 0
    loaded: int = 0
    skipped: int = 0
    elapsed_seconds: float = 0.0

    @property
    def created(self) -> bool:
        """Whether a collection was created (i.e. there was anything to load)."""
        return self.total > 0


def read_records(path: Path) -> Iterator[EmbeddingRecord]:
    """Stream :class:`EmbeddingRecord` objects from a JSON Lines file.

    Blank lines are ignored.

    Raises:
        LoaderError: If the file is missing or a line is not a valid record.
    """
    if not path.is_file():
        raise LoaderError(f"Record file not found: {path}")

    with open(path, encoding="utf-8") as fh:
        for line_no, line in enumerate(fh, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                yield EmbeddingRecord.model_validate(json.loads(line))
            except (json.JSONDecodeError, ValidationError) as exc:
                raise LoaderError(f"{path}:{line_no}: invalid record: {exc}") from exc


def _batched(records: Iterable[EmbeddingRecord], size: int) -> Iterator[list[EmbeddingRecord]]:
    iterator = iter(records)
    while batch := list(islice(iterator, size)):
        yield batch


def load_records(
    shared: SharedRegistry,
    records: Iterable[EmbeddingRecord],
    collection: str = DEFAULT_COLLECTION,
    dimension: int | None = None,
    distance: Distance | str | None = None,
    batch_size: int | None = None,
) -> LoadReport:
    """Replay *records* into *collection*.

    When *records* is empty nothing is created and the registry stays as
    it was.  Otherwise the collection is created (failing if it already
    exists) and every record is inserted.

    Args:
        shared: Registry to populate.
        records: Records to insert, in order.
        collection: Target collection name.
        dimension: Collection dimension; defaults to the registry default.
        distance: Collection metric; defaults to the registry default.
        batch_size: When set, insert this many records per exclusive lock
            acquisition instead of one.

    Returns:
        A :class:`LoadReport` with loaded and skipped counts.

    Raises:
        AlreadyExistsError: If *collection* already exists.
    """
    started = time.monotonic()
    report = LoadReport(collection=collection)

    iterator = iter(records)
    first = next(iterator, None)
    if first is None:
        logger.info("No records to load into '%s'", collection)
        return report

    shared.create_collection(collection, dimension, distance)

    def _all() -> Iterator[EmbeddingRecord]:
        yield first
        yield from iterator

    if batch_size:
        for batch in _batched(_all(), batch_size):
            inserted = shared.insert_many(
                collection,
                ((r.id, r.vector, r.payload) for r in batch),
                skip_errors=True,
            )
            report.total += len(batch)
            report.loaded += inserted
            report.skipped += len(batch) - inserted
    else:
        for record in _all():
            report.total += 1
            try:
                shared.insert(collection, record.id, record.vector, record.payload)
            except VectorStoreError as exc:
                logger.warning("Skipped record '%s': %s", record.id, exc)
                report.skipped += 1
                continue
            report.loaded += 1

    report.elapsed_seconds = time.monotonic() - started
    logger.info(
        "Loaded %d/%d records into '%s' in %.2fs",
        report.loaded,
        report.total,
        collection,
        report.elapsed_seconds,
    )
    return report
