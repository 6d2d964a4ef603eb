"""Custom exceptions for the VectorDB module."""

from __future__ import annotations


class VectorStoreError(Exception):
    """Base exception for all VectorDB errors."""


class AlreadyExistsError(VectorStoreError):
    """Raised when a collection name or embedding id is already taken.

    Examples: creating a collection twice, inserting a duplicate id into
    the same collection.
    """


class NotFoundError(VectorStoreError):
    """Raised when a referenced collection does not exist."""


class DimensionMismatchError(VectorStoreError):
    """Raised when a vector's length differs from the collection dimension.

    Attributes:
        expected: The collection's configured dimension.
        actual: The length of the offending vector.
    """

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(
            f"Vector has dimension {actual}, collection expects {expected}"
        )
        self.expected = expected
        self.actual = actual


class EmbeddingError(VectorStoreError):
    """Raised when embedding generation fails.

    Examples: model loading failure, encoder runtime error.
    """


class LoaderError(VectorStoreError):
    """Raised when a record dump cannot be parsed."""
