"""Data models for the VectorDB module."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Distance(str, Enum):
    """Distance metric used to score a collection."""

    EUCLIDEAN = "euclidean"
    COSINE = "cosine"
    DOT_PRODUCT = "dot"

    @property
    def higher_is_better(self) -> bool:
        """Whether a larger score means a closer match."""
        return self is not Distance.EUCLIDEAN


class CollectionConfig(BaseModel):
    """Shape of a collection, fixed at creation time."""

    dimension: int = Field(
        default=384,
        ge=1,
        description="Length of every vector stored in the collection",
    )
    distance: Distance = Field(
        default=Distance.COSINE,
        description="Metric used for similarity queries",
    )

    model_config = {"frozen": True}


class CollectionInfo(BaseModel):
    """Summary of a registered collection."""

    name: str
    dimension: int
    distance: Distance
    size: int = Field(default=0, ge=0, description="Number of stored embeddings")


class SimilarityResult(BaseModel):
    """A single ranked hit from a similarity query."""

    score: float = Field(
        ...,
        description="Distance (Euclidean, lower is closer) or similarity (higher is closer)",
    )
    id: str = Field(..., description="Identifier of the matched embedding")
    payload: str = Field(default="", description="Opaque payload stored with the embedding")
