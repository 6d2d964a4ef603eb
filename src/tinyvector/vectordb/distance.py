"""Distance kernels and vector normalization.

Every kernel scores a whole block of stored vectors against one query at
a time.  Vectors are stored as float32.  Sums of squares are accumulated
in float64 so that large finite components cannot overflow, and results
are returned as float32.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from tinyvector.vectordb.models import Distance

EPSILON = float(np.finfo(np.float32).eps)


def as_vector(values: Sequence[float] | np.ndarray) -> np.ndarray:
    """Return *values* as a one-dimensional float32 array."""
    vector = np.asarray(values, dtype=np.float32)
    if vector.ndim != 1:
        raise ValueError(f"Expected a one-dimensional vector, got shape {vector.shape}")
    return vector


def normalize(vector: np.ndarray, eps: float = EPSILON) -> np.ndarray:
    """Scale *vector* to unit L2 length.

    Vectors whose magnitude is at or below *eps* (including the zero
    vector) are returned unchanged.
    """
    wide = vector.astype(np.float64)
    magnitude = float(np.sqrt(np.dot(wide, wide)))
    if magnitude > eps:
        return (wide / magnitude).astype(np.float32)
    return vector


def cache_value(distance: Distance, query: np.ndarray) -> float:
    """Per-query value shared by every comparison.

    Euclidean reuses the query's sum of squares; the dot-product kernels
    need nothing.
    """
    if distance is Distance.EUCLIDEAN:
        wide = query.astype(np.float64)
        return float(np.dot(wide, wide))
    return 0.0


def euclidean_distances(matrix: np.ndarray, query: np.ndarray, query_sum_squares: float) -> np.ndarray:
    """L2 distance from each row of *matrix* to *query*."""
    wide_matrix = matrix.astype(np.float64)
    cross_terms = wide_matrix @ query.astype(np.float64)
    row_sum_squares = np.einsum("ij,ij->i", wide_matrix, wide_matrix)
    squared = query_sum_squares + row_sum_squares - 2.0 * cross_terms
    # Rounding can push exact matches slightly below zero.
    return np.sqrt(np.maximum(squared, 0.0)).astype(np.float32)


def dot_products(matrix: np.ndarray, query: np.ndarray) -> np.ndarray:
    """Dot product of each row of *matrix* with *query*."""
    return matrix @ query


def score_matrix(
    distance: Distance,
    matrix: np.ndarray,
    query: np.ndarray,
    cache: float,
) -> np.ndarray:
    """Score every row of *matrix* against *query* under *distance*.

    Cosine collections store unit vectors, so cosine similarity is the
    plain dot product once the query is normalized as well.
    """
    if distance is Distance.EUCLIDEAN:
        return euclidean_distances(matrix, query, cache)
    if distance in (Distance.COSINE, Distance.DOT_PRODUCT):
        return dot_products(matrix, query)
    raise ValueError(f"Unsupported distance metric: {distance!r}")


def ranking_key(distance: Distance, score: float) -> float:
    """Map a raw score onto a single lower-is-better scale.

    NaN scores have no defined order and rank as the worst possible value.
    """
    if math.isnan(score):
        return math.inf
    return -score if distance.higher_is_better else score
