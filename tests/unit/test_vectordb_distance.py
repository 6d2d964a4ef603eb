"""Unit tests for distance kernels and normalization."""

from __future__ import annotations

import math

import numpy as np
import pytest

from tinyvector.vectordb.distance import (
    EPSILON,
    as_vector,
    cache_value,
    dot_products,
    euclidean_distances,
    normalize,
    ranking_key,
    score_matrix,
)
from tinyvector.vectordb.models import Distance


class TestAsVector:
    def test_list_becomes_float32(self) -> None:
        vec = as_vector([1, 2, 3])
        assert vec.dtype == np.float32
        assert vec.shape == (3,)

    def test_rejects_matrix(self) -> None:
        with pytest.raises(ValueError, match="one-dimensional"):
            as_vector([[1.0, 2.0], [3.0, 4.0]])


class TestNormalize:
    def test_unit_length(self) -> None:
        vec = normalize(as_vector([3.0, 4.0]))
        assert np.allclose(vec, [0.6, 0.8])
        assert math.isclose(float(np.linalg.norm(vec)), 1.0, rel_tol=1e-6)

    def test_zero_vector_unchanged(self) -> None:
        zero = as_vector([0.0, 0.0, 0.0])
        assert np.array_equal(normalize(zero), zero)

    def test_tiny_vector_unchanged(self) -> None:
        tiny = as_vector([EPSILON / 10, 0.0])
        assert np.array_equal(normalize(tiny), tiny)

    def test_keeps_float32(self) -> None:
        assert normalize(as_vector([1.0, 1.0])).dtype == np.float32

    def test_large_components_do_not_overflow(self) -> None:
        vec = normalize(as_vector([3e19, 4e19]))
        assert vec.dtype == np.float32
        assert np.allclose(vec, [0.6, 0.8])
        assert math.isclose(float(np.linalg.norm(vec)), 1.0, rel_tol=1e-6)


class TestCacheValue:
    def test_euclidean_is_sum_of_squares(self) -> None:
        assert cache_value(Distance.EUCLIDEAN, as_vector([1.0, 2.0, 2.0])) == pytest.approx(9.0)

    def test_other_metrics_are_zero(self) -> None:
        q = as_vector([1.0, 2.0])
        assert cache_value(Distance.COSINE, q) == 0.0
        assert cache_value(Distance.DOT_PRODUCT, q) == 0.0


class TestKernels:
    def _matrix(self) -> np.ndarray:
        return np.array([[1, 0, 0], [0, 1, 0], [2, 0, 0]], dtype=np.float32)

    def test_euclidean_distances(self) -> None:
        q = as_vector([1.0, 0.0, 0.0])
        dists = euclidean_distances(self._matrix(), q, cache_value(Distance.EUCLIDEAN, q))
        assert dists.tolist() == pytest.approx([0.0, math.sqrt(2), 1.0])

    def test_euclidean_never_negative(self) -> None:
        q = as_vector([0.1, 0.2, 0.3])
        m = np.stack([q, q])
        dists = euclidean_distances(m, q, cache_value(Distance.EUCLIDEAN, q))
        assert (dists >= 0).all()
        assert not np.isnan(dists).any()

    def test_euclidean_large_components_stay_finite(self) -> None:
        q = as_vector([3e19, 4e19, 0.0])
        m = np.array([[0.0, 0.0, 0.0], [3e19, 4e19, 0.0]], dtype=np.float32)
        dists = euclidean_distances(m, q, cache_value(Distance.EUCLIDEAN, q))
        assert dists.dtype == np.float32
        assert np.isfinite(dists).all()
        assert dists[0] == pytest.approx(5e19, rel=1e-6)
        assert dists[1] == pytest.approx(0.0, abs=1e13)

    def test_dot_products(self) -> None:
        q = as_vector([1.0, 2.0, 3.0])
        assert dot_products(self._matrix(), q).tolist() == pytest.approx([1.0, 2.0, 2.0])

    def test_score_matrix_dispatch(self) -> None:
        q = as_vector([1.0, 0.0, 0.0])
        m = self._matrix()
        assert score_matrix(Distance.DOT_PRODUCT, m, q, 0.0).tolist() == pytest.approx([1.0, 0.0, 2.0])
        assert score_matrix(Distance.COSINE, m, q, 0.0).tolist() == pytest.approx([1.0, 0.0, 2.0])
        assert score_matrix(Distance.EUCLIDEAN, m, q, 1.0).tolist() == pytest.approx(
            [0.0, math.sqrt(2), 1.0]
        )


class TestRankingKey:
    def test_euclidean_keeps_sign(self) -> None:
        assert ranking_key(Distance.EUCLIDEAN, 2.5) == 2.5

    def test_similarity_metrics_negate(self) -> None:
        assert ranking_key(Distance.COSINE, 0.9) == -0.9
        assert ranking_key(Distance.DOT_PRODUCT, 4.0) == -4.0

    def test_nan_is_worst(self) -> None:
        for distance in Distance:
            assert ranking_key(distance, float("nan")) == math.inf
