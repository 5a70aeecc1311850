"""Tests for missingness threshold filtering."""

from __future__ import annotations

import numpy as np
import pytest

from proteomiss.core import AbundanceMatrix, InvalidConfigError, InvalidInputError, MissingnessVector
from proteomiss.qc import compute_missingness, filter_by_threshold, filter_proteins_missing


class TestFilterByThreshold:
    """Row filtering by missing rate."""

    def test_removes_single_sparse_row(self, sparse_rows_matrix):
        v = compute_missingness(sparse_rows_matrix)
        filtered = filter_by_threshold(sparse_rows_matrix, v, 0.20)

        assert filtered.shape == (9, 5)
        assert "P3" not in filtered.protein_ids
        assert filtered.sample_ids == sparse_rows_matrix.sample_ids

    def test_preserves_row_order_and_values(self, sparse_rows_matrix):
        filtered = filter_proteins_missing(sparse_rows_matrix, 0.20)
        assert filtered.protein_ids == ("P0", "P1", "P2", "P4", "P5", "P6", "P7", "P8", "P9")
        np.testing.assert_array_equal(filtered.X, np.delete(sparse_rows_matrix.X, 3, axis=0))

    def test_threshold_is_inclusive(self):
        X = np.array([[1.0, 2.0, 3.0, 4.0, np.nan], [1.0, 2.0, np.nan, np.nan, 5.0]])
        matrix = AbundanceMatrix.from_numpy(X)
        filtered = filter_proteins_missing(matrix, 0.20)
        assert filtered.protein_ids == ("protein_0",)

    def test_idempotent(self, make_matrix):
        matrix = make_matrix(n_proteins=50, n_samples=5, missing_rate=0.25)
        once = filter_proteins_missing(matrix, 0.20)
        twice = filter_proteins_missing(once, 0.20)

        assert twice.protein_ids == once.protein_ids
        assert twice.sample_ids == once.sample_ids
        np.testing.assert_array_equal(twice.X, once.X)
        np.testing.assert_array_equal(twice.M, once.M)

    def test_result_respects_threshold(self, make_matrix):
        matrix = make_matrix(n_proteins=80, n_samples=8, missing_rate=0.3)
        filtered = filter_proteins_missing(matrix, 0.25)
        assert np.all(compute_missingness(filtered).values <= 0.25)

    def test_empty_result_is_valid(self):
        X = np.full((3, 2), np.nan)
        matrix = AbundanceMatrix.from_numpy(X)
        filtered = filter_proteins_missing(matrix, 0.2)
        assert filtered.shape == (0, 2)

    def test_logs_provenance(self, sparse_rows_matrix):
        filtered = filter_proteins_missing(sparse_rows_matrix, 0.20)
        log = filtered.history[-1]
        assert log.action == "filter_by_threshold"
        assert log.params["n_removed"] == 1
        assert sparse_rows_matrix.history == []

    @pytest.mark.parametrize("threshold", [-0.1, 1.5, float("nan"), "0.2", True])
    def test_invalid_threshold(self, sparse_rows_matrix, threshold):
        v = compute_missingness(sparse_rows_matrix)
        with pytest.raises(InvalidConfigError):
            filter_by_threshold(sparse_rows_matrix, v, threshold)

    @pytest.mark.parametrize("threshold", [0.0, 1.0])
    def test_boundary_thresholds(self, sparse_rows_matrix, threshold):
        filtered = filter_proteins_missing(sparse_rows_matrix, threshold)
        assert filtered.n_proteins == (9 if threshold == 0.0 else 10)

    def test_vector_length_mismatch(self, sparse_rows_matrix):
        v = MissingnessVector(values=np.zeros(2), protein_ids=("P0", "P1"))
        with pytest.raises(InvalidInputError):
            filter_by_threshold(sparse_rows_matrix, v, 0.2)

    def test_vector_from_other_matrix(self, sparse_rows_matrix):
        other = AbundanceMatrix.from_numpy(np.ones((10, 5)))
        with pytest.raises(InvalidInputError):
            filter_by_threshold(sparse_rows_matrix, compute_missingness(other), 0.2)
