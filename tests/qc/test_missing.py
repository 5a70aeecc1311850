"""Tests for missing value analysis.

Tests cover:
- compute_missingness: exact per-protein rates
- compute_sample_missingness: per-sample rates
- summarize_missingness: report contents and validation
"""

from __future__ import annotations

import numpy as np
import pytest

from proteomiss.core import AbundanceMatrix, InvalidConfigError, InvalidInputError
from proteomiss.qc.missing import (
    MissingValueReport,
    compute_missingness,
    compute_sample_missingness,
    count_missing_patterns,
    summarize_missingness,
)


class TestComputeMissingness:
    """Per-protein missing rate."""

    def test_zero_half_and_full_rows(self):
        X = np.array(
            [
                [1.0, 2.0, 3.0, 4.0],
                [1.0, np.nan, 3.0, np.nan],
                [np.nan, np.nan, np.nan, np.nan],
            ]
        )
        v = compute_missingness(AbundanceMatrix.from_numpy(X))
        np.testing.assert_array_equal(v.values, [0.0, 0.5, 1.0])

    def test_matches_count_over_columns(self, make_matrix):
        matrix = make_matrix(n_proteins=30, n_samples=7, missing_rate=0.3)
        v = compute_missingness(matrix)
        expected = np.isnan(matrix.X).sum(axis=1) / 7
        np.testing.assert_array_equal(v.values, expected)

    def test_keeps_protein_ids(self, sparse_rows_matrix):
        v = compute_missingness(sparse_rows_matrix)
        assert v.protein_ids == sparse_rows_matrix.protein_ids
        assert v[3] == pytest.approx(0.6)

    def test_zero_columns_rejected(self):
        matrix = AbundanceMatrix.from_numpy(np.empty((3, 0)))
        with pytest.raises(InvalidInputError):
            compute_missingness(matrix)

    def test_zero_rows_gives_empty_vector(self):
        v = compute_missingness(AbundanceMatrix.from_numpy(np.empty((0, 4))))
        assert len(v) == 0

    def test_input_not_modified(self, sparse_rows_matrix):
        before = sparse_rows_matrix.X.copy()
        compute_missingness(sparse_rows_matrix)
        np.testing.assert_array_equal(sparse_rows_matrix.X, before)
        assert sparse_rows_matrix.history == []


class TestSampleMissingness:
    """Per-sample missing rate."""

    def test_rates(self):
        X = np.array([[1.0, np.nan], [np.nan, np.nan]])
        rates = compute_sample_missingness(AbundanceMatrix.from_numpy(X))
        np.testing.assert_array_equal(rates, [0.5, 1.0])

    def test_zero_rows_rejected(self):
        with pytest.raises(InvalidInputError):
            compute_sample_missingness(AbundanceMatrix.from_numpy(np.empty((0, 2))))


class TestSummarizeMissingness:
    """Missing value report."""

    def test_report_fields(self):
        X = np.array(
            [
                [1.0, 2.0, np.nan],
                [np.nan, np.nan, np.nan],
                [1.0, 2.0, np.nan],
                [1.0, np.nan, 3.0],
            ]
        )
        matrix = AbundanceMatrix.from_numpy(X, sample_ids=["a", "b", "c"])
        report = summarize_missingness(matrix)

        assert isinstance(report, MissingValueReport)
        assert report.total_missing_rate == pytest.approx(6 / 12)
        assert report.fully_missing_proteins == ["protein_1"]
        assert report.samples_with_high_missing == ["c"]
        assert report.n_patterns == 3
        np.testing.assert_allclose(report.sample_missing_rate, [0.25, 0.5, 0.75])

    def test_cutoff_validation(self, sparse_rows_matrix):
        with pytest.raises(InvalidConfigError):
            summarize_missingness(sparse_rows_matrix, high_missing_cutoff=1.5)

    def test_pattern_count_complete(self, complete_matrix):
        assert count_missing_patterns(complete_matrix) == 1
