"""Shared pytest fixtures for proteomiss tests.

Fixtures build small abundance matrices (proteins x samples) with known
missingness, including the reference scenarios used across modules.
"""

from collections.abc import Callable

import numpy as np
import pytest

from proteomiss.core import AbundanceMatrix


@pytest.fixture
def make_matrix() -> Callable[..., AbundanceMatrix]:
    """Factory for correlated log-scale abundance matrices with MCAR holes.

    Returns
    -------
    Callable[..., AbundanceMatrix]
        ``_create(n_proteins, n_samples, missing_rate, seed)``.
    """

    def _create(
        n_proteins: int = 60,
        n_samples: int = 6,
        missing_rate: float = 0.1,
        seed: int = 42,
    ) -> AbundanceMatrix:
        rng = np.random.default_rng(seed)
        protein_level = rng.normal(20.0, 2.0, size=(n_proteins, 1))
        X = protein_level + rng.normal(0.0, 0.5, size=(n_proteins, n_samples))
        missing = rng.random(X.shape) < missing_rate
        # Keep at least one observed value per column
        missing[0, :] = False
        X[missing] = np.nan
        return AbundanceMatrix.from_numpy(X)

    return _create


@pytest.fixture
def sparse_rows_matrix() -> AbundanceMatrix:
    """10 x 5 matrix where only protein P3 exceeds 20% missingness (60%).

    Returns
    -------
    AbundanceMatrix
        Rows P0..P9, samples S0..S4.
    """
    rng = np.random.default_rng(0)
    X = rng.uniform(1.0, 100.0, size=(10, 5))
    X[3, [0, 2, 4]] = np.nan
    return AbundanceMatrix.from_numpy(
        X,
        protein_ids=[f"P{i}" for i in range(10)],
        sample_ids=[f"S{j}" for j in range(5)],
    )


@pytest.fixture
def small_missing_matrix() -> AbundanceMatrix:
    """5 x 4 matrix with exactly three missing cells.

    Returns
    -------
    AbundanceMatrix
        Missing cells at (0, 1), (2, 3) and (4, 0).
    """
    X = np.array(
        [
            [10.0, np.nan, 12.0, 11.0],
            [20.0, 21.0, 19.5, 20.5],
            [15.0, 14.0, 16.0, np.nan],
            [30.0, 31.0, 29.0, 30.5],
            [np.nan, 25.0, 24.0, 26.0],
        ]
    )
    return AbundanceMatrix.from_numpy(X)


@pytest.fixture
def complete_matrix() -> AbundanceMatrix:
    """Matrix without missing values."""
    rng = np.random.default_rng(7)
    return AbundanceMatrix.from_numpy(rng.uniform(5.0, 25.0, size=(20, 4)))
