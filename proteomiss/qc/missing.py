"""Missing value analysis for proteomics abundance matrices.

Missingness is the fraction of samples in which a protein was not measured
(``NaN`` in :attr:`AbundanceMatrix.X`). Imputed cells are not missing: they
carry :attr:`MaskCode.IMPUTED` and a finite value.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from proteomiss.core.exceptions import InvalidConfigError, InvalidInputError
from proteomiss.core.structures import AbundanceMatrix, MissingnessVector

__all__ = [
    "MissingValueReport",
    "compute_missingness",
    "compute_sample_missingness",
    "count_missing_patterns",
    "summarize_missingness",
]


@dataclass
class MissingValueReport:
    """Missing value analysis report.

    Attributes
    ----------
    total_missing_rate : float
        Overall proportion of missing cells.
    protein_missing_rate : np.ndarray
        Missing rate for each protein [n_proteins].
    sample_missing_rate : np.ndarray
        Missing rate for each sample [n_samples].
    fully_missing_proteins : list[str]
        Proteins without a single observed value.
    samples_with_high_missing : list[str]
        Samples whose missing rate exceeds the report cutoff.
    n_patterns : int
        Number of distinct row-wise missingness patterns.
    """

    total_missing_rate: float
    protein_missing_rate: np.ndarray
    sample_missing_rate: np.ndarray
    fully_missing_proteins: list[str]
    samples_with_high_missing: list[str]
    n_patterns: int


def compute_missingness(matrix: AbundanceMatrix) -> MissingnessVector:
    """Compute the fraction of missing entries of every protein.

    Parameters
    ----------
    matrix : AbundanceMatrix
        Input matrix, proteins as rows.

    Returns
    -------
    MissingnessVector
        ``values[i]`` is the missing count of row ``i`` divided by the number
        of samples.

    Raises
    ------
    InvalidInputError
        If the matrix has no sample columns.

    Examples
    --------
    >>> m = AbundanceMatrix.from_numpy(np.array([[1.0, np.nan], [2.0, 3.0]]))
    >>> compute_missingness(m).values
    array([0.5, 0. ])
    """
    if matrix.n_samples == 0:
        raise InvalidInputError(
            "Cannot compute missingness of a matrix with zero sample columns."
        )
    counts = matrix.missing_mask.sum(axis=1)
    return MissingnessVector(values=counts / matrix.n_samples, protein_ids=matrix.protein_ids)


def compute_sample_missingness(matrix: AbundanceMatrix) -> np.ndarray:
    """Fraction of missing entries of every sample (column)."""
    if matrix.n_proteins == 0:
        raise InvalidInputError("Cannot compute missingness of a matrix with zero proteins.")
    return matrix.missing_mask.sum(axis=0) / matrix.n_proteins


def count_missing_patterns(matrix: AbundanceMatrix) -> int:
    """Number of distinct missingness patterns across proteins."""
    if matrix.n_proteins == 0:
        return 0
    return int(np.unique(matrix.missing_mask, axis=0).shape[0])


def summarize_missingness(
    matrix: AbundanceMatrix,
    high_missing_cutoff: float = 0.5,
) -> MissingValueReport:
    """Summarize missing values per protein, per sample and overall.

    Parameters
    ----------
    matrix : AbundanceMatrix
        Input matrix.
    high_missing_cutoff : float, default 0.5
        Samples with a missing rate strictly above this value are listed in
        :attr:`MissingValueReport.samples_with_high_missing`.

    Returns
    -------
    MissingValueReport

    Raises
    ------
    InvalidInputError
        If the matrix has no rows or no columns.
    InvalidConfigError
        If ``high_missing_cutoff`` is outside [0, 1].
    """
    if not 0.0 <= high_missing_cutoff <= 1.0:
        raise InvalidConfigError(
            f"high_missing_cutoff must be in [0, 1], got {high_missing_cutoff}.",
            parameter="high_missing_cutoff",
            value=high_missing_cutoff,
        )
    protein_rate = compute_missingness(matrix).values
    sample_rate = compute_sample_missingness(matrix)

    fully_missing = [
        pid for pid, rate in zip(matrix.protein_ids, protein_rate) if rate == 1.0
    ]
    high_samples = [
        sid for sid, rate in zip(matrix.sample_ids, sample_rate) if rate > high_missing_cutoff
    ]

    return MissingValueReport(
        total_missing_rate=float(matrix.n_missing / matrix.X.size),
        protein_missing_rate=protein_rate,
        sample_missing_rate=sample_rate,
        fully_missing_proteins=fully_missing,
        samples_with_high_missing=high_samples,
        n_patterns=count_missing_patterns(matrix),
    )
