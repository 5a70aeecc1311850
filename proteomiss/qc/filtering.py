"""Threshold filtering of proteins by missingness."""

from __future__ import annotations

from numbers import Real

import numpy as np

from proteomiss.core.exceptions import InvalidConfigError, InvalidInputError
from proteomiss.core.structures import AbundanceMatrix, MissingnessVector
from proteomiss.qc.missing import compute_missingness

__all__ = [
    "DEFAULT_THRESHOLD",
    "filter_by_threshold",
    "filter_proteins_missing",
]

DEFAULT_THRESHOLD = 0.20


def _check_threshold(threshold: float) -> float:
    if isinstance(threshold, bool) or not isinstance(threshold, Real):
        raise InvalidConfigError(
            f"threshold must be a real number, got {type(threshold).__name__}.",
            parameter="threshold",
            value=threshold,
        )
    if not 0.0 <= threshold <= 1.0:
        raise InvalidConfigError(
            f"threshold must be in [0, 1], got {threshold}.",
            parameter="threshold",
            value=threshold,
        )
    return float(threshold)


def filter_by_threshold(
    matrix: AbundanceMatrix,
    missingness: MissingnessVector,
    threshold: float = DEFAULT_THRESHOLD,
) -> AbundanceMatrix:
    """Keep proteins whose missingness does not exceed ``threshold``.

    Row order and all sample columns are preserved. An empty result is valid;
    the operations that cannot work on it reject it themselves.

    Parameters
    ----------
    matrix : AbundanceMatrix
        Input matrix.
    missingness : MissingnessVector
        Output of :func:`compute_missingness` for ``matrix``.
    threshold : float, default 0.20
        Maximum tolerated fraction of missing samples, inclusive.

    Returns
    -------
    AbundanceMatrix
        New matrix with the retained rows.

    Raises
    ------
    InvalidConfigError
        If ``threshold`` is not a number in [0, 1].
    InvalidInputError
        If ``missingness`` does not describe the rows of ``matrix``.
    """
    threshold = _check_threshold(threshold)
    if len(missingness) != matrix.n_proteins:
        raise InvalidInputError(
            f"Missingness vector has {len(missingness)} entries "
            f"but the matrix has {matrix.n_proteins} proteins."
        )
    if missingness.protein_ids != matrix.protein_ids:
        raise InvalidInputError(
            "Missingness vector protein identifiers do not match the matrix.",
            hint="Recompute missingness on the matrix being filtered.",
        )

    keep = np.flatnonzero(missingness.values <= threshold)
    n_removed = matrix.n_proteins - keep.size

    filtered = matrix.subset_proteins(keep)
    return filtered.log_operation(
        action="filter_by_threshold",
        params={
            "threshold": threshold,
            "n_kept": int(keep.size),
            "n_removed": int(n_removed),
        },
        description=(
            f"Removed {n_removed} of {matrix.n_proteins} proteins with "
            f"missingness above {threshold:.2f}."
        ),
    )


def filter_proteins_missing(
    matrix: AbundanceMatrix,
    threshold: float = DEFAULT_THRESHOLD,
) -> AbundanceMatrix:
    """Compute missingness and filter in one call."""
    return filter_by_threshold(matrix, compute_missingness(matrix), threshold)
