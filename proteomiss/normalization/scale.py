"""Per-sample normalization of abundance matrices.

Every method maps each sample column through ``x -> x / factor + shift`` with
a strictly positive ``factor``, so the order of values within a column never
changes. Missing values stay missing.
"""

from __future__ import annotations

import warnings
from collections.abc import Callable

import numpy as np

from proteomiss.core.exceptions import InvalidConfigError, InvalidInputError
from proteomiss.core.structures import AbundanceMatrix

__all__ = [
    "NORMALIZATIONS",
    "normalize_scale",
    "normalize_mad",
    "normalize_none",
    "normalize",
    "log_transform",
]

NormalizeFunc = Callable[[np.ndarray], tuple[np.ndarray, np.ndarray]]


def _safe_factors(spread: np.ndarray, reference: float, label: str) -> np.ndarray:
    usable = np.isfinite(spread) & (spread > 0)
    if not usable.all():
        warnings.warn(
            f"{int((~usable).sum())} sample(s) have zero or undefined {label}; "
            "they are left unscaled.",
            stacklevel=3,
        )
    factors = np.ones_like(spread, dtype=np.float64)
    factors[usable] = spread[usable] / reference
    return factors


def normalize_scale(X: np.ndarray) -> tuple[np.ndarray, np.ndarray]:  # noqa: N803
    """Scale columns to a common median absolute value.

    Mathematical Formulation:
        s_j = median(|X[:, j]|)
        factor_j = s_j / exp(mean(log(s)))
        X_normalized[:, j] = X[:, j] / factor_j

    The factors have geometric mean one, so the overall level of the data is
    kept.

    Returns
    -------
    factors : np.ndarray
        Per-sample divisors.
    shifts : np.ndarray
        Per-sample offsets (all zero).
    """
    abs_median = np.nanmedian(np.abs(X), axis=0)
    usable = np.isfinite(abs_median) & (abs_median > 0)
    reference = float(np.exp(np.mean(np.log(abs_median[usable])))) if usable.any() else 1.0
    factors = _safe_factors(abs_median, reference, "median absolute value")
    return factors, np.zeros(X.shape[1])


def normalize_mad(X: np.ndarray) -> tuple[np.ndarray, np.ndarray]:  # noqa: N803
    """Center columns on a common median and scale them to a common MAD.

    Mathematical Formulation:
        med_j = median(X[:, j]),  mad_j = median(|X[:, j] - med_j|)
        X_normalized[:, j] = (X[:, j] - med_j) * median(mad) / mad_j + median(med)

    Returns
    -------
    factors : np.ndarray
        Per-sample divisors ``mad_j / median(mad)``.
    shifts : np.ndarray
        Per-sample offsets ``median(med) - med_j / factor_j``.
    """
    med = np.nanmedian(X, axis=0)
    mad = np.nanmedian(np.abs(X - med), axis=0)
    usable = np.isfinite(mad) & (mad > 0)
    reference = float(np.median(mad[usable])) if usable.any() else 1.0
    factors = _safe_factors(mad, reference, "median absolute deviation")
    shifts = np.nanmedian(med) - med / factors
    return factors, shifts


def normalize_none(X: np.ndarray) -> tuple[np.ndarray, np.ndarray]:  # noqa: N803
    return np.ones(X.shape[1]), np.zeros(X.shape[1])


NORMALIZATIONS: dict[str, NormalizeFunc] = {
    "scale": normalize_scale,
    "mad": normalize_mad,
    "none": normalize_none,
}


def normalize(
    matrix: AbundanceMatrix,
    method: str = "scale",
) -> tuple[AbundanceMatrix, np.ndarray, np.ndarray]:
    """Normalize the sample columns of a matrix.

    Parameters
    ----------
    matrix : AbundanceMatrix
        Input matrix.
    method : str, default "scale"
        One of ``"scale"``, ``"mad"`` or ``"none"``.

    Returns
    -------
    normalized : AbundanceMatrix
        New matrix with ``X / factors + shifts``.
    factors : np.ndarray
        Per-sample divisors (all positive).
    shifts : np.ndarray
        Per-sample offsets.

    Raises
    ------
    InvalidConfigError
        If the method is unknown.
    """
    if method not in NORMALIZATIONS:
        raise InvalidConfigError(
            f"Unknown normalization '{method}'.",
            parameter="normalization",
            value=method,
            hint=f"Available normalizations: {', '.join(NORMALIZATIONS)}.",
        )
    if matrix.n_proteins == 0 or matrix.n_samples == 0:
        factors, shifts = np.ones(matrix.n_samples), np.zeros(matrix.n_samples)
    else:
        factors, shifts = NORMALIZATIONS[method](matrix.X)

    X_norm = matrix.X / factors + shifts  # noqa: N806
    normalized = matrix.with_values(X_norm, M=matrix.M).log_operation(
        action=f"normalization_{method}",
        params={"method": method},
        description=f"Per-sample '{method}' normalization of {matrix.n_samples} sample(s).",
    )
    return normalized, factors, shifts


def log_transform(
    matrix: AbundanceMatrix,
    base: float = 2.0,
    offset: float = 1.0,
) -> AbundanceMatrix:
    """Return ``log_base(X + offset)``; missing values stay missing.

    Raises
    ------
    InvalidConfigError
        If ``base`` is not positive or equals one.
    InvalidInputError
        If ``X + offset`` has non-positive observed entries.
    """
    if not base > 0 or base == 1:
        raise InvalidConfigError(
            f"Log base must be positive and different from 1, got {base}.",
            parameter="base",
            value=base,
        )
    shifted = matrix.X + offset
    if np.any(shifted[~np.isnan(shifted)] <= 0):
        raise InvalidInputError(
            f"log_transform requires X + offset > 0 for observed values (offset={offset}).",
            hint="Increase the offset or remove negative abundances.",
        )
    X_log = np.log(shifted) / np.log(base)  # noqa: N806
    return matrix.with_values(X_log, M=matrix.M).log_operation(
        action="log_transform",
        params={"base": base, "offset": offset},
        description=f"Log{base:g} transform with offset {offset:g}.",
    )
