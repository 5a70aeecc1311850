"""Little's test of missing completely at random (MCAR).

The null hypothesis is that the probability of a value being missing does not
depend on the data. Rows (proteins) are grouped by their missingness pattern;
for each pattern the mean of the observed variables is compared with the
maximum-likelihood mean estimated by EM under a multivariate normal model.
Under MCAR the weighted squared distances sum to a chi-squared statistic.

Variables are the sample columns and observations are the proteins, matching
the orientation used by the imputer.

References
----------
Little, R. J. A. (1988). A test of missing completely at random for
multivariate data with missing values. Journal of the American Statistical
Association, 83(404), 1198-1202.
"""

from __future__ import annotations

from typing import NamedTuple

import numpy as np
from scipy import linalg, stats

from proteomiss.core.exceptions import InsufficientDataError, InvalidConfigError
from proteomiss.core.structures import AbundanceMatrix

__all__ = [
    "MCARResult",
    "mcar_test",
    "estimate_mvn_em",
]


class MCARResult(NamedTuple):
    """Outcome of :func:`mcar_test`. Unpacks as ``(statistic, df, p_value)``."""

    statistic: float
    df: int
    p_value: float

    def rejects_mcar(self, alpha: float = 0.05) -> bool:
        """True when ``p_value < alpha``: missingness likely depends on the data."""
        return self.p_value < alpha


def _standardize(X: np.ndarray) -> np.ndarray:  # noqa: N803
    # The statistic is invariant to per-column affine maps; this keeps EM well scaled.
    center = np.nanmean(X, axis=0)
    scale = np.nanstd(X, axis=0)
    scale[~(scale > 0)] = 1.0
    return (X - center) / scale


def _group_patterns(observed: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    patterns, inverse = np.unique(observed, axis=0, return_inverse=True)
    return patterns, np.asarray(inverse).ravel()


def estimate_mvn_em(
    X: np.ndarray,  # noqa: N803
    max_iter: int = 200,
    tol: float = 1e-6,
) -> tuple[np.ndarray, np.ndarray, int]:
    """Maximum-likelihood mean and covariance of incomplete normal data.

    Parameters
    ----------
    X : np.ndarray
        Data with ``NaN`` for missing values, shape (n_obs, n_vars). Every row
        must have at least one observed value.
    max_iter : int, default 200
        Maximum number of EM iterations.
    tol : float, default 1e-6
        Stop once no mean or covariance entry moves by more than ``tol``.

    Returns
    -------
    mu : np.ndarray
        Mean vector [n_vars].
    sigma : np.ndarray
        Covariance matrix [n_vars, n_vars].
    n_iter : int
        Iterations performed.
    """
    n, p = X.shape
    observed = ~np.isnan(X)
    patterns, inverse = _group_patterns(observed)

    mu = np.nanmean(X, axis=0)
    sigma = np.diag(np.nanvar(X, axis=0))

    n_iter = 0
    for n_iter in range(1, max_iter + 1):
        t1 = np.zeros(p)
        t2 = np.zeros((p, p))

        for k, pattern in enumerate(patterns):
            rows = X[inverse == k]
            obs_idx = np.flatnonzero(pattern)
            mis_idx = np.flatnonzero(~pattern)

            filled = rows.copy()
            if mis_idx.size:
                s_oo = sigma[np.ix_(obs_idx, obs_idx)]
                s_mo = sigma[np.ix_(mis_idx, obs_idx)]
                coef = s_mo @ linalg.pinvh(s_oo)
                filled[:, mis_idx] = mu[mis_idx] + (rows[:, obs_idx] - mu[obs_idx]) @ coef.T
                residual = sigma[np.ix_(mis_idx, mis_idx)] - coef @ s_mo.T
                t2[np.ix_(mis_idx, mis_idx)] += rows.shape[0] * residual

            t1 += filled.sum(axis=0)
            t2 += filled.T @ filled

        mu_new = t1 / n
        sigma_new = t2 / n - np.outer(mu_new, mu_new)

        delta = max(np.abs(mu_new - mu).max(), np.abs(sigma_new - sigma).max())
        mu, sigma = mu_new, sigma_new
        if delta < tol:
            break

    return mu, sigma, n_iter


def mcar_test(
    matrix: AbundanceMatrix,
    max_iter: int = 200,
    tol: float = 1e-6,
) -> MCARResult:
    """Run Little's MCAR test on an abundance matrix.

    The matrix is only read. Proteins without any observed value carry no
    information and are left out.

    Parameters
    ----------
    matrix : AbundanceMatrix
        Matrix with missing values, usually after :func:`filter_by_threshold`.
    max_iter : int, default 200
        Maximum EM iterations for the mean and covariance estimate.
    tol : float, default 1e-6
        EM convergence tolerance on the standardized scale.

    Returns
    -------
    MCARResult
        ``(statistic, df, p_value)``. A p-value below 0.05 rejects MCAR.

    Raises
    ------
    InvalidConfigError
        If ``max_iter < 1`` or ``tol <= 0``.
    InsufficientDataError
        If the matrix is empty, a sample has no observed value, fewer than two
        missingness patterns exist (a complete matrix included), there are
        fewer proteins than samples, or the degrees of freedom are not
        positive.

    Examples
    --------
    >>> statistic, df, p_value = mcar_test(filtered)
    >>> if p_value < 0.05:
    ...     print("missingness depends on the data")
    """
    if max_iter < 1:
        raise InvalidConfigError(
            f"max_iter must be >= 1, got {max_iter}.", parameter="max_iter", value=max_iter
        )
    if not tol > 0:
        raise InvalidConfigError(f"tol must be > 0, got {tol}.", parameter="tol", value=tol)
    if matrix.n_proteins == 0 or matrix.n_samples == 0:
        raise InsufficientDataError(
            f"MCAR test needs a non-empty matrix, got shape {matrix.shape}."
        )

    X = np.array(matrix.X)  # noqa: N806
    observed = ~np.isnan(X)
    X = X[observed.any(axis=1)]  # noqa: N806
    observed = observed[observed.any(axis=1)]
    n, p = X.shape

    empty_cols = [s for s, has in zip(matrix.sample_ids, observed.any(axis=0)) if not has]
    if empty_cols:
        raise InsufficientDataError(f"Samples without observed values: {empty_cols[:5]}.")
    if n < p:
        raise InsufficientDataError(
            f"MCAR test needs at least as many proteins as samples, got {n} < {p}."
        )

    patterns, inverse = _group_patterns(observed)
    if patterns.shape[0] < 2:
        raise InsufficientDataError(
            f"MCAR test needs at least 2 missingness patterns, found {patterns.shape[0]}.",
            hint="A matrix without missing values has a single pattern.",
        )

    Z = _standardize(X)  # noqa: N806
    mu, sigma, _ = estimate_mvn_em(Z, max_iter=max_iter, tol=tol)

    d2 = 0.0
    df = -p
    for k, pattern in enumerate(patterns):
        obs_idx = np.flatnonzero(pattern)
        rows = Z[inverse == k][:, obs_idx]
        diff = rows.mean(axis=0) - mu[obs_idx]
        precision = linalg.pinvh(sigma[np.ix_(obs_idx, obs_idx)])
        d2 += rows.shape[0] * float(diff @ precision @ diff)
        df += obs_idx.size

    if df <= 0:
        raise InsufficientDataError(
            f"MCAR test has non-positive degrees of freedom ({df})."
        )

    p_value = float(stats.chi2.sf(d2, df))
    return MCARResult(statistic=float(d2), df=int(df), p_value=p_value)
