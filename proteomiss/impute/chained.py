"""Multiple imputation by chained equations.

Each ensemble member runs an independent chain:

1. Initialization: every missing cell receives a random draw from the
   observed values of its column.
2. Iteration: columns with missing cells are visited in ascending order of
   missing count. A conditional model (see :mod:`proteomiss.impute.methods`)
   is fitted on the rows where the column is observed, with all other
   columns (observed or currently imputed) as predictors, and the missing
   rows of the column are replaced by fresh draws from it.
3. Stop after ``max_iterations`` or, when ``tol`` is given, once the
   relative squared change of the imputed cells falls below it.

Columns are samples and rows are proteins: a sample's missing abundances are
predicted from the other samples' abundances of the same protein.

Member ``k`` draws from child ``k`` of ``numpy.random.SeedSequence(seed)``,
so a fixed seed reproduces the ensemble exactly while members stay
independent of each other.
"""

from __future__ import annotations

import warnings
from numbers import Integral
from typing import Any

import numpy as np

from proteomiss.core.exceptions import InsufficientDataError, InvalidConfigError
from proteomiss.core.structures import AbundanceMatrix, ImputationEnsemble
from proteomiss.impute._utils import _initial_fill, _update_imputed_mask
from proteomiss.impute.methods import MethodFunc, get_method

__all__ = [
    "impute",
]


def _check_positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral) or value < 1:
        raise InvalidConfigError(f"{name} must be an integer >= 1, got {value!r}.", parameter=name, value=value)
    return int(value)


def _run_chain(
    X: np.ndarray,  # noqa: N803
    missing_mask: np.ndarray,
    func: MethodFunc,
    params: dict[str, Any],
    rng: np.random.Generator,
    max_iterations: int,
    tol: float | None,
) -> tuple[np.ndarray, int, bool, np.ndarray, np.ndarray]:
    n_samples = X.shape[1]
    X_cur = _initial_fill(X, missing_mask, rng)  # noqa: N806

    missing_counts = missing_mask.sum(axis=0)
    visit_order = [j for j in np.argsort(missing_counts, kind="stable") if missing_counts[j] > 0]

    chain_mean = np.full((max_iterations, n_samples), np.nan)
    chain_var = np.full((max_iterations, n_samples), np.nan)

    previous = X_cur[missing_mask]
    n_iter = 0
    converged = False

    for it in range(max_iterations):
        for col in visit_order:
            mis_rows = missing_mask[:, col]
            y_obs = X_cur[~mis_rows, col]
            predictors = np.delete(X_cur, col, axis=1)

            if predictors.shape[1] == 0:
                draws = rng.choice(y_obs, size=int(mis_rows.sum()))
            else:
                draws = func(y_obs, predictors[~mis_rows], predictors[mis_rows], rng, **params)
            X_cur[mis_rows, col] = draws

        for col in visit_order:
            values = X_cur[missing_mask[:, col], col]
            chain_mean[it, col] = values.mean()
            chain_var[it, col] = values.var()

        n_iter = it + 1
        if tol is not None:
            current = X_cur[missing_mask]
            diff = np.sum((current - previous) ** 2)
            norm = np.sum(current**2)
            gamma = diff / (norm + 1e-9)
            if gamma < tol:
                converged = True
                break
            previous = current

    return X_cur, n_iter, converged, chain_mean, chain_var


def impute(
    matrix: AbundanceMatrix,
    method: str = "rf",
    m: int = 3,
    max_iterations: int = 5,
    seed: int | None = None,
    tol: float | None = None,
    **method_params: Any,
) -> ImputationEnsemble:
    """Impute missing values ``m`` times by chained equations.

    Parameters
    ----------
    matrix : AbundanceMatrix
        Matrix with missing values (``NaN``), proteins as rows.
    method : str, default "rf"
        Conditional model: ``"rf"``, ``"cart"``, ``"pmm"`` or ``"norm"``.
    m : int, default 3
        Number of completed matrices to produce.
    max_iterations : int, default 5
        Upper bound on chained-equation iterations per member.
    seed : int | None
        Base seed. ``None`` draws fresh entropy, recorded on the ensemble so
        the run can be repeated.
    tol : float | None
        Optional early-stopping tolerance on the relative squared change of
        the imputed cells between iterations.
    **method_params
        Extra parameters of the chosen method (e.g. ``n_estimators`` for
        ``"rf"``, ``donors`` for ``"pmm"``).

    Returns
    -------
    ImputationEnsemble
        ``m`` matrices without missing values. Observed cells are identical
        to the input; imputed cells carry ``MaskCode.IMPUTED``.

    Raises
    ------
    InvalidConfigError
        If ``m`` or ``max_iterations`` is below 1, ``tol`` is not positive,
        or the method or one of its parameters is unknown.
    InsufficientDataError
        If the matrix is empty or a sample column has no observed value.

    Examples
    --------
    >>> ensemble = impute(filtered, method="rf", m=3, max_iterations=5, seed=42)
    >>> len(ensemble)
    3
    """
    m = _check_positive_int(m, "m")
    max_iterations = _check_positive_int(max_iterations, "max_iterations")
    if tol is not None and not tol > 0:
        raise InvalidConfigError(f"tol must be > 0, got {tol}.", parameter="tol", value=tol)
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, Integral) or seed < 0):
        raise InvalidConfigError(
            f"seed must be a non-negative integer or None, got {seed!r}.", parameter="seed", value=seed
        )
    func, params = get_method(method, method_params)

    if matrix.n_proteins == 0 or matrix.n_samples == 0:
        raise InsufficientDataError(
            f"Cannot impute an empty matrix (shape {matrix.shape}).",
            hint="Check that the missingness threshold did not remove every protein.",
        )

    X = np.array(matrix.X)  # noqa: N806
    missing_mask = np.isnan(X)
    empty_cols = [s for s, col in zip(matrix.sample_ids, missing_mask.T) if col.all()]
    if empty_cols:
        raise InsufficientDataError(
            f"Samples without any observed value cannot be imputed: {empty_cols[:5]}."
        )

    seed_seq = np.random.SeedSequence(seed)
    run_params = {
        "method": method,
        "m": m,
        "max_iterations": max_iterations,
        "seed": seed_seq.entropy,
        "tol": tol,
        **params,
    }

    if not missing_mask.any():
        warnings.warn("No missing values found. Returning copies of the input.", stacklevel=2)
        member = matrix.log_operation(
            action="impute",
            params=run_params,
            description="Nothing to impute; copied input.",
        )
        return ImputationEnsemble(
            members=tuple(member.copy() for _ in range(m)),
            method=method,
            seed=seed_seq.entropy,
            max_iterations=max_iterations,
            n_iterations=(0,) * m,
            converged=(True,) * m,
            chain_mean=np.full((m, max_iterations, matrix.n_samples), np.nan),
            chain_var=np.full((m, max_iterations, matrix.n_samples), np.nan),
        )

    imputed_mask = _update_imputed_mask(matrix.M, missing_mask)
    members = []
    n_iterations = []
    converged = []
    chain_means = []
    chain_vars = []

    for k, child in enumerate(seed_seq.spawn(m)):
        rng = np.random.default_rng(child)
        X_imp, n_iter, conv, c_mean, c_var = _run_chain(  # noqa: N806
            X, missing_mask, func, params, rng, max_iterations, tol
        )
        member = matrix.with_values(X_imp, M=imputed_mask).log_operation(
            action="impute",
            params={**run_params, "member": k, "n_iterations": n_iter},
            description=(
                f"Chained-equation imputation ({method}) member {k + 1}/{m}: "
                f"{int(missing_mask.sum())} cells over {n_iter} iteration(s)."
            ),
        )
        members.append(member)
        n_iterations.append(n_iter)
        converged.append(conv)
        chain_means.append(c_mean)
        chain_vars.append(c_var)

    return ImputationEnsemble(
        members=tuple(members),
        method=method,
        seed=seed_seq.entropy,
        max_iterations=max_iterations,
        n_iterations=tuple(n_iterations),
        converged=tuple(converged),
        chain_mean=np.stack(chain_means),
        chain_var=np.stack(chain_vars),
    )
