"""Selection or pooling of one completed matrix from an ensemble."""

from __future__ import annotations

from numbers import Integral

import numpy as np

from proteomiss.core.exceptions import IndexOutOfRangeError, InvalidConfigError
from proteomiss.core.structures import (
    AbundanceMatrix,
    CompletedMatrix,
    ImputationEnsemble,
)
from proteomiss.normalization.scale import normalize

__all__ = [
    "POOLING_RULES",
    "combine",
]

POOLING_RULES = {
    "mean": np.mean,
    "median": np.median,
}


def _pool(ensemble: ImputationEnsemble, rule: str) -> AbundanceMatrix:
    if rule not in POOLING_RULES:
        raise InvalidConfigError(
            f"Unknown pooling rule '{rule}'.",
            parameter="index_or_rule",
            value=rule,
            hint=f"Pass a member index or one of: {', '.join(POOLING_RULES)}.",
        )
    stacked = np.stack([member.X for member in ensemble])
    pooled = POOLING_RULES[rule](stacked, axis=0)
    # Cells on which every member agrees (observed ones included) are kept exactly
    agree = np.all(stacked == stacked[0], axis=0)
    pooled[agree] = stacked[0][agree]
    first = ensemble[0]
    return first.with_values(pooled, M=first.M).log_operation(
        action="pool_imputations",
        params={"rule": rule, "m": ensemble.m},
        description=f"Cell-wise {rule} of {ensemble.m} imputed matrices.",
    )


def combine(
    ensemble: ImputationEnsemble,
    index_or_rule: int | str = 0,
    normalization: str = "scale",
) -> CompletedMatrix:
    """Pick one member of an ensemble (or pool all) and normalize it.

    Parameters
    ----------
    ensemble : ImputationEnsemble
        Output of :func:`~proteomiss.impute.impute`.
    index_or_rule : int | str, default 0
        0-based member index, or a pooling rule (``"mean"``, ``"median"``)
        applied cell-wise across members. Observed cells are identical in all
        members, so pooling leaves them unchanged.
    normalization : str, default "scale"
        Per-sample normalization, see :mod:`proteomiss.normalization`.

    Returns
    -------
    CompletedMatrix

    Raises
    ------
    IndexOutOfRangeError
        If the index is negative or not smaller than the ensemble size.
    InvalidConfigError
        If the pooling rule or the normalization is unknown.

    Examples
    --------
    >>> completed = combine(ensemble, 1)
    >>> completed.source
    1
    """
    if isinstance(index_or_rule, str):
        selected = _pool(ensemble, index_or_rule)
        source: int | str = index_or_rule
    elif isinstance(index_or_rule, Integral) and not isinstance(index_or_rule, bool):
        index = int(index_or_rule)
        if not 0 <= index < ensemble.m:
            raise IndexOutOfRangeError(index, ensemble.m)
        selected = ensemble[index].log_operation(
            action="select_imputation",
            params={"index": index, "m": ensemble.m},
            description=f"Selected imputed matrix {index} of {ensemble.m}.",
        )
        source = index
    else:
        raise InvalidConfigError(
            f"index_or_rule must be an integer or a rule name, got {index_or_rule!r}.",
            parameter="index_or_rule",
            value=index_or_rule,
        )

    normalized, factors, shifts = normalize(selected, normalization)
    return CompletedMatrix(
        matrix=normalized,
        source=source,
        normalization=normalization,
        scale_factors=factors,
        shifts=shifts,
    )
