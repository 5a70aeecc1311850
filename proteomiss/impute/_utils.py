"""Utility functions for imputation modules."""

import numpy as np

from proteomiss.core.structures import MaskCode


def _update_imputed_mask(M_original: np.ndarray, missing_mask: np.ndarray) -> np.ndarray:  # noqa: N803
    """Mark previously missing entries as imputed.

    Parameters
    ----------
    M_original : np.ndarray
        Original mask matrix
    missing_mask : np.ndarray
        Boolean mask indicating which values were originally missing

    Returns
    -------
    np.ndarray
        Copy of the mask with IMPUTED code for previously missing entries.
    """
    new_M = np.array(M_original, dtype=np.int8, copy=True)  # noqa: N806
    new_M[missing_mask] = MaskCode.IMPUTED
    return new_M


def _initial_fill(
    X: np.ndarray,  # noqa: N803
    missing_mask: np.ndarray,
    rng: np.random.Generator,
) -> np.ndarray:
    """Fill each column's missing cells with random draws of its observed values."""
    X_filled = np.array(X, copy=True)  # noqa: N806
    for col in np.flatnonzero(missing_mask.any(axis=0)):
        mis_rows = missing_mask[:, col]
        X_filled[mis_rows, col] = rng.choice(X[~mis_rows, col], size=int(mis_rows.sum()))
    return X_filled
