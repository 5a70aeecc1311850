"""End-to-end sparsity analysis and imputation.

Each stage returns a new value that is passed explicitly to the next one:

    raw -> compute_missingness -> filter_by_threshold -> mcar_test (diagnostic)
        -> impute -> combine

The MCAR test is a side branch: if it cannot run, the reason is recorded on
the result and imputation proceeds. Any other failure stops the pipeline.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass

from proteomiss.config import PipelineConfig
from proteomiss.core.exceptions import InsufficientDataError
from proteomiss.core.structures import (
    AbundanceMatrix,
    CompletedMatrix,
    ImputationEnsemble,
    MissingnessVector,
)
from proteomiss.impute import combine, impute
from proteomiss.normalization import log_transform
from proteomiss.qc import MCARResult, compute_missingness, filter_by_threshold, mcar_test

__all__ = [
    "PipelineResult",
    "run_pipeline",
]


@dataclass
class PipelineResult:
    """Every intermediate value produced by :func:`run_pipeline`."""

    missingness: MissingnessVector
    filtered: AbundanceMatrix
    mcar: MCARResult | None
    mcar_error: str | None
    ensemble: ImputationEnsemble
    completed: CompletedMatrix


def run_pipeline(
    matrix: AbundanceMatrix,
    config: PipelineConfig | None = None,
) -> PipelineResult:
    """Run filtering, the MCAR test, imputation and normalization.

    Parameters
    ----------
    matrix : AbundanceMatrix
        Raw abundance matrix. It is not modified.
    config : PipelineConfig | None
        Parameters; defaults to ``PipelineConfig()``.

    Returns
    -------
    PipelineResult

    Raises
    ------
    InvalidInputError, InvalidConfigError, InsufficientDataError, IndexOutOfRangeError
        From the filtering, imputation and combination stages.
    """
    config = config or PipelineConfig()

    working = matrix
    if config.log_base is not None:
        working = log_transform(working, base=config.log_base)

    missingness = compute_missingness(working)
    filtered = filter_by_threshold(working, missingness, config.threshold)

    try:
        mcar = mcar_test(filtered)
        mcar_error = None
    except InsufficientDataError as e:
        warnings.warn(f"MCAR test skipped: {e}", stacklevel=2)
        mcar = None
        mcar_error = str(e)

    ensemble = impute(
        filtered,
        method=config.method,
        m=config.m,
        max_iterations=config.max_iterations,
        seed=config.seed,
        tol=config.tol,
        **config.method_params,
    )
    completed = combine(ensemble, config.select, normalization=config.normalization)

    return PipelineResult(
        missingness=missingness,
        filtered=filtered,
        mcar=mcar,
        mcar_error=mcar_error,
        ensemble=ensemble,
        completed=completed,
    )
